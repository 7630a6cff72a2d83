"""IntuRank CLI — Typer-based command-line interface.

Provides the ``inturank`` command with subcommands for managing email
subscriptions and follows, polling activity, flushing digests, and sending
trade receipts.

All output uses Rich for formatted terminal display.
"""
