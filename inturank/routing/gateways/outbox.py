"""Outbox gateway — buffers messages instead of sending them.

Used for ``--dry-run`` CLI invocations and as the recording gateway in
tests.  Call ``flush()`` to retrieve and clear what was "sent".
"""

from __future__ import annotations

import logging

from inturank.models.messages import DeliveryResult, DeliveryStatus, EmailMessage
from inturank.routing.gateways import TransportFailure

logger = logging.getLogger(__name__)


class OutboxGateway:
    """Collects messages in memory.

    Parameters
    ----------
    fail_with:
        When set, every ``deliver`` call records the message and then
        raises this exception, to exercise failure handling.
    """

    def __init__(self, *, fail_with: TransportFailure | None = None) -> None:
        self._messages: list[EmailMessage] = []
        self._fail_with = fail_with

    @property
    def gateway_name(self) -> str:
        return "outbox"

    def deliver(self, message: EmailMessage) -> DeliveryResult:
        self._messages.append(message)
        logger.debug("Outbox: held %r for %s", message.subject, message.to)
        if self._fail_with is not None:
            raise self._fail_with
        return DeliveryResult(status=DeliveryStatus.DELIVERED, detail="held in outbox")

    @property
    def pending(self) -> list[EmailMessage]:
        """A copy of the messages delivered so far."""
        return list(self._messages)

    @property
    def pending_count(self) -> int:
        return len(self._messages)

    def flush(self) -> list[EmailMessage]:
        """Return and clear all held messages."""
        messages = list(self._messages)
        self._messages.clear()
        return messages
