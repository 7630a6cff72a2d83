"""IntuRank notification routing — turns activity into emails.

The ``NotificationDispatcher`` decides, per owner and per event, whether a
message is suppressed, sent now, or queued for the daily digest.  The
``MessageComposer`` and ``HtmlTemplates`` build the message; a
``DeliveryGateway`` (HTTP relay or in-memory outbox) carries it.
"""
