"""Delivery gateway protocol and transport errors.

A gateway accepts a fully composed ``EmailMessage`` and performs the
transport.  Gateways raise ``TransportFailure`` (or its subclass
``ConfigurationMissing``) when a message does not go out; the dispatcher
is the boundary that catches them, so callers of the dispatcher never see
a transport exception.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from inturank.models.messages import DeliveryResult, EmailMessage


class TransportFailure(RuntimeError):
    """The delivery endpoint rejected the message or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationMissing(TransportFailure):
    """No delivery endpoint is configured, client side or server side."""


@runtime_checkable
class DeliveryGateway(Protocol):
    """Protocol that every delivery gateway implements.

    Attributes
    ----------
    gateway_name : str
        Short identifier used in logs (e.g. ``"http"``, ``"outbox"``).
    """

    @property
    def gateway_name(self) -> str:
        """Return the name of this gateway."""
        ...

    def deliver(self, message: EmailMessage) -> DeliveryResult:
        """Send *message*.

        Returns a ``DELIVERED`` result on success and raises
        ``TransportFailure`` otherwise.
        """
        ...
