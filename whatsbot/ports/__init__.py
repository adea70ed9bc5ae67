"""Port interfaces (Hexagonal Architecture)."""

from whatsbot.ports.inbound import IncomingMessage
from whatsbot.ports.outbound import TRANSPORT_EVENTS, TransportError, TransportPort

__all__ = [
    "IncomingMessage",
    "TRANSPORT_EVENTS",
    "TransportError",
    "TransportPort",
]
