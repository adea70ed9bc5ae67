"""Outbound ports — interfaces for external system adapters."""

from typing import Any, Callable, Protocol, runtime_checkable

from whatsbot.ports.inbound import IncomingMessage

# Lifecycle events a transport raises
TRANSPORT_EVENTS = ("qr", "ready", "auth_failure", "disconnected", "message")


class TransportError(Exception):
    """Raised when the transport cannot deliver a message."""


@runtime_checkable
class TransportPort(Protocol):
    """Interface for chat transports (WhatsApp Web, test doubles, ...)."""

    def on(self, event: str, handler: Callable[..., Any]) -> None: ...

    async def initialize(self) -> None: ...

    async def reply(self, message: IncomingMessage, text: str) -> None: ...

    async def send(self, chat_id: str, text: str) -> None: ...

    async def destroy(self) -> None: ...
