"""Inbound port — platform-agnostic message representation."""

from dataclasses import dataclass

from whatsbot.config import BROADCAST_SENDER_ID


@dataclass(frozen=True)
class IncomingMessage:
    """One inbound chat message as delivered by the transport."""

    sender_id: str
    body: str
    is_broadcast: bool = False

    @classmethod
    def from_sender(cls, sender_id: str, body: str) -> "IncomingMessage":
        """Build a message, flagging the status broadcast channel."""
        return cls(
            sender_id=sender_id,
            body=body or "",
            is_broadcast=sender_id == BROADCAST_SENDER_ID,
        )
