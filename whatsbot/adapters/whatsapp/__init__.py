"""WhatsApp Web transport (Playwright)."""

from whatsbot.adapters.whatsapp.client import (
    WhatsAppWebClient,
    message_key,
    parse_pre_plain_text,
    parse_unread_count,
    phone_from_chat_id,
)

__all__ = [
    "WhatsAppWebClient",
    "message_key",
    "parse_pre_plain_text",
    "parse_unread_count",
    "phone_from_chat_id",
]
