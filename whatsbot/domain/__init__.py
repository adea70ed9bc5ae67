"""Domain layer — pure Python, no framework dependencies."""

from whatsbot.domain.models import KeywordRule, ResponseDecision
from whatsbot.domain.responder import Responder, normalize
from whatsbot.domain.responses import (
    DEFAULT_KEYWORD_RULES,
    FALLBACK_RESPONSE,
    build_command_table,
)
from whatsbot.domain.agent import ChatAgent
from whatsbot.domain.uptime import format_uptime, process_uptime

__all__ = [
    "ChatAgent",
    "DEFAULT_KEYWORD_RULES",
    "FALLBACK_RESPONSE",
    "KeywordRule",
    "Responder",
    "ResponseDecision",
    "build_command_table",
    "format_uptime",
    "normalize",
    "process_uptime",
]
