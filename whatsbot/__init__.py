"""WhatsApp Bot: command and keyword auto-responder for WhatsApp Web."""

from whatsbot.config import CONFIG, AppConfig, BrowserConfig, __version__
from whatsbot.domain.agent import ChatAgent
from whatsbot.domain.models import KeywordRule, ResponseDecision
from whatsbot.domain.responder import Responder, normalize
from whatsbot.domain.responses import DEFAULT_KEYWORD_RULES, build_command_table
from whatsbot.ports.inbound import IncomingMessage

__all__ = [
    "CONFIG",
    "AppConfig",
    "BrowserConfig",
    "ChatAgent",
    "DEFAULT_KEYWORD_RULES",
    "IncomingMessage",
    "KeywordRule",
    "Responder",
    "ResponseDecision",
    "build_command_table",
    "normalize",
    "__version__",
]
