"""Built-in reply tables: exact commands and keyword rules."""

from datetime import datetime
from types import MappingProxyType
from typing import Callable, Mapping, Tuple, Union

from whatsbot.config import __version__
from whatsbot.domain.models import KeywordRule
from whatsbot.domain.uptime import format_uptime, process_uptime

# A command reply is either fixed text or rendered when the command is used
CommandResponse = Union[str, Callable[[], str]]

FALLBACK_RESPONSE = "Sorry, I didn't understand that. Type !help to see what I can do."

HELLO_RESPONSE = "Hello! 👋 How can I assist you today?"

HELP_RESPONSE = (
    "🤖 *Available Commands:*\n\n"
    "• !hello - Greet the bot\n"
    "• !info - Bot information\n"
    "• !time - Current time\n"
    "• !help - Show this help menu\n"
    "• !status - Check bot status"
)

DEFAULT_KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule.of(
        ("price", "cost", "how much"),
        "Our prices start from $10. Would you like to know more about our services?",
    ),
    KeywordRule.of(
        ("thank", "thanks"),
        "You're welcome! 😊 Is there anything else I can help with?",
    ),
    KeywordRule.of(("hi", "hello", "hey"), "Hello! 👋 How can I help you today?"),
    KeywordRule.of(("bye", "goodbye"), "Goodbye! 👋 Have a great day!"),
    KeywordRule.of(
        ("help", "support"),
        "I can help you with basic queries. Type !help to see all commands.",
    ),
)


def format_local_time(now: datetime) -> str:
    """Locale-style timestamp, e.g. '10/19/2026, 3:04:05 PM'."""
    hour = now.hour % 12 or 12
    return f"{now:%m/%d/%Y}, {hour}:{now:%M:%S} {'AM' if now.hour < 12 else 'PM'}"


def build_command_table(
    version: str = __version__,
    platform: str = "Heroku",
    uptime: Callable[[], float] = process_uptime,
    clock: Callable[[], datetime] = datetime.now,
) -> Mapping[str, CommandResponse]:
    """Build the read-only command table.

    ``uptime`` and ``clock`` are read each time a dynamic command is used,
    so !info, !status and !time never report start-up values.
    """

    def info() -> str:
        return (
            "*Bot Information:*\n\n"
            f"• Version: {version}\n"
            f"• Platform: {platform}\n"
            "• Status: Active\n"
            f"• Uptime: {format_uptime(uptime())}"
        )

    def current_time() -> str:
        return f"🕒 Current time: {format_local_time(clock())}"

    def status() -> str:
        return f"✅ Bot is online and running!\nUptime: {format_uptime(uptime())}"

    return MappingProxyType({
        "!hello": HELLO_RESPONSE,
        "!help": HELP_RESPONSE,
        "!info": info,
        "!time": current_time,
        "!status": status,
    })
