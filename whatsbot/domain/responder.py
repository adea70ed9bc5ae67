"""Picks a reply for one incoming message.

Pure Python, no framework dependencies. Three tiers are tried in order and
the first hit wins:

1. exact command lookup (``!hello``)
2. keyword rules, substring containment, declaration order
3. randomized fallback, so unparsed chatter in groups is mostly ignored
"""

import random
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Sequence

from whatsbot.domain.models import (
    TIER_COMMAND,
    TIER_FALLBACK,
    TIER_KEYWORD,
    KeywordRule,
    ResponseDecision,
)
from whatsbot.domain.responses import (
    DEFAULT_KEYWORD_RULES,
    FALLBACK_RESPONSE,
    CommandResponse,
    build_command_table,
)
from whatsbot.ports.inbound import IncomingMessage

DEFAULT_FALLBACK_PROBABILITY = 0.3


def normalize(body: Optional[str]) -> str:
    """Lowercase and trim; the result is the only classification key."""
    return (body or "").lower().strip()


class Responder:
    """Stateless message classifier over immutable reply tables.

    ``random_source`` returns a float in [0, 1); inject a fixed one in
    tests to pin the fallback branch.
    """

    def __init__(
        self,
        commands: Optional[Mapping[str, CommandResponse]] = None,
        keyword_rules: Optional[Sequence[KeywordRule]] = None,
        fallback_response: str = FALLBACK_RESPONSE,
        fallback_probability: float = DEFAULT_FALLBACK_PROBABILITY,
        random_source: Callable[[], float] = random.random,
    ):
        if not 0.0 <= fallback_probability <= 1.0:
            raise ValueError(f"fallback_probability must be within [0, 1], got {fallback_probability!r}")
        table = build_command_table() if commands is None else commands
        normalized = {}
        for key, response in table.items():
            command = normalize(key)
            if not command:
                raise ValueError("command keys must be non-empty")
            if command in normalized:
                raise ValueError(f"command {key!r} collides with another key after normalizing")
            normalized[command] = response
        self._commands: Mapping[str, CommandResponse] = MappingProxyType(normalized)
        self._keyword_rules = tuple(DEFAULT_KEYWORD_RULES if keyword_rules is None else keyword_rules)
        self._fallback_response = fallback_response
        self._fallback_probability = fallback_probability
        self._random = random_source

    @property
    def commands(self) -> Mapping[str, CommandResponse]:
        return self._commands

    @property
    def keyword_rules(self):
        return self._keyword_rules

    def decide(self, message: IncomingMessage) -> ResponseDecision:
        """Classify ``message.body``; broadcast filtering is the caller's job."""
        return self.decide_text(message.body)

    def decide_text(self, body: Optional[str]) -> ResponseDecision:
        key = normalize(body)

        command = self._commands.get(key)
        if command is not None:
            text = command() if callable(command) else command
            return ResponseDecision.reply(text, TIER_COMMAND)

        for rule in self._keyword_rules:
            if rule.matches(key):
                return ResponseDecision.reply(rule.response, TIER_KEYWORD)

        if self._random() < self._fallback_probability:
            return ResponseDecision.reply(self._fallback_response, TIER_FALLBACK)
        return ResponseDecision.no_reply()
