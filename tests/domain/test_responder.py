"""Tests for domain/responder.py — pure Python, no browser dependency."""

import random
from datetime import datetime

import pytest

from whatsbot.domain.models import (
    TIER_COMMAND,
    TIER_FALLBACK,
    TIER_KEYWORD,
    TIER_SILENT,
    KeywordRule,
    ResponseDecision,
)
from whatsbot.domain.responder import Responder, normalize
from whatsbot.domain.responses import (
    DEFAULT_KEYWORD_RULES,
    FALLBACK_RESPONSE,
    HELP_RESPONSE,
    build_command_table,
    format_local_time,
)
from whatsbot.ports.inbound import IncomingMessage

PRICE_RESPONSE = "Our prices start from $10. Would you like to know more about our services?"
THANKS_RESPONSE = "You're welcome! 😊 Is there anything else I can help with?"
GREETING_RESPONSE = "Hello! 👋 How can I help you today?"


def _msg(body: str) -> IncomingMessage:
    return IncomingMessage.from_sender("15551234567@c.us", body)


def _responder(draw: float = 0.99, **kwargs) -> Responder:
    return Responder(random_source=lambda: draw, **kwargs)


class TestNormalize:
    def test_lowercase_and_trim(self):
        assert normalize("  !HeLLo \n") == "!hello"

    def test_none_is_empty(self):
        assert normalize(None) == ""


class TestCommandTier:
    def test_hello(self):
        decision = _responder().decide(_msg("!hello"))
        assert decision == ResponseDecision.reply("Hello! 👋 How can I assist you today?", TIER_COMMAND)

    def test_case_and_whitespace_variants(self):
        responder = _responder()
        assert responder.decide(_msg(" !HELLO ")) == responder.decide(_msg("!hello"))

    def test_help_lists_commands(self):
        decision = _responder().decide(_msg("!help"))
        assert decision.text == HELP_RESPONSE
        for cmd in ("!hello", "!info", "!time", "!help", "!status"):
            assert cmd in decision.text

    def test_command_beats_keyword(self):
        # "!help" also contains the keyword "help"
        decision = _responder().decide(_msg("!help"))
        assert decision.tier == TIER_COMMAND

    def test_command_must_match_exactly(self):
        decision = _responder().decide(_msg("!hello there"))
        assert decision.tier == TIER_KEYWORD
        assert decision.text == GREETING_RESPONSE

    def test_dynamic_commands_render_on_use(self):
        ticks = iter([60.0, 90061.0])
        table = build_command_table(version="9.9.9", platform="Test", uptime=lambda: next(ticks))
        responder = _responder(commands=table)
        assert responder.decide(_msg("!status")).text == "✅ Bot is online and running!\nUptime: 0d 0h 1m"
        info = responder.decide(_msg("!info")).text
        assert "• Version: 9.9.9" in info
        assert "• Platform: Test" in info
        assert "• Uptime: 1d 1h 1m" in info

    def test_time_uses_clock(self):
        table = build_command_table(clock=lambda: datetime(2026, 10, 19, 15, 4, 5))
        decision = _responder(commands=table).decide(_msg("!time"))
        assert decision.text == "🕒 Current time: 10/19/2026, 3:04:05 PM"

    def test_table_is_read_only(self):
        table = build_command_table()
        with pytest.raises(TypeError):
            table["!new"] = "x"
        with pytest.raises(TypeError):
            _responder().commands["!hello"] = "x"

    def test_empty_command_key_rejected(self):
        with pytest.raises(ValueError):
            Responder(commands={"": "boom"})
        with pytest.raises(ValueError):
            Responder(commands={"   ": "boom"})

    def test_command_keys_normalized(self):
        responder = _responder(commands={" !PING ": "pong"})
        assert "!ping" in responder.commands
        assert responder.decide(_msg("!ping")).text == "pong"

    def test_colliding_command_keys_rejected(self):
        with pytest.raises(ValueError):
            Responder(commands={"!ping": "a", "!PING": "b"})


class TestKeywordTier:
    def test_how_much(self):
        decision = _responder().decide(_msg("How much does it cost?"))
        assert decision == ResponseDecision.reply(PRICE_RESPONSE, TIER_KEYWORD)

    def test_first_rule_wins(self):
        # matches both "thank" (rule 2) and "hi" (rule 3)
        decision = _responder().decide(_msg("hi, thanks a lot"))
        assert decision.text == THANKS_RESPONSE

    def test_substring_containment(self):
        # "history" contains "hi"
        decision = _responder().decide(_msg("history"))
        assert decision.text == GREETING_RESPONSE

    def test_custom_rules_keep_order(self):
        rules = [
            KeywordRule.of(["apple"], "first"),
            KeywordRule.of(["apple", "pear"], "second"),
        ]
        responder = _responder(commands={}, keyword_rules=rules)
        assert responder.decide(_msg("apple pie")).text == "first"
        assert responder.decide(_msg("PEAR")).text == "second"

    def test_keywords_lowercased(self):
        rule = KeywordRule.of(["HowDy"], "yo")
        assert rule.matches("howdy partner")

    def test_empty_keyword_rejected(self):
        with pytest.raises(ValueError):
            KeywordRule.of([""], "never")
        with pytest.raises(ValueError):
            KeywordRule.of([], "never")

    def test_default_rule_order(self):
        assert [r.response for r in DEFAULT_KEYWORD_RULES][0] == PRICE_RESPONSE
        assert len(DEFAULT_KEYWORD_RULES) == 5


class TestFallbackTier:
    def test_low_draw_replies(self):
        decision = _responder(draw=0.1).decide(_msg("xyzzy"))
        assert decision == ResponseDecision.reply(FALLBACK_RESPONSE, TIER_FALLBACK)

    def test_high_draw_stays_silent(self):
        decision = _responder(draw=0.9).decide(_msg("xyzzy"))
        assert decision == ResponseDecision.no_reply()
        assert decision.tier == TIER_SILENT
        assert not decision.should_reply

    def test_threshold_is_exclusive(self):
        assert not _responder(draw=0.3).decide(_msg("xyzzy")).should_reply

    def test_empty_body_only_reaches_fallback(self):
        assert _responder(draw=0.0).decide(_msg("")).tier == TIER_FALLBACK
        assert _responder(draw=0.5).decide(_msg("   ")).tier == TIER_SILENT

    def test_random_not_drawn_on_match(self):
        def _boom():
            raise AssertionError("random source should not be used")

        responder = Responder(random_source=_boom)
        assert responder.decide(_msg("!hello")).tier == TIER_COMMAND
        assert responder.decide(_msg("bye")).tier == TIER_KEYWORD

    def test_seeded_rate(self):
        rng = random.Random(1234)
        responder = Responder(random_source=rng.random)
        replies = sum(responder.decide(_msg("xyzzy")).should_reply for _ in range(10_000))
        assert 2700 < replies < 3300

    def test_custom_probability(self):
        assert _responder(draw=0.5, fallback_probability=0.6).decide(_msg("zz")).should_reply
        assert not _responder(draw=0.0, fallback_probability=0.0).decide(_msg("zz")).should_reply

    def test_invalid_probability(self):
        with pytest.raises(ValueError):
            Responder(fallback_probability=1.5)


class TestTotality:
    @pytest.mark.parametrize("body", ["", "   ", "こんにちは", "\x00\x01", "🤖" * 500, "a" * 100_000])
    def test_never_raises(self, body):
        decision = Responder(random_source=lambda: 0.5).decide(_msg(body))
        assert isinstance(decision, ResponseDecision)


def test_format_local_time_midnight():
    assert format_local_time(datetime(2026, 1, 2, 0, 5, 9)) == "01/02/2026, 12:05:09 AM"
