"""Tests for the chat widget's canned replies."""

import pytest
from consultsite.assistant import DEFAULT_REPLY, RULES, ReplyRule, reply


class TestReply:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("What are your PRICING options?", RULES[0].response),
            ("Can I talk to someone?", RULES[1].response),
            ("What services do you have?", RULES[2].response),
            ("How long does a website take?", RULES[3].response),
            ("Show me your portfolio", RULES[4].response),
            ("Book an appointment", RULES[5].response),
            ("hey", RULES[6].response),
        ],
    )
    def test_keyword_rules(self, message, expected):
        assert reply(message) == expected

    def test_fallback(self):
        assert reply("Tell me about Treasure Coast") == DEFAULT_REPLY

    def test_first_matching_rule_wins(self):
        assert reply("Hello, what does a quote cost?") == RULES[0].response

    def test_custom_rules(self):
        rules = (ReplyRule(("refund",), "No refunds."),)
        assert reply("Refund please", rules) == "No refunds."
        assert reply("hello", rules) == DEFAULT_REPLY
