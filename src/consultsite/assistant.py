"""Canned replies for the contact page chat widget.

Rules are checked top to bottom against the lowercased message and the
first rule with a matching keyword wins.  Keywords are plain substrings,
so "hi" also matches inside longer words; earlier rules take priority.
"""

from __future__ import annotations

from dataclasses import dataclass

GREETING = "Hi there! How can I help you with your technology needs today?"

DEFAULT_REPLY = (
    "Blackbox Logic specializes in custom software development, AI solutions, "
    "and IT consulting for small businesses in the Treasure Coast area."
)


@dataclass(frozen=True)
class ReplyRule:
    keywords: tuple[str, ...]
    response: str

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


RULES: tuple[ReplyRule, ...] = (
    ReplyRule(
        ("pricing", "cost", "quote"),
        "Our pricing varies based on project scope and requirements. We'd be happy to "
        "provide a custom quote after understanding your needs better.",
    ),
    ReplyRule(
        ("contact", "talk to someone", "representative"),
        "I'll pass your information to our team, and someone will contact you shortly "
        "to discuss your project in more detail.",
    ),
    ReplyRule(
        ("services", "offer", "provide"),
        "Our team can help with website development, custom software, AI chatbots, and "
        "IT infrastructure. What specific services are you interested in?",
    ),
    ReplyRule(
        ("time", "how long", "when"),
        "We typically respond to inquiries within 24 hours, but I'm here to answer "
        "basic questions immediately.",
    ),
    ReplyRule(
        ("examples", "portfolio", "case studies"),
        "We've helped many local businesses improve their operations through technology. "
        "You can check out our case studies on our website.",
    ),
    ReplyRule(
        ("consultation", "meeting", "appointment"),
        "Would you like to schedule a consultation with one of our technology experts?",
    ),
    ReplyRule(
        ("hello", "hi", "hey"),
        "Thank you for your message! How can I help you with your technology needs today?",
    ),
)


def reply(message: str, rules: tuple[ReplyRule, ...] = RULES) -> str:
    """Return the response of the first rule matching *message*."""
    text = message.lower()
    for rule in rules:
        if rule.matches(text):
            return rule.response
    return DEFAULT_REPLY
