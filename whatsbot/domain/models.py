"""Domain data models — pure Python dataclasses."""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

# Which decision tier produced a ResponseDecision
TIER_COMMAND = "command"
TIER_KEYWORD = "keyword"
TIER_FALLBACK = "fallback"
TIER_SILENT = "silent"


@dataclass(frozen=True)
class KeywordRule:
    """Group of lowercase substrings sharing one response."""

    keywords: FrozenSet[str]
    response: str

    def __post_init__(self):
        keywords = frozenset(k.lower() for k in self.keywords)
        if not keywords or "" in keywords:
            raise ValueError("KeywordRule needs at least one non-empty keyword")
        object.__setattr__(self, "keywords", keywords)

    @classmethod
    def of(cls, keywords: Iterable[str], response: str) -> "KeywordRule":
        return cls(keywords=frozenset(keywords), response=response)

    def matches(self, normalized: str) -> bool:
        # Plain substring containment: "hi" also matches "history"
        return any(keyword in normalized for keyword in self.keywords)


@dataclass(frozen=True)
class ResponseDecision:
    """Outcome of one classification: reply with text, or stay silent."""

    text: Optional[str] = None
    tier: str = TIER_SILENT

    @classmethod
    def reply(cls, text: str, tier: str) -> "ResponseDecision":
        return cls(text=text, tier=tier)

    @classmethod
    def no_reply(cls) -> "ResponseDecision":
        return cls()

    @property
    def should_reply(self) -> bool:
        return self.text is not None
