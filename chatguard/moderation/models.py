"""Data models for the content moderation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class VerdictSource(str, Enum):
    """Which check produced a verdict."""

    LOCAL_FAST = "local-fast"
    LOCAL_LEXICON = "local-lexicon"
    REMOTE_CLASSIFIER = "remote-classifier"
    FALLBACK = "fallback"


class Severity(str, Enum):
    """Display tier derived from confidence."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class LexiconEntry:
    """A banned root plus the surface variants that mean the same thing."""

    term: str
    locale: str
    category: str = "profanity"
    variants: tuple[str, ...] = ()
    embedded: bool = False  # safe to match inside longer words

    @property
    def surface_forms(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for form in (self.term, *self.variants):
            seen.setdefault(form.casefold(), None)
        return tuple(seen)


@dataclass(frozen=True)
class ModerationVerdict:
    """Result of moderating a single message."""

    is_clean: bool
    masked_text: str
    matched_terms: frozenset[str] = frozenset()
    confidence: float = 1.0
    detected_language: str = "en"
    source: VerdictSource = VerdictSource.LOCAL_LEXICON
    category_scores: dict[str, float] = field(default_factory=dict, hash=False)

    def with_source(self, source: VerdictSource) -> ModerationVerdict:
        return replace(self, source=source)


@dataclass
class FlaggedCategory:
    """A category that contributed to a rejection."""

    category: str
    score: float


@dataclass
class ModerationReport:
    """What the caller needs to decide what to do with a message."""

    is_clean: bool
    masked_text: str
    severity: Severity
    language: str
    confidence: float
    source: VerdictSource
    matched_terms: list[str] = field(default_factory=list)
    flagged_categories: list[FlaggedCategory] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    warning: str = ""
    mask_applied: bool = False

    @property
    def can_send_masked(self) -> bool:
        """True when a flagged message has a masked form that differs from the original."""
        return not self.is_clean and self.mask_applied
