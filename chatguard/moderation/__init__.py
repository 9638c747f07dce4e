"""Content moderation: lexicon filter, remote classifiers and the orchestrator
that sequences them.
"""

from chatguard.moderation.classifier import (
    ClassifierResponse,
    ClassifierUnavailable,
    LLMClassifier,
    OpenAIModerationClassifier,
    build_classifier,
)
from chatguard.moderation.content_filter import ContentFilter, warning_message
from chatguard.moderation.language import detect_language
from chatguard.moderation.lexicon import Lexicon, build_lexicon
from chatguard.moderation.models import (
    LexiconEntry,
    ModerationReport,
    ModerationVerdict,
    Severity,
    VerdictSource,
)
from chatguard.moderation.orchestrator import ModerationOrchestrator

__all__ = [
    "ClassifierResponse",
    "ClassifierUnavailable",
    "ContentFilter",
    "LLMClassifier",
    "Lexicon",
    "LexiconEntry",
    "ModerationOrchestrator",
    "ModerationReport",
    "ModerationVerdict",
    "OpenAIModerationClassifier",
    "Severity",
    "VerdictSource",
    "build_classifier",
    "build_lexicon",
    "detect_language",
    "warning_message",
]
