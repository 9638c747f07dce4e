"""Moderation orchestrator: local filter first, optional remote classifier second.

Per message::

    local filter ── unclean ──────────────────────────────► rejected (local-lexicon)
        │ clean
        ├── remote disabled ──────────────────────────────► accepted (local-lexicon)
        └── remote classifier ── flagged ─────────────────► rejected (remote-classifier)
                               ├─ cleared ─────────────────► accepted (remote-classifier)
                               └─ error / timeout / junk ──► local verdict (fallback)

The orchestrator never sends or alters a message; it only reports.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from chatguard.config import ModerationConfig
from chatguard.moderation.classifier import (
    Classifier,
    ClassifierResponse,
    ClassifierResult,
    ClassifierUnavailable,
)
from chatguard.moderation.content_filter import ContentFilter, warning_message
from chatguard.moderation.language import ENGLISH, LANGUAGE_NAMES
from chatguard.moderation.models import (
    FlaggedCategory,
    ModerationReport,
    ModerationVerdict,
    Severity,
    VerdictSource,
)

logger = logging.getLogger(__name__)

HIGH_SEVERITY_BELOW = 0.3
MEDIUM_SEVERITY_BELOW = 0.7
HIGH_CATEGORY_SCORE = 0.8


def severity_for(confidence: float) -> Severity:
    if confidence < HIGH_SEVERITY_BELOW:
        return Severity.HIGH
    if confidence < MEDIUM_SEVERITY_BELOW:
        return Severity.MEDIUM
    return Severity.LOW


class ModerationOrchestrator:
    """Sequences the content filter and the remote classifier."""

    def __init__(
        self,
        content_filter: ContentFilter | None = None,
        classifier: Classifier | None = None,
        config: ModerationConfig | None = None,
    ) -> None:
        self.content_filter = content_filter or ContentFilter()
        self.classifier = classifier
        self.config = config or ModerationConfig(remote_enabled=classifier is not None)
        self.config.validate()

    @property
    def remote_enabled(self) -> bool:
        return self.config.remote_enabled and self.classifier is not None

    # -- public API ----------------------------------------------------------

    async def moderate(self, text: str) -> ModerationVerdict:
        """Decide whether *text* is clean.  Never raises for string input."""
        local = self.content_filter.scan(text)
        if not local.is_clean or local.source is VerdictSource.LOCAL_FAST:
            return local
        if not self.remote_enabled:
            return local

        result = await self._classify(text)
        if isinstance(result, ClassifierUnavailable):
            logger.warning("Remote classifier unavailable (%s); using local verdict", result.reason)
            return local.with_source(VerdictSource.FALLBACK)
        return self._remote_verdict(text, local, result)

    async def moderate_batch(self, texts: Iterable[str]) -> list[ModerationVerdict]:
        """Moderate several messages concurrently, preserving order."""
        return list(await asyncio.gather(*(self.moderate(t) for t in texts)))

    async def review(self, text: str) -> ModerationReport:
        """Moderate *text* and build the caller-facing report."""
        return self.build_report(await self.moderate(text))

    def build_report(self, verdict: ModerationVerdict) -> ModerationReport:
        """Turn a verdict into display data: severity tier and recommendations."""
        severity = severity_for(verdict.confidence)
        flagged = [
            FlaggedCategory(category=name, score=score)
            for name, score in sorted(verdict.category_scores.items())
            if score > 0
        ]
        return ModerationReport(
            is_clean=verdict.is_clean,
            masked_text=verdict.masked_text,
            severity=severity,
            language=verdict.detected_language,
            confidence=verdict.confidence,
            source=verdict.source,
            matched_terms=sorted(verdict.matched_terms),
            flagged_categories=flagged,
            recommendations=_recommendations(verdict, severity, flagged),
            warning="" if verdict.is_clean else (
                warning_message(verdict.matched_terms)
                or "Your message was flagged as inappropriate. Please revise your message."
            ),
            mask_applied=not verdict.is_clean and bool(verdict.matched_terms),
        )

    # -- helpers -------------------------------------------------------------

    async def _classify(self, text: str) -> ClassifierResult:
        try:
            return await asyncio.wait_for(self.classifier.classify(text), timeout=self.config.remote_timeout)
        except asyncio.TimeoutError:
            return ClassifierUnavailable(f"timed out after {self.config.remote_timeout:g}s")
        except Exception as exc:  # classifier bugs must not fail a send
            logger.exception("Remote classifier raised")
            return ClassifierUnavailable(f"classifier error: {exc.__class__.__name__}")

    def _remote_verdict(
        self, text: str, local: ModerationVerdict, response: ClassifierResponse
    ) -> ModerationVerdict:
        scores = {name: round(score, 4) for name, score in response.category_scores.items()}
        if not response.flagged:
            return ModerationVerdict(
                is_clean=True,
                masked_text=text,
                confidence=response.confidence,
                detected_language=local.detected_language,
                source=VerdictSource.REMOTE_CLASSIFIER,
                category_scores=scores,
            )

        logger.info("Remote classifier flagged message (%d chars)", len(text))
        # The classifier decides; masking always comes from the local filter.
        masked = self.content_filter.scan(text)
        return ModerationVerdict(
            is_clean=False,
            masked_text=masked.masked_text,
            matched_terms=masked.matched_terms,
            confidence=min(response.confidence, masked.confidence),
            detected_language=local.detected_language,
            source=VerdictSource.REMOTE_CLASSIFIER,
            category_scores=scores,
        )


def _recommendations(
    verdict: ModerationVerdict, severity: Severity, flagged: list[FlaggedCategory]
) -> list[str]:
    recommendations = []
    if severity is Severity.HIGH:
        recommendations.append("Message contains highly inappropriate content")
        recommendations.append("Consider rewriting the message completely")
    elif severity is Severity.MEDIUM:
        recommendations.append("Message contains some inappropriate content")
        recommendations.append("Review and edit before sending")

    if not verdict.is_clean and verdict.detected_language != ENGLISH:
        name = LANGUAGE_NAMES.get(verdict.detected_language, verdict.detected_language)
        recommendations.append(
            f"{name} text was checked in both native script and romanized spelling"
        )

    for item in flagged:
        if item.score > HIGH_CATEGORY_SCORE:
            recommendations.append(f"High confidence of {item.category} content")
    return recommendations
