"""Moderation API router.

Prefix: ``/api/moderation``
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chatguard.gateway import MessageGateway
from chatguard.moderation.models import ModerationReport, ModerationVerdict
from web.backend.app.deps import get_gateway
from web.backend.app.models.api import (
    BatchModerateRequest,
    FlaggedCategoryResponse,
    ModerateRequest,
    ModerationReportResponse,
    VerdictResponse,
)

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _verdict_to_response(v: ModerationVerdict) -> VerdictResponse:
    return VerdictResponse(
        is_clean=v.is_clean,
        masked_text=v.masked_text,
        matched_terms=sorted(v.matched_terms),
        confidence=v.confidence,
        detected_language=v.detected_language,
        source=v.source.value,
        category_scores=dict(v.category_scores),
    )


def report_to_response(r: ModerationReport) -> ModerationReportResponse:
    return ModerationReportResponse(
        is_clean=r.is_clean,
        masked_text=r.masked_text,
        severity=r.severity.value,
        language=r.language,
        confidence=r.confidence,
        source=r.source.value,
        matched_terms=sorted(r.matched_terms),
        flagged_categories=[
            FlaggedCategoryResponse(category=c.category, score=c.score)
            for c in r.flagged_categories
        ],
        recommendations=list(r.recommendations),
        warning=r.warning,
        can_send_masked=r.can_send_masked,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/scan", response_model=VerdictResponse)
async def scan_text(body: ModerateRequest, gateway: MessageGateway = Depends(get_gateway)):
    """Run only the local lexicon filter."""
    return _verdict_to_response(gateway.moderator.content_filter.scan(body.text))


@router.post("/review", response_model=ModerationReportResponse)
async def review_text(body: ModerateRequest, gateway: MessageGateway = Depends(get_gateway)):
    """Run the full pipeline and return a moderation report."""
    report = await gateway.moderator.review(body.text)
    return report_to_response(report)


@router.post("/batch", response_model=list[VerdictResponse])
async def moderate_batch(body: BatchModerateRequest, gateway: MessageGateway = Depends(get_gateway)):
    """Moderate several texts concurrently; results keep input order."""
    verdicts = await gateway.moderator.moderate_batch(body.texts)
    return [_verdict_to_response(v) for v in verdicts]
