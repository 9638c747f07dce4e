"""Pydantic models for API request/response serialization.

These models mirror the chatguard dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Rate limit models
# ---------------------------------------------------------------------------


class CheckSendRequest(BaseModel):
    """Request body for a send-gate check."""

    identity: str = Field(..., min_length=1, description="Sender identity (username)")


class SendDecisionResponse(BaseModel):
    """Mirrors chatguard.ratelimit.models.SendDecision."""

    allowed: bool
    retry_after: float = 0.0
    cooldown_seconds: int = 0
    reason: str = ""


class SendStatusResponse(BaseModel):
    """Mirrors chatguard.ratelimit.models.SendStatus."""

    identity: str
    can_send: bool
    remaining: int
    cooldown_seconds: int = 0
    rapid_mode: bool = False


# ---------------------------------------------------------------------------
# Moderation models
# ---------------------------------------------------------------------------


class ModerateRequest(BaseModel):
    """Request body for scan/review."""

    text: str = Field(..., max_length=10000)


class BatchModerateRequest(BaseModel):
    """Request body for batch moderation."""

    texts: list[str] = Field(..., max_length=100)


class VerdictResponse(BaseModel):
    """Mirrors chatguard.moderation.models.ModerationVerdict."""

    is_clean: bool
    masked_text: str
    matched_terms: list[str] = Field(default_factory=list)
    confidence: float = 1.0
    detected_language: str = "en"
    source: str = ""
    category_scores: dict[str, float] = Field(default_factory=dict)


class FlaggedCategoryResponse(BaseModel):
    category: str
    score: float


class ModerationReportResponse(BaseModel):
    """Mirrors chatguard.moderation.models.ModerationReport."""

    is_clean: bool
    masked_text: str
    severity: str
    language: str
    confidence: float
    source: str
    matched_terms: list[str] = Field(default_factory=list)
    flagged_categories: list[FlaggedCategoryResponse] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    warning: str = ""
    can_send_masked: bool = False


# ---------------------------------------------------------------------------
# Message models
# ---------------------------------------------------------------------------


class SubmitMessageRequest(BaseModel):
    """Request body for sending a chat message."""

    identity: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1, max_length=10000)
    channel: str = Field("public", pattern="^(public|room|private)$")


class ConfirmMessageRequest(BaseModel):
    """Request body for confirming a parked masked message."""

    identity: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    """Mirrors chatguard.gateway.StoredMessage."""

    id: str
    identity: str
    text: str
    channel: str
    timestamp: str
    masked: bool = False
