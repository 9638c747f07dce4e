"""Rate limit API router.

Prefix: ``/api/ratelimit``
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chatguard.gateway import MessageGateway
from web.backend.app.deps import get_gateway
from web.backend.app.models.api import (
    CheckSendRequest,
    SendDecisionResponse,
    SendStatusResponse,
)

router = APIRouter(prefix="/api/ratelimit", tags=["ratelimit"])


@router.post("/check", response_model=SendDecisionResponse)
async def check_send(body: CheckSendRequest, gateway: MessageGateway = Depends(get_gateway)):
    """Record a send attempt and return whether it is allowed."""
    decision = gateway.limiter.check_send(body.identity)
    return SendDecisionResponse(
        allowed=decision.allowed,
        retry_after=decision.retry_after,
        cooldown_seconds=decision.cooldown_seconds,
        reason=decision.reason,
    )


@router.get("/status/{identity}", response_model=SendStatusResponse)
async def get_status(identity: str, gateway: MessageGateway = Depends(get_gateway)):
    """Read-only send status for the input bar."""
    status = gateway.limiter.status(identity)
    return SendStatusResponse(
        identity=identity,
        can_send=status.can_send,
        remaining=status.remaining,
        cooldown_seconds=status.cooldown_seconds,
        rapid_mode=status.rapid_mode,
    )


@router.delete("/{identity}")
async def reset_identity(identity: str, gateway: MessageGateway = Depends(get_gateway)):
    """Forget all rate state for an identity."""
    gateway.limiter.reset(identity)
    return {"reset": identity}
