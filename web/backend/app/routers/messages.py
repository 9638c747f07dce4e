"""Messages API router.

Prefix: ``/api/messages``
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from chatguard.errors import ModerationRejected, NoPendingMessage, RateLimited
from chatguard.gateway import CHANNELS, InMemoryTransport, MessageGateway
from web.backend.app.deps import get_gateway
from web.backend.app.models.api import (
    ConfirmMessageRequest,
    MessageResponse,
    SubmitMessageRequest,
)

router = APIRouter(prefix="/api/messages", tags=["messages"])


def _rate_limited(e: RateLimited) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "detail": str(e),
            "retry_after": e.retry_after,
            "cooldown_seconds": e.cooldown_seconds,
        },
        headers={"Retry-After": str(e.cooldown_seconds)},
    )


def _rejected(e: ModerationRejected) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "detail": {
                "warning": str(e),
                "masked_text": e.masked_text,
                "severity": e.severity,
                "can_send_masked": e.report.can_send_masked,
            }
        },
    )


@router.post("", response_model=MessageResponse)
async def submit_message(body: SubmitMessageRequest, gateway: MessageGateway = Depends(get_gateway)):
    """Send a message through the rate gate and moderation."""
    try:
        message = await gateway.submit(body.identity, body.text, body.channel)
    except RateLimited as e:
        return _rate_limited(e)
    except ModerationRejected as e:
        return _rejected(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(**asdict(message))


@router.post("/confirm", response_model=MessageResponse)
async def confirm_masked(body: ConfirmMessageRequest, gateway: MessageGateway = Depends(get_gateway)):
    """Send the masked form of the sender's last flagged message."""
    try:
        message = await gateway.confirm_masked(body.identity)
    except RateLimited as e:
        return _rate_limited(e)
    except NoPendingMessage as e:
        raise HTTPException(status_code=404, detail=str(e))
    return MessageResponse(**asdict(message))


@router.delete("/pending/{identity}")
async def discard_pending(identity: str, gateway: MessageGateway = Depends(get_gateway)):
    """Drop the sender's parked message, if any."""
    return {"discarded": gateway.discard(identity)}


@router.get("/{channel}", response_model=list[MessageResponse])
async def list_messages(channel: str, gateway: MessageGateway = Depends(get_gateway)):
    """List delivered messages for a channel (in-memory transport only)."""
    if channel not in CHANNELS:
        raise HTTPException(status_code=404, detail=f"Unknown channel {channel!r}")
    if not isinstance(gateway.transport, InMemoryTransport):
        raise HTTPException(status_code=501, detail="Transport does not support listing")
    return [MessageResponse(**asdict(m)) for m in gateway.transport.messages(channel)]
