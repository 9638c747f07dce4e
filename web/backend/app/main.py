"""FastAPI application for the chatguard send-gate and moderation service.

Provides REST API endpoints wrapping the chatguard package for:
- Rate limit checks and status polling
- Content scanning, moderation reports and batch moderation
- Message submission through the gateway (rate gate, moderation, transport)
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatguard import __version__
from web.backend.app.routers import messages, moderation, ratelimit

app = FastAPI(
    title="chatguard API",
    description=(
        "REST API for chatguard. "
        "Provides endpoints for per-sender rate limiting, content moderation "
        "and moderated message delivery."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(ratelimit.router)
app.include_router(moderation.router)
app.include_router(messages.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "chatguard API",
        "version": __version__,
        "description": "Chat rate limiting and content moderation REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
