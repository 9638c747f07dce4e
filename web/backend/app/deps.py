"""Shared FastAPI dependencies.

One gateway per process, built lazily from ``load_config()``.  Tests swap it
with ``app.dependency_overrides[get_gateway]``.
"""

from __future__ import annotations

from typing import Optional

from chatguard.config import load_config
from chatguard.gateway import MessageGateway, create_gateway

# Shared gateway instance
_gateway: Optional[MessageGateway] = None


def get_gateway() -> MessageGateway:
    """Return the singleton MessageGateway instance."""
    global _gateway
    if _gateway is None:
        _gateway = create_gateway(load_config())
    return _gateway
