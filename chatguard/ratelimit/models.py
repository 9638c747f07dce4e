"""Data models for the per-sender send gate."""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass
class SenderRateState:
    """Burst-tracking state for one identity.  Times are clock seconds."""

    message_timestamps: list[float] = field(default_factory=list)
    last_message_at: float | None = None
    rapid_count: int = 0
    rapid_window_start: float | None = None
    blocked_until: float | None = None

    def is_blocked(self, now: float) -> bool:
        return self.blocked_until is not None and now < self.blocked_until


@dataclass(frozen=True)
class SendDecision:
    """Outcome of a single ``check_send`` call."""

    allowed: bool
    retry_after: float = 0.0
    reason: str = ""

    @property
    def cooldown_seconds(self) -> int:
        return math.ceil(self.retry_after) if self.retry_after > 0 else 0


@dataclass(frozen=True)
class SendStatus:
    """Read-only projection of a sender's state, polled by the UI."""

    can_send: bool
    remaining: int
    cooldown_seconds: int = 0
    rapid_mode: bool = False
