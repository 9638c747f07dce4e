"""Per-sender send gate: burst tracking and cooldown blocks."""

from chatguard.ratelimit.limiter import RateLimiter
from chatguard.ratelimit.models import SendDecision, SendStatus, SenderRateState

__all__ = ["RateLimiter", "SendDecision", "SendStatus", "SenderRateState"]
