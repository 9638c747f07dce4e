"""Per-sender rate limiter.

Tracks, per identity, how quickly messages arrive.  A sender's first message,
and any message sent less than ``min_interval`` after the previous one, is a
*rapid hit*; reaching ``max_burst_messages`` rapid hits inside one rapid
window blocks the sender for ``cooldown`` seconds, so a tight burst is
blocked on its ``max_burst_messages``-th message.  State lives in memory only
and is lost on restart.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable

from chatguard.config import RateLimitConfig
from chatguard.ratelimit.models import SendDecision, SendStatus, SenderRateState

logger = logging.getLogger(__name__)

_BLOCKED_MSG = "You are blocked from sending messages. Please wait for the cooldown to end."


class RateLimiter:
    """Decides whether an identity may send a message now.

    Parameters
    ----------
    config : RateLimitConfig | None
        Burst policy.  Defaults to :class:`RateLimitConfig` defaults.
    clock : Callable[[], float]
        Source of "now" when callers do not pass one explicitly.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or RateLimitConfig()
        self.config.validate()
        self._clock = clock
        self._states: dict[str, SenderRateState] = {}
        self._lock = threading.Lock()

    # -- public API ----------------------------------------------------------

    def check_send(self, identity: str, now: float | None = None) -> SendDecision:
        """Gate one send attempt by *identity* and record it when allowed."""
        now = self._clock() if now is None else now
        cfg = self.config

        with self._lock:
            state = self._states.get(identity)
            first_send = state is None
            if first_send:
                # A first send opens the burst: it counts as the first rapid hit.
                state = self._states[identity] = SenderRateState(last_message_at=now)

            if state.is_blocked(now):
                return SendDecision(
                    allowed=False,
                    retry_after=state.blocked_until - now,
                    reason=_BLOCKED_MSG,
                )

            if state.blocked_until is not None:
                # Block has elapsed; start from a clean burst.
                state.blocked_until = None
                state.rapid_count = 0
                state.rapid_window_start = None

            if self._rapid_window_expired(state, now):
                state.rapid_count = 0
                state.rapid_window_start = None

            if now - state.last_message_at < cfg.min_interval:
                state.rapid_count += 1
                if state.rapid_window_start is None:
                    state.rapid_window_start = now
                if state.rapid_count >= cfg.max_burst_messages and not first_send:
                    state.blocked_until = now + cfg.cooldown
                    logger.info(
                        "Blocking %s for %.0fs after %d rapid messages",
                        identity,
                        cfg.cooldown,
                        state.rapid_count,
                    )
                    return SendDecision(
                        allowed=False,
                        retry_after=cfg.cooldown,
                        reason=(
                            "You have exceeded the rapid message limit. "
                            f"Please wait {cfg.cooldown:g} seconds."
                        ),
                    )
            else:
                state.rapid_count = 0
                state.rapid_window_start = None

            state.message_timestamps.append(now)
            state.last_message_at = now
            state.message_timestamps = [
                ts for ts in state.message_timestamps if now - ts < cfg.history_window
            ]
            return SendDecision(allowed=True)

    def status(self, identity: str, now: float | None = None) -> SendStatus:
        """Project *identity*'s state for display.  Never mutates anything."""
        now = self._clock() if now is None else now
        cfg = self.config

        with self._lock:
            state = self._states.get(identity)
            if state is None:
                return SendStatus(can_send=True, remaining=cfg.max_burst_messages)

            if state.is_blocked(now):
                return SendStatus(
                    can_send=False,
                    remaining=0,
                    cooldown_seconds=math.ceil(state.blocked_until - now),
                )

            in_window = (
                state.blocked_until is None
                and state.rapid_window_start is not None
                and not self._rapid_window_expired(state, now)
            )
            if in_window:
                remaining = max(0, cfg.max_burst_messages - state.rapid_count)
                return SendStatus(
                    can_send=remaining > 0,
                    remaining=remaining,
                    rapid_mode=state.rapid_count >= cfg.rapid_threshold,
                )

            return SendStatus(can_send=True, remaining=cfg.max_burst_messages)

    def reset(self, identity: str) -> None:
        """Forget everything about *identity* (administrative escape hatch)."""
        with self._lock:
            self._states.pop(identity, None)

    def clear(self) -> None:
        """Forget every identity."""
        with self._lock:
            self._states.clear()

    def tracked_identities(self) -> list[str]:
        with self._lock:
            return sorted(self._states)

    # -- helpers -------------------------------------------------------------

    def _rapid_window_expired(self, state: SenderRateState, now: float) -> bool:
        return (
            state.rapid_window_start is not None
            and now - state.rapid_window_start > self.config.rapid_window
        )
