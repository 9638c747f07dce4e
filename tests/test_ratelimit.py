"""Tests for the per-sender rate limiter."""

import pytest

from chatguard.config import RateLimitConfig
from chatguard.errors import RateLimited
from chatguard.ratelimit.limiter import RateLimiter
from chatguard.ratelimit.models import SendDecision


def _burst(limiter: RateLimiter, identity: str, count: int, start: float = 0.0, step: float = 0.1):
    """Send *count* messages spaced *step* seconds apart; return the decisions."""
    return [limiter.check_send(identity, now=start + i * step) for i in range(count)]


def test_first_send_allowed():
    limiter = RateLimiter()
    decision = limiter.check_send("alice", now=0.0)
    assert decision.allowed
    assert decision.cooldown_seconds == 0


def test_tenth_call_of_a_burst_blocks():
    limiter = RateLimiter()
    decisions = _burst(limiter, "alice", 10)
    assert all(d.allowed for d in decisions[:9])

    blocked = decisions[9]
    assert not blocked.allowed
    assert blocked.cooldown_seconds == 15
    assert "wait 15 seconds" in blocked.reason


def test_blocked_retry_after_strictly_decreases():
    limiter = RateLimiter()
    _burst(limiter, "alice", 11)
    remaining = []
    for i in range(1, 10):
        decision = limiter.check_send("alice", now=1.0 + i * 0.5)
        assert not decision.allowed
        remaining.append(decision.retry_after)
    assert all(a > b for a, b in zip(remaining, remaining[1:]))


def test_normal_pace_never_blocks():
    limiter = RateLimiter()
    decisions = _burst(limiter, "bob", 50, step=2.0)
    assert all(d.allowed for d in decisions)
    assert limiter.status("bob", now=100.0).remaining == 10


def test_slow_message_resets_rapid_count():
    limiter = RateLimiter()
    _burst(limiter, "carol", 8)
    assert limiter.check_send("carol", now=5.0).allowed
    decisions = _burst(limiter, "carol", 9, start=5.1)
    assert all(d.allowed for d in decisions)


def test_block_expires_after_cooldown():
    limiter = RateLimiter()
    _burst(limiter, "dave", 11)
    assert not limiter.check_send("dave", now=10.0).allowed
    assert limiter.check_send("dave", now=16.1).allowed
    status = limiter.status("dave", now=16.2)
    assert status.can_send
    assert status.remaining == 10


def test_rapid_window_expiry_resets_count():
    config = RateLimitConfig(rapid_window=2.0)
    limiter = RateLimiter(config)
    # the rapid count restarts with every window and never reaches ten
    decisions = _burst(limiter, "erin", 30, step=0.5)
    assert all(d.allowed for d in decisions)


def test_identities_are_independent():
    limiter = RateLimiter()
    _burst(limiter, "alice", 11)
    assert not limiter.check_send("alice", now=1.2).allowed
    assert limiter.check_send("bob", now=1.2).allowed


def test_status_unknown_identity():
    status = RateLimiter().status("nobody", now=0.0)
    assert status.can_send
    assert status.remaining == 10
    assert status.cooldown_seconds == 0
    assert not status.rapid_mode


def test_status_is_idempotent():
    limiter = RateLimiter()
    _burst(limiter, "alice", 5)
    first = limiter.status("alice", now=0.5)
    for _ in range(20):
        assert limiter.status("alice", now=0.5) == first
    assert first.remaining == 5
    assert first.rapid_mode
    # polling did not consume budget
    assert all(d.allowed for d in _burst(limiter, "alice", 4, start=0.5))
    assert not limiter.check_send("alice", now=0.9).allowed


def test_status_while_blocked():
    limiter = RateLimiter()
    _burst(limiter, "alice", 11)
    status = limiter.status("alice", now=3.4)
    assert not status.can_send
    assert status.remaining == 0
    assert status.cooldown_seconds == 13


def test_rapid_mode_follows_threshold():
    limiter = RateLimiter(RateLimitConfig(rapid_threshold=5))
    _burst(limiter, "alice", 3)
    assert not limiter.status("alice", now=0.3).rapid_mode
    _burst(limiter, "alice", 3, start=0.3)
    assert limiter.status("alice", now=0.6).rapid_mode


def test_reset_and_clear():
    limiter = RateLimiter()
    _burst(limiter, "alice", 11)
    _burst(limiter, "bob", 2)
    assert limiter.tracked_identities() == ["alice", "bob"]

    limiter.reset("alice")
    assert limiter.check_send("alice", now=1.5).allowed
    limiter.clear()
    assert limiter.tracked_identities() == []


def test_history_is_pruned():
    limiter = RateLimiter(RateLimitConfig(history_window=5.0))
    _burst(limiter, "alice", 20, step=2.0)
    state = limiter._states["alice"]
    assert len(state.message_timestamps) == 3


def test_injected_clock():
    now = [100.0]
    limiter = RateLimiter(RateLimitConfig(max_burst_messages=2), clock=lambda: now[0])
    assert limiter.check_send("alice").allowed
    assert not limiter.check_send("alice").allowed
    now[0] += 20
    assert limiter.check_send("alice").allowed


def test_first_send_counts_toward_burst():
    limiter = RateLimiter(RateLimitConfig(max_burst_messages=3))
    assert limiter.check_send("alice", now=0.0).allowed
    status = limiter.status("alice", now=0.0)
    assert status.remaining == 2
    assert limiter.check_send("alice", now=0.1).allowed
    assert not limiter.check_send("alice", now=0.2).allowed


def test_single_message_limit_still_allows_first_send():
    limiter = RateLimiter(RateLimitConfig(max_burst_messages=1))
    assert limiter.check_send("alice", now=0.0).allowed
    assert not limiter.check_send("alice", now=0.1).allowed


@pytest.mark.parametrize("retry_after", [0.0, -1.0, 0.2, 14.0, 14.2])
def test_cooldown_seconds_agree_between_decision_and_error(retry_after):
    decision = SendDecision(allowed=False, retry_after=retry_after)
    assert RateLimited(retry_after).cooldown_seconds == decision.cooldown_seconds
