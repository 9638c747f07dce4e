"""Exception hierarchy for chatguard.

The rate limiter and the content filter never raise for well-typed input;
they return decision values.  The exceptions below are raised at the seams
where a decision has to stop a send (the message gateway) and at start-up
when configuration or lexicon packs are unusable.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chatguard.moderation.models import ModerationReport


class ChatGuardError(Exception):
    """Base class for every chatguard error."""


class ConfigError(ChatGuardError):
    """Configuration is malformed.  Fatal at initialization."""


class LexiconLoadError(ChatGuardError):
    """A lexicon extension pack could not be read.  Fatal at initialization."""


class RateLimited(ChatGuardError):
    """The sender exceeded the burst policy and must wait."""

    def __init__(self, retry_after: float, reason: str = "") -> None:
        self.retry_after = retry_after
        self.reason = reason or "You are sending messages too quickly."
        super().__init__(self.reason)

    @property
    def cooldown_seconds(self) -> int:
        return math.ceil(self.retry_after) if self.retry_after > 0 else 0


class ModerationRejected(ChatGuardError):
    """The message failed moderation; the caller must edit or confirm the mask."""

    def __init__(self, report: ModerationReport) -> None:
        self.report = report
        super().__init__(report.warning or "Message failed content moderation.")

    @property
    def masked_text(self) -> str:
        return self.report.masked_text

    @property
    def severity(self) -> str:
        return self.report.severity.value


class NoPendingMessage(ChatGuardError):
    """``confirm_masked`` was called with nothing awaiting confirmation."""
