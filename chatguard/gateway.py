"""Message gateway: rate gate → moderation → transport.

This is the caller side of the policy core, as the chat screens use it.
A flagged message is never sent as typed.  When its masked form differs
from the original, it is parked until the sender confirms sending the
masked text (``confirm_masked``) or drops it (``discard``).
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from chatguard.config import ChatGuardConfig, GatewayConfig
from chatguard.errors import ModerationRejected, NoPendingMessage, RateLimited
from chatguard.moderation.classifier import build_classifier
from chatguard.moderation.content_filter import ContentFilter
from chatguard.moderation.models import ModerationReport
from chatguard.moderation.orchestrator import ModerationOrchestrator
from chatguard.ratelimit.limiter import RateLimiter

logger = logging.getLogger(__name__)

CHANNELS = ("public", "room", "private")


@dataclass
class StoredMessage:
    """A message handed to the transport."""

    identity: str
    text: str
    channel: str
    timestamp: str = ""
    id: str = ""
    masked: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            self.id = uuid.uuid4().hex[:12]
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


@dataclass
class PendingMessage:
    """A flagged message waiting for the sender to accept its masked form."""

    identity: str
    channel: str
    report: ModerationReport
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def masked_text(self) -> str:
        return self.report.masked_text


class MessageTransport(Protocol):
    """Where accepted messages go (the hosted message store in production)."""

    async def send(self, message: StoredMessage) -> StoredMessage: ...


class InMemoryTransport:
    """Transport that keeps messages per channel in memory."""

    def __init__(self) -> None:
        self._messages: dict[str, list[StoredMessage]] = defaultdict(list)

    async def send(self, message: StoredMessage) -> StoredMessage:
        self._messages[message.channel].append(message)
        return message

    def messages(self, channel: str) -> list[StoredMessage]:
        return list(self._messages.get(channel, []))


class MessageGateway:
    """Runs every outgoing message through the send gate and moderation."""

    def __init__(
        self,
        limiter: RateLimiter,
        moderator: ModerationOrchestrator,
        transport: MessageTransport,
        config: GatewayConfig | None = None,
    ) -> None:
        self.limiter = limiter
        self.moderator = moderator
        self.transport = transport
        self.config = config or GatewayConfig()
        self.config.validate()
        self._pending: dict[str, PendingMessage] = {}
        self._lock = threading.Lock()

    async def submit(self, identity: str, text: str, channel: str = "public") -> StoredMessage:
        """Send *text* for *identity* or raise why it cannot be sent.

        Raises :class:`RateLimited` when the sender is over the burst policy
        and :class:`ModerationRejected` when the content is flagged.
        """
        if channel not in CHANNELS:
            raise ValueError(f"Unknown channel {channel!r}")
        text = (text or "").strip()
        if not text:
            raise ValueError("Message is empty")

        if channel in self.config.rate_limited_channels:
            decision = self.limiter.check_send(identity)
            if not decision.allowed:
                raise RateLimited(decision.retry_after, decision.reason)

        report = await self.moderator.review(text)
        if not report.is_clean:
            with self._lock:
                if report.can_send_masked:
                    self._pending[identity] = PendingMessage(identity, channel, report)
                else:
                    self._pending.pop(identity, None)
            logger.info("Rejected message from %s (severity=%s)", identity, report.severity.value)
            raise ModerationRejected(report)

        with self._lock:
            self._pending.pop(identity, None)
        return await self.transport.send(StoredMessage(identity=identity, text=text, channel=channel))

    async def confirm_masked(self, identity: str) -> StoredMessage:
        """Send the parked masked text for *identity*.

        Confirming is a send, so it passes the rate gate again on rate-limited
        channels.  A blocked confirmation raises :class:`RateLimited` and the
        message stays parked.
        """
        with self._lock:
            pending = self._pending.get(identity)
        if pending is None:
            raise NoPendingMessage(f"No message awaiting confirmation for {identity!r}")

        if pending.channel in self.config.rate_limited_channels:
            decision = self.limiter.check_send(identity)
            if not decision.allowed:
                raise RateLimited(decision.retry_after, decision.reason)

        with self._lock:
            if self._pending.get(identity) is not pending:
                raise NoPendingMessage(f"No message awaiting confirmation for {identity!r}")
            del self._pending[identity]
        return await self.transport.send(
            StoredMessage(
                identity=identity,
                text=pending.masked_text,
                channel=pending.channel,
                masked=True,
            )
        )

    def pending(self, identity: str) -> PendingMessage | None:
        with self._lock:
            return self._pending.get(identity)

    def discard(self, identity: str) -> bool:
        with self._lock:
            return self._pending.pop(identity, None) is not None


def create_gateway(
    config: ChatGuardConfig | None = None,
    transport: MessageTransport | None = None,
) -> MessageGateway:
    """Wire a gateway from configuration."""
    config = config or ChatGuardConfig()
    content_filter = ContentFilter(config.content_filter)
    moderator = ModerationOrchestrator(
        content_filter,
        classifier=build_classifier(config.moderation),
        config=config.moderation,
    )
    return MessageGateway(
        RateLimiter(config.rate_limit),
        moderator,
        transport or InMemoryTransport(),
        config.gateway,
    )
