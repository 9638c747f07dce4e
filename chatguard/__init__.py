"""chatguard — send-gate and content moderation core for chat applications.

Two policy engines:

- ``RateLimiter``: per-sender burst tracking with cooldown blocks
- ``ModerationOrchestrator``: local lexicon filter, optional remote
  classifier with local fallback, masking and reporting
"""

__version__ = "0.1.0"

from chatguard.config import ChatGuardConfig, load_config
from chatguard.errors import (
    ChatGuardError,
    ConfigError,
    LexiconLoadError,
    ModerationRejected,
    NoPendingMessage,
    RateLimited,
)
from chatguard.gateway import InMemoryTransport, MessageGateway, create_gateway
from chatguard.moderation import ContentFilter, ModerationOrchestrator, detect_language
from chatguard.ratelimit import RateLimiter

__all__ = [
    "ChatGuardConfig",
    "ChatGuardError",
    "ConfigError",
    "ContentFilter",
    "InMemoryTransport",
    "LexiconLoadError",
    "MessageGateway",
    "ModerationOrchestrator",
    "ModerationRejected",
    "NoPendingMessage",
    "RateLimited",
    "RateLimiter",
    "__version__",
    "create_gateway",
    "detect_language",
    "load_config",
]
