"""Configuration for the rate limiter, the content filter and moderation.

Defaults mirror the production policy.  A YAML file can override any of
them; a handful of environment variables override the YAML for values that
differ between deployments (remote moderation switch, endpoint, API keys).

Example ``chatguard.yaml``::

    rate_limit:
      max_burst_messages: 10
      cooldown: 15
    content_filter:
      whitelist: [scunthorpe]
    moderation:
      remote_enabled: true
      backend: openai
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from chatguard.errors import ConfigError

CLASSIFIER_BACKENDS = ("openai", "anthropic")

DEFAULT_MODERATION_ENDPOINT = "https://api.openai.com/v1/moderations"
DEFAULT_MODERATION_MODEL = "omni-moderation-latest"
DEFAULT_LLM_MODEL = "claude-haiku-3-5-20241022"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


def _expect(section: str, obj: Any, names: tuple[str, ...], kind: type | tuple[type, ...], label: str) -> None:
    """Raise ConfigError unless every named field is an instance of *kind*.

    ``bool`` is an ``int`` subclass, so booleans only pass where *kind* is bool.
    """
    for name in names:
        value = getattr(obj, name)
        if not isinstance(value, kind) or (isinstance(value, bool) and kind is not bool):
            raise ConfigError(f"{section}.{name} must be {label}, got {value!r}")


def _expect_str_list(section: str, name: str, value: Any) -> None:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{section}.{name} must be a list of strings, got {value!r}")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass
class RateLimitConfig:
    """Burst policy for the per-sender send gate.  Durations are seconds."""

    max_burst_messages: int = 10
    rapid_threshold: int = 3
    rapid_window: float = 15.0
    min_interval: float = 1.0
    cooldown: float = 15.0
    history_window: float = 30.0

    def validate(self) -> None:
        _expect("rate_limit", self, ("max_burst_messages", "rapid_threshold"), int, "an integer")
        _expect(
            "rate_limit",
            self,
            ("rapid_window", "min_interval", "cooldown", "history_window"),
            (int, float),
            "a number of seconds",
        )
        if self.max_burst_messages < 1:
            raise ConfigError("rate_limit.max_burst_messages must be at least 1")
        if self.rapid_threshold < 1:
            raise ConfigError("rate_limit.rapid_threshold must be at least 1")
        for name in ("rapid_window", "min_interval", "cooldown", "history_window"):
            if getattr(self, name) < 0:
                raise ConfigError(f"rate_limit.{name} must not be negative")


@dataclass
class FilterConfig:
    """Local lexicon filter switches and thresholds."""

    enabled: bool = True
    min_length: int = 3
    placeholder: str = "*"
    filter_obfuscation: bool = True
    filter_repetition: bool = True
    filter_abbreviations: bool = True
    use_profanity_library: bool = True
    include_library_wordlist: bool = False
    max_word_repetition: int = 5
    min_word_length_for_repetition: int = 3
    repeated_char_run: int = 4
    additional_terms: dict[str, list[str]] = field(default_factory=dict)
    whitelist: list[str] = field(default_factory=list)
    lexicon_path: str | None = None

    def validate(self) -> None:
        section = "content_filter"
        _expect(
            section,
            self,
            (
                "enabled",
                "filter_obfuscation",
                "filter_repetition",
                "filter_abbreviations",
                "use_profanity_library",
                "include_library_wordlist",
            ),
            bool,
            "true or false",
        )
        _expect(
            section,
            self,
            ("min_length", "max_word_repetition", "min_word_length_for_repetition", "repeated_char_run"),
            int,
            "an integer",
        )
        _expect(section, self, ("placeholder",), str, "a string")
        if not isinstance(self.additional_terms, dict):
            raise ConfigError(f"{section}.additional_terms must map locale -> terms")
        for locale, terms in self.additional_terms.items():
            _expect_str_list(section, f"additional_terms.{locale}", terms)
        _expect_str_list(section, "whitelist", self.whitelist)
        if self.lexicon_path is not None and not isinstance(self.lexicon_path, (str, Path)):
            raise ConfigError(f"{section}.lexicon_path must be a path, got {self.lexicon_path!r}")
        if len(self.placeholder) != 1:
            raise ConfigError("content_filter.placeholder must be a single character")
        if self.placeholder.isalnum():
            raise ConfigError("content_filter.placeholder must not be a letter or digit")
        if self.min_length < 0:
            raise ConfigError("content_filter.min_length must not be negative")
        if self.max_word_repetition < 1:
            raise ConfigError("content_filter.max_word_repetition must be at least 1")
        if self.repeated_char_run < 2:
            raise ConfigError("content_filter.repeated_char_run must be at least 2")


@dataclass
class ModerationConfig:
    """Remote classifier settings."""

    remote_enabled: bool = False
    backend: str = "openai"
    endpoint: str = DEFAULT_MODERATION_ENDPOINT
    model: str = DEFAULT_MODERATION_MODEL
    llm_model: str = DEFAULT_LLM_MODEL
    api_key: str = ""
    remote_timeout: float = 5.0

    def validate(self) -> None:
        _expect("moderation", self, ("remote_enabled",), bool, "true or false")
        _expect("moderation", self, ("backend", "endpoint", "model", "llm_model", "api_key"), str, "a string")
        _expect("moderation", self, ("remote_timeout",), (int, float), "a number of seconds")
        if self.backend not in CLASSIFIER_BACKENDS:
            raise ConfigError(
                f"moderation.backend must be one of {', '.join(CLASSIFIER_BACKENDS)}, "
                f"got {self.backend!r}"
            )
        if self.remote_timeout <= 0:
            raise ConfigError("moderation.remote_timeout must be positive")


@dataclass
class GatewayConfig:
    """Which chat channels go through the send gate."""

    rate_limited_channels: list[str] = field(default_factory=lambda: ["public"])
    allow_override: bool = False

    def validate(self) -> None:
        _expect_str_list("gateway", "rate_limited_channels", self.rate_limited_channels)
        _expect("gateway", self, ("allow_override",), bool, "true or false")
        if self.allow_override:
            raise ConfigError(
                "gateway.allow_override is not supported: a flagged original is never sent"
            )


@dataclass
class ChatGuardConfig:
    """Top-level configuration object."""

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    content_filter: FilterConfig = field(default_factory=FilterConfig)
    moderation: ModerationConfig = field(default_factory=ModerationConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)

    def validate(self) -> ChatGuardConfig:
        self.rate_limit.validate()
        self.content_filter.validate()
        self.moderation.validate()
        self.gateway.validate()
        return self

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict view with the API key redacted."""
        data = {
            name: {f.name: getattr(getattr(self, name), f.name) for f in fields(getattr(self, name))}
            for name in _SECTIONS
        }
        if data["moderation"]["api_key"]:
            data["moderation"]["api_key"] = "***"
        return data


_SECTIONS: dict[str, type] = {
    "rate_limit": RateLimitConfig,
    "content_filter": FilterConfig,
    "moderation": ModerationConfig,
    "gateway": GatewayConfig,
}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _build_section(name: str, raw: Any) -> Any:
    cls = _SECTIONS[name]
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"Section {name!r} must be a mapping")
    known = {f.name: f for f in fields(cls)}
    unknown = set(raw) - set(known)
    if unknown:
        raise ConfigError(f"Unknown keys in {name!r}: {', '.join(sorted(unknown))}")
    try:
        return cls(**raw)
    except TypeError as exc:
        raise ConfigError(f"Invalid section {name!r}: {exc}") from exc


def config_from_dict(data: dict[str, Any] | None) -> ChatGuardConfig:
    """Build and validate a config from a parsed mapping."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")
    config = ChatGuardConfig(**{name: _build_section(name, data.get(name)) for name in _SECTIONS})
    _apply_env(config)
    return config.validate()


def load_config(path: str | Path | None = None) -> ChatGuardConfig:
    """Load configuration from *path*, ``$CHATGUARD_CONFIG``, or defaults.

    Raises :class:`ConfigError` when the file is missing or malformed.
    """
    path = path or os.environ.get("CHATGUARD_CONFIG")
    if not path:
        return config_from_dict({})

    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {config_path}: {exc}") from exc
    return config_from_dict(data)


def _apply_env(config: ChatGuardConfig) -> None:
    mod = config.moderation
    mod.remote_enabled = _env_bool("CHATGUARD_REMOTE_MODERATION", mod.remote_enabled)
    mod.backend = os.environ.get("CHATGUARD_CLASSIFIER_BACKEND", mod.backend)
    mod.endpoint = os.environ.get("CHATGUARD_CLASSIFIER_ENDPOINT", mod.endpoint)
    if not mod.api_key:
        key_var = "ANTHROPIC_API_KEY" if mod.backend == "anthropic" else "OPENAI_API_KEY"
        mod.api_key = os.environ.get(key_var, "")
