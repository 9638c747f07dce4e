"""Remote content classifiers.

Two backends speak the same result shape (the OpenAI moderation contract):

* :class:`OpenAIModerationClassifier` posts ``{input, model}`` to a
  ``/v1/moderations``-style endpoint with ``httpx``;
* :class:`LLMClassifier` asks an Anthropic model to answer in that shape.

Responses are validated once, here, with pydantic.  ``classify`` never
raises for transport or payload problems: it returns
:class:`ClassifierUnavailable` instead, so callers only ever branch on two
outcomes.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

import anthropic
import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from chatguard.config import (
    DEFAULT_LLM_MODEL,
    DEFAULT_MODERATION_ENDPOINT,
    DEFAULT_MODERATION_MODEL,
    ModerationConfig,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClassifierResponse:
    """A validated classifier answer."""

    flagged: bool
    categories: dict[str, bool] = field(default_factory=dict, hash=False)
    category_scores: dict[str, float] = field(default_factory=dict, hash=False)
    model: str = ""

    @property
    def max_score(self) -> float:
        return max(self.category_scores.values(), default=0.0)

    @property
    def confidence(self) -> float:
        """Probability that the text is clean."""
        if self.category_scores:
            return round(1.0 - self.max_score, 4)
        return 0.0 if self.flagged else 1.0


@dataclass(frozen=True)
class ClassifierUnavailable:
    """The classifier could not give an answer.  Internal only."""

    reason: str


ClassifierResult = Union[ClassifierResponse, ClassifierUnavailable]


class Classifier(Protocol):
    async def classify(self, text: str) -> ClassifierResult: ...


# ---------------------------------------------------------------------------
# Payload validation
# ---------------------------------------------------------------------------


class _ModerationResult(BaseModel):
    flagged: bool
    categories: dict[str, bool] = Field(default_factory=dict)
    category_scores: dict[str, float] = Field(default_factory=dict)

    @field_validator("category_scores")
    @classmethod
    def _scores_in_range(cls, scores: dict[str, float]) -> dict[str, float]:
        for name, score in scores.items():
            if not 0.0 <= score <= 1.0:
                raise ValueError(f"score for {name!r} outside [0, 1]: {score}")
        return scores


class _ModerationPayload(BaseModel):
    results: list[_ModerationResult] = Field(min_length=1)


def parse_moderation_payload(data: Any, model: str = "") -> ClassifierResult:
    """Validate a decoded moderation response body."""
    try:
        payload = _ModerationPayload.model_validate(data)
    except ValidationError as exc:
        return ClassifierUnavailable(f"malformed classifier response: {exc.error_count()} error(s)")
    result = payload.results[0]
    return ClassifierResponse(
        flagged=result.flagged,
        categories=dict(result.categories),
        category_scores=dict(result.category_scores),
        model=model,
    )


# ---------------------------------------------------------------------------
# OpenAI-style moderation endpoint
# ---------------------------------------------------------------------------


class OpenAIModerationClassifier:
    """Client for an OpenAI-compatible moderation endpoint.

    Parameters
    ----------
    api_key : str | None
        Bearer token.  Falls back to ``OPENAI_API_KEY``.
    transport : httpx.AsyncBaseTransport | None
        Custom transport, mainly for tests (``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str | None = None,
        endpoint: str = DEFAULT_MODERATION_ENDPOINT,
        model: str = DEFAULT_MODERATION_MODEL,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def classify(self, text: str) -> ClassifierResult:
        if not self.configured:
            return ClassifierUnavailable("moderation API key not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.endpoint,
                    json={"input": text, "model": self.model},
                    headers=headers,
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            return ClassifierUnavailable(f"classifier returned HTTP {exc.response.status_code}")
        except httpx.RequestError as exc:
            return ClassifierUnavailable(f"classifier unreachable: {exc.__class__.__name__}")
        except ValueError:
            return ClassifierUnavailable("classifier returned invalid JSON")

        return parse_moderation_payload(data, model=self.model)


# ---------------------------------------------------------------------------
# Anthropic LLM backend
# ---------------------------------------------------------------------------

LLM_SYSTEM_PROMPT = """\
You are a content moderation classifier for a multilingual chat application.
Messages may be English, Hindi or Gujarati, in native script or romanized.
Reply with a single JSON object and nothing else, in exactly this shape:
{"results": [{"flagged": <bool>,
              "categories": {"harassment": <bool>, "hate": <bool>, "sexual": <bool>,
                             "violence": <bool>, "self-harm": <bool>, "profanity": <bool>},
              "category_scores": {"harassment": <0..1>, "hate": <0..1>, "sexual": <0..1>,
                                  "violence": <0..1>, "self-harm": <0..1>, "profanity": <0..1>}}]}
"""


def _extract_json(content: str) -> Any:
    start, end = content.find("{"), content.rfind("}")
    if start == -1 or end < start:
        raise ValueError("no JSON object in model output")
    return json.loads(content[start:end + 1])


class LLMClassifier:
    """Moderation through the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_LLM_MODEL,
        timeout: float = 5.0,
        client: Any = None,
    ) -> None:
        self.model = model
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if client is not None:
            self._client = client
        elif self.api_key:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key, timeout=timeout, max_retries=0)
        else:
            self._client = None

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def classify(self, text: str) -> ClassifierResult:
        if not self.configured:
            return ClassifierUnavailable("LLM not configured. Set ANTHROPIC_API_KEY.")

        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=512,
                temperature=0.0,
                system=LLM_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": text}],
            )
        except anthropic.APIError as exc:
            return ClassifierUnavailable(f"LLM classifier failed: {exc.__class__.__name__}")

        content = response.content[0].text if response.content else ""
        try:
            data = _extract_json(content)
        except ValueError:
            return ClassifierUnavailable("LLM classifier returned invalid JSON")
        return parse_moderation_payload(data, model=self.model)


def build_classifier(config: ModerationConfig) -> Classifier | None:
    """Classifier for *config*, or None when remote moderation is off."""
    if not config.remote_enabled:
        return None
    if config.backend == "anthropic":
        return LLMClassifier(api_key=config.api_key, model=config.llm_model, timeout=config.remote_timeout)
    return OpenAIModerationClassifier(
        api_key=config.api_key,
        endpoint=config.endpoint,
        model=config.model,
        timeout=config.remote_timeout,
    )
