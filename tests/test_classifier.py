"""Tests for the remote classifiers."""

import asyncio
import json
from types import SimpleNamespace

import anthropic
import httpx

from chatguard.config import ModerationConfig
from chatguard.moderation.classifier import (
    ClassifierResponse,
    ClassifierUnavailable,
    LLMClassifier,
    OpenAIModerationClassifier,
    build_classifier,
    parse_moderation_payload,
)

_FLAGGED = {
    "id": "modr-1",
    "model": "omni-moderation-latest",
    "results": [
        {
            "flagged": True,
            "categories": {"harassment": True, "hate": False},
            "category_scores": {"harassment": 0.92, "hate": 0.01},
        }
    ],
}


def _classifier(handler, **kwargs) -> OpenAIModerationClassifier:
    return OpenAIModerationClassifier(
        api_key="sk-test",
        endpoint="https://moderation.test/v1/moderations",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_openai_flagged_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_FLAGGED)

    result = asyncio.run(_classifier(handler).classify("some text"))
    assert isinstance(result, ClassifierResponse)
    assert result.flagged
    assert result.categories["harassment"] is True
    assert result.max_score == 0.92
    assert result.confidence == 0.08
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {"input": "some text", "model": "omni-moderation-latest"}


def test_openai_cleared_response():
    def handler(request):
        return httpx.Response(
            200, json={"results": [{"flagged": False, "category_scores": {"hate": 0.0}}]}
        )

    result = asyncio.run(_classifier(handler).classify("hello"))
    assert isinstance(result, ClassifierResponse)
    assert not result.flagged
    assert result.confidence == 1.0


def test_openai_http_error():
    result = asyncio.run(_classifier(lambda r: httpx.Response(503)).classify("hello"))
    assert isinstance(result, ClassifierUnavailable)
    assert "503" in result.reason


def test_openai_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = asyncio.run(_classifier(handler).classify("hello"))
    assert isinstance(result, ClassifierUnavailable)
    assert "ConnectError" in result.reason


def test_openai_invalid_json():
    result = asyncio.run(
        _classifier(lambda r: httpx.Response(200, content=b"<html>oops</html>")).classify("hello")
    )
    assert isinstance(result, ClassifierUnavailable)


def test_openai_malformed_payload():
    for body in ({"results": []}, {"nope": 1}, {"results": [{"category_scores": {"hate": 3.0}, "flagged": True}]}):
        result = asyncio.run(_classifier(lambda r, b=body: httpx.Response(200, json=b)).classify("x y z"))
        assert isinstance(result, ClassifierUnavailable), body


def test_openai_without_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    classifier = OpenAIModerationClassifier(api_key="")
    assert not classifier.configured
    result = asyncio.run(classifier.classify("hello"))
    assert isinstance(result, ClassifierUnavailable)


def test_parse_payload_without_scores():
    result = parse_moderation_payload({"results": [{"flagged": True}]})
    assert isinstance(result, ClassifierResponse)
    assert result.confidence == 0.0


# -- LLM backend -------------------------------------------------------------


def _fake_client(text: str = "", exc: Exception | None = None):
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        if exc is not None:
            raise exc
        return SimpleNamespace(content=[SimpleNamespace(text=text)])

    return SimpleNamespace(messages=SimpleNamespace(create=create)), calls


def test_llm_classifier_parses_json():
    client, calls = _fake_client("Here you go:\n" + json.dumps(_FLAGGED))
    result = asyncio.run(LLMClassifier(client=client).classify("you suck"))
    assert isinstance(result, ClassifierResponse)
    assert result.flagged
    assert calls[0]["messages"] == [{"role": "user", "content": "you suck"}]
    assert "JSON" in calls[0]["system"]


def test_llm_classifier_bad_output():
    client, _ = _fake_client("I cannot help with that.")
    result = asyncio.run(LLMClassifier(client=client).classify("hello"))
    assert isinstance(result, ClassifierUnavailable)


def test_llm_classifier_api_error():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client, _ = _fake_client(exc=anthropic.APIConnectionError(request=request))
    result = asyncio.run(LLMClassifier(client=client).classify("hello"))
    assert isinstance(result, ClassifierUnavailable)


def test_llm_classifier_not_configured(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    result = asyncio.run(LLMClassifier().classify("hello"))
    assert isinstance(result, ClassifierUnavailable)


def test_build_classifier():
    assert build_classifier(ModerationConfig()) is None
    openai_cfg = ModerationConfig(remote_enabled=True, api_key="sk-test")
    assert isinstance(build_classifier(openai_cfg), OpenAIModerationClassifier)
    llm_cfg = ModerationConfig(remote_enabled=True, backend="anthropic", api_key="sk-ant-test")
    assert isinstance(build_classifier(llm_cfg), LLMClassifier)
