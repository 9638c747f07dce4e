"""Tests for the moderation orchestrator and reports."""

import asyncio

import pytest

from chatguard.config import ModerationConfig
from chatguard.moderation.classifier import ClassifierResponse, ClassifierUnavailable
from chatguard.moderation.content_filter import ContentFilter
from chatguard.moderation.models import Severity, VerdictSource
from chatguard.moderation.orchestrator import ModerationOrchestrator, severity_for


class FakeClassifier:
    """Returns a canned result and records what it was asked."""

    def __init__(self, result=None, delay: float = 0.0, exc: Exception | None = None):
        self.result = result
        self.delay = delay
        self.exc = exc
        self.calls = []

    async def classify(self, text):
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.result


def _orchestrator(classifier, **config) -> ModerationOrchestrator:
    return ModerationOrchestrator(
        ContentFilter(),
        classifier=classifier,
        config=ModerationConfig(remote_enabled=True, **config),
    )


_HARASSMENT = ClassifierResponse(
    flagged=True,
    categories={"harassment": True},
    category_scores={"harassment": 0.95, "hate": 0.02},
)
_CLEARED = ClassifierResponse(flagged=False, category_scores={"harassment": 0.01})


def test_local_only_by_default():
    orchestrator = ModerationOrchestrator()
    assert not orchestrator.remote_enabled
    verdict = asyncio.run(orchestrator.moderate("Hello, how are you?"))
    assert verdict.is_clean
    assert verdict.source is VerdictSource.LOCAL_LEXICON


def test_local_rejection_skips_remote():
    classifier = FakeClassifier(_CLEARED)
    verdict = asyncio.run(_orchestrator(classifier).moderate("You are a chutiya"))
    assert not verdict.is_clean
    assert verdict.masked_text == "You are a *******"
    assert verdict.source is VerdictSource.LOCAL_LEXICON
    assert classifier.calls == []


def test_short_text_skips_remote():
    classifier = FakeClassifier(_HARASSMENT)
    verdict = asyncio.run(_orchestrator(classifier).moderate("ok"))
    assert verdict.is_clean
    assert verdict.source is VerdictSource.LOCAL_FAST
    assert classifier.calls == []


def test_remote_flags_locally_clean_text():
    classifier = FakeClassifier(_HARASSMENT)
    verdict = asyncio.run(_orchestrator(classifier).moderate("nobody will ever like you"))
    assert not verdict.is_clean
    assert verdict.source is VerdictSource.REMOTE_CLASSIFIER
    assert verdict.masked_text == "nobody will ever like you"
    assert verdict.confidence == pytest.approx(0.05)
    assert verdict.category_scores["harassment"] == pytest.approx(0.95)
    assert classifier.calls == ["nobody will ever like you"]


def test_remote_clears_text():
    verdict = asyncio.run(_orchestrator(FakeClassifier(_CLEARED)).moderate("have a nice day"))
    assert verdict.is_clean
    assert verdict.source is VerdictSource.REMOTE_CLASSIFIER
    assert verdict.masked_text == "have a nice day"


@pytest.mark.parametrize(
    "classifier",
    [
        FakeClassifier(ClassifierUnavailable("HTTP 500")),
        FakeClassifier(exc=RuntimeError("boom")),
        FakeClassifier(_HARASSMENT, delay=1.0),
    ],
    ids=["unavailable", "raises", "timeout"],
)
def test_remote_failure_falls_back_to_local(classifier):
    text = "have a nice day"
    local = ContentFilter().scan(text)
    verdict = asyncio.run(_orchestrator(classifier, remote_timeout=0.05).moderate(text))
    assert verdict.source is VerdictSource.FALLBACK
    assert verdict.is_clean == local.is_clean
    assert verdict.masked_text == local.masked_text
    assert verdict.confidence == local.confidence


def test_remote_disabled_in_config_is_not_called():
    classifier = FakeClassifier(_HARASSMENT)
    orchestrator = ModerationOrchestrator(classifier=classifier, config=ModerationConfig())
    verdict = asyncio.run(orchestrator.moderate("nobody will ever like you"))
    assert verdict.is_clean
    assert classifier.calls == []


def test_batch_preserves_order():
    orchestrator = ModerationOrchestrator()
    texts = ["hello there", "You are a chutiya", "ok", "f u c k this"]
    verdicts = asyncio.run(orchestrator.moderate_batch(texts))
    assert [v.is_clean for v in verdicts] == [True, False, True, False]
    assert verdicts[1].masked_text == "You are a *******"


# -- reports -----------------------------------------------------------------


@pytest.mark.parametrize(
    "confidence,severity",
    [(0.0, Severity.HIGH), (0.29, Severity.HIGH), (0.3, Severity.MEDIUM), (0.69, Severity.MEDIUM), (0.7, Severity.LOW), (1.0, Severity.LOW)],
)
def test_severity_tiers(confidence, severity):
    assert severity_for(confidence) is severity


def test_report_for_local_rejection():
    report = asyncio.run(ModerationOrchestrator().review("You are a chutiya"))
    assert not report.is_clean
    assert report.severity is Severity.HIGH
    assert report.masked_text == "You are a *******"
    assert report.matched_terms == ["chutiya"]
    assert '"chutiya"' in report.warning
    assert report.can_send_masked
    assert "Message contains highly inappropriate content" in report.recommendations
    assert "High confidence of profanity content" in report.recommendations
    assert [c.category for c in report.flagged_categories] == ["profanity"]


def test_report_for_clean_text():
    report = asyncio.run(ModerationOrchestrator().review("Hello, how are you?"))
    assert report.is_clean
    assert report.severity is Severity.LOW
    assert report.warning == ""
    assert report.recommendations == []
    assert not report.can_send_masked


def test_report_for_spam_is_medium():
    report = asyncio.run(ModerationOrchestrator().review("spam spam spam spam spam spam"))
    assert report.severity is Severity.MEDIUM
    assert "Review and edit before sending" in report.recommendations


def test_report_mentions_non_english_language():
    report = asyncio.run(ModerationOrchestrator().review("तुम चूतिया हो"))
    assert report.language == "hi"
    assert any(r.startswith("Hindi text was checked") for r in report.recommendations)


def test_remote_only_rejection_has_no_mask():
    report = asyncio.run(_orchestrator(FakeClassifier(_HARASSMENT)).review("nobody will ever like you"))
    assert not report.is_clean
    assert report.source is VerdictSource.REMOTE_CLASSIFIER
    assert not report.can_send_masked
    assert report.warning
    assert "High confidence of harassment content" in report.recommendations
