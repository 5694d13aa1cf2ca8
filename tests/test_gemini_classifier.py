import httpx
import orjson
import pytest

from gte.config import Settings
from gte.relevance.classifier import CIVIC_ISSUE, GENERAL, RelevanceUnavailable
from gte.relevance.gemini import GeminiRelevanceClassifier


def _settings() -> Settings:
    return Settings(_env_file=None, google_api_key="test-key", relevance_prompt_version="r_v001")


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _classifier(handler) -> tuple[GeminiRelevanceClassifier, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request, len(seen))

    client = httpx.Client(transport=httpx.MockTransport(recording))
    return GeminiRelevanceClassifier(_settings(), http=client), seen


def test_relevant_answer_maps_to_civic_issue():
    answer = orjson.dumps({"label": "relevant", "confidence": 0.9, "evidence": ["pothole"]}).decode()
    classifier, seen = _classifier(lambda request, n: httpx.Response(200, json=_reply(answer)))

    verdict = classifier.classify("Pothole", "Road Repair", "deep pothole on main road")

    assert verdict.relevant is True
    assert verdict.label == CIVIC_ISSUE
    assert verdict.confidence == 0.9
    assert seen[0].url.params["key"] == "test-key"
    assert seen[0].url.path.endswith(":generateContent")
    assert "deep pothole on main road" in orjson.loads(seen[0].content)["contents"][0]["parts"][0]["text"]


def test_fenced_uncertain_answer_is_not_relevant():
    answer = '```json\n{"label": "uncertain", "confidence": 0.4}\n```'
    classifier, _ = _classifier(lambda request, n: httpx.Response(200, json=_reply(answer)))
    verdict = classifier.classify("Hi", "Other", "hello")
    assert verdict.relevant is False
    assert verdict.label != GENERAL


def test_malformed_answer_gets_one_repair_attempt():
    good = '{"label": "not_relevant", "confidence": 0.8}'

    def handler(request, n):
        return httpx.Response(200, json=_reply("I think it is fine" if n == 1 else good))

    classifier, seen = _classifier(handler)
    verdict = classifier.classify("Hi", "Other", "hello")
    assert len(seen) == 2
    assert verdict.label == GENERAL


def test_persistent_bad_output_raises_unavailable():
    classifier, seen = _classifier(lambda request, n: httpx.Response(200, json=_reply("nope")))
    with pytest.raises(RelevanceUnavailable):
        classifier.classify("Hi", "Other", "hello")
    assert len(seen) == 2


def test_http_error_raises_unavailable():
    classifier, seen = _classifier(lambda request, n: httpx.Response(503, json={"error": "busy"}))
    with pytest.raises(RelevanceUnavailable):
        classifier.classify("Hi", "Other", "hello")
    assert len(seen) == 1


def test_requires_api_key():
    with pytest.raises(ValueError):
        GeminiRelevanceClassifier(Settings(_env_file=None, google_api_key=None))
