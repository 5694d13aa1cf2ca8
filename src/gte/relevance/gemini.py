"""Gemini-backed relevance classifier."""

from __future__ import annotations

import time
from typing import Any, Optional

import httpx
import orjson
from pydantic import ValidationError

from gte.config import Settings
from gte.relevance.classifier import (
    CIVIC_ISSUE,
    GENERAL,
    UNCERTAIN,
    RelevanceUnavailable,
    RelevanceVerdict,
)
from gte.relevance.prompt_loader import load_prompt
from gte.relevance.schemas import RelevanceOutput, relevant_from_label
from gte.utils.logging import get_logger


logger = get_logger(__name__)

REPAIR_SUFFIX = (
    "\n\nIMPORTANT: Your previous answer was not valid. Reply with exactly one JSON "
    "object matching the schema, without markdown or extra keys."
)

LABELS = {"relevant": CIVIC_ISSUE, "not_relevant": GENERAL, "uncertain": UNCERTAIN}


def response_text(payload: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError("Gemini response has no candidate content") from exc

    text = "\n".join(
        part["text"] for part in parts if isinstance(part.get("text"), str) and part["text"].strip()
    ).strip()
    if not text:
        raise ValueError("Gemini response has no text")
    return text


def strip_code_fences(text: str) -> str:
    lines = text.strip().splitlines()
    if lines and lines[0].startswith("```"):
        lines = lines[1:]
        if lines and lines[-1].startswith("```"):
            lines = lines[:-1]
    return "\n".join(lines).strip()


def extract_json_object(text: str) -> str:
    """Return the JSON object inside model output, tolerating fences and chatter."""
    body = strip_code_fences(text)
    start, end = body.find("{"), body.rfind("}")
    if start < 0 or end <= start:
        raise ValueError("No JSON object in model output")
    candidate = body[start : end + 1]
    orjson.loads(candidate)
    return candidate


class GeminiRelevanceClassifier:
    """Asks Gemini whether a report describes a real civic issue.

    Malformed output gets one repair attempt. A transport failure or a second
    bad answer raises RelevanceUnavailable; the worker decides whether to retry.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.settings = settings or Settings()
        if not self.settings.google_api_key:
            raise ValueError("GOOGLE_API_KEY must be set for the Gemini relevance classifier")
        self.http = http or httpx.Client(timeout=self.settings.gemini_timeout_seconds)
        self.prompt = load_prompt(self.settings.relevance_prompt_version)

    @property
    def endpoint(self) -> str:
        base = self.settings.gemini_api_base_url.rstrip("/")
        return f"{base}/models/{self.settings.gemini_model_id}:generateContent"

    def _generate(self, prompt: str) -> str:
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.settings.gemini_temperature,
                "maxOutputTokens": self.settings.gemini_max_output_tokens,
                "responseMimeType": "application/json",
            },
        }
        response = self.http.post(
            self.endpoint, params={"key": self.settings.google_api_key}, json=body
        )
        response.raise_for_status()
        return response_text(response.json())

    def _ask(self, report: str) -> RelevanceOutput:
        prompt = f"{self.prompt}\n\nINPUT:\n{report}\n"
        last_error = "no attempt made"
        for attempt in (1, 2):
            try:
                text = self._generate(prompt if attempt == 1 else prompt + REPAIR_SUFFIX)
            except (httpx.HTTPError, ValueError) as exc:
                raise RelevanceUnavailable(f"Gemini request failed: {exc}") from exc
            try:
                return RelevanceOutput.model_validate_json(extract_json_object(text))
            except (ValidationError, ValueError) as exc:
                last_error = str(exc)
                logger.debug("relevance.gemini.repair attempt=%s error=%s", attempt, exc)
        raise RelevanceUnavailable(f"Gemini output unusable: {last_error}")

    def classify(self, title: str, category: str, description: str) -> RelevanceVerdict:
        report = "\n".join(
            [(title or "").strip(), (category or "").strip(), "", (description or "").strip()]
        )
        started = time.monotonic()
        output = self._ask(report)
        logger.debug(
            "relevance.gemini.ok",
            extra={
                "label": output.label,
                "confidence": output.confidence,
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return RelevanceVerdict(
            relevant=relevant_from_label(output.label),
            label=LABELS[output.label],
            confidence=output.confidence,
        )
