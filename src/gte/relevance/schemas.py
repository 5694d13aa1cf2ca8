"""LLM output schema for relevance labeling."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class RelevanceOutput(BaseModel):
    """Structured output for the relevance prompt."""

    label: Literal["relevant", "not_relevant", "uncertain"]
    evidence: list[str] = Field(default_factory=list)
    reasoning: str = ""
    confidence: float = 0.0

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


def relevant_from_label(label: str) -> bool:
    """Only an explicit 'relevant' counts; uncertainty earns no credit."""
    if label == "relevant":
        return True
    if label in ("not_relevant", "uncertain"):
        return False
    raise ValueError(f"Unexpected label: {label!r}")
