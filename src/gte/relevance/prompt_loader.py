"""Prompt loading utilities."""

from __future__ import annotations

from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[3]
PREFIX = "r_"


def prompt_path(prompt_version: str) -> Path:
    """Resolve a prompt file path from a prompt_version like 'r_v001'."""
    if not prompt_version.startswith(PREFIX):
        raise ValueError(f"prompt_version must start with {PREFIX!r}")

    file_stub = prompt_version.removeprefix(PREFIX)
    return PROJECT_ROOT / "prompts" / "relevance" / f"{file_stub}.md"


def load_prompt(prompt_version: str) -> str:
    """Load a prompt file as UTF-8 text."""
    path = prompt_path(prompt_version)
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return path.read_text(encoding="utf-8").strip()
