"""Prompt loading and rendering helpers for the AI rewriter."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_rewrite_system_prompt() -> str:
    return _render_template("rewrite_system")


def build_rewrite_prompt(title: str, content: str | None, max_chars: int = 12000) -> str:
    body = (content or "").strip()[:max_chars]
    if not body:
        body = "No content provided - research based on the title"
    return _render_template("rewrite_user", title=title, content=body)


def build_analysis_system_prompt(
    sectors: list[str],
    markets: list[str],
    business_types: list[str],
    categories: list[str],
) -> str:
    return _render_template(
        "analysis_system",
        sectors=_bullets(sectors),
        markets=_bullets(markets),
        business_types=_bullets(business_types),
        categories=_bullets(categories),
    )


def build_analysis_prompt(title: str, content: str | None, max_chars: int = 12000) -> str:
    body = (content or "").strip()[:max_chars]
    if not body:
        body = "No content available - analyze based on title"
    return _render_template("analysis_user", title=title, content=body)


def _bullets(values: list[str]) -> str:
    return "\n".join(f"- {value}" for value in values)
