"""Perplexity (OpenAI-compatible chat completions) rewriter and shared request helpers."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...core.types import RewriteResult
from ...logging_utils import log_event, truncate_text
from ..prompts import build_rewrite_prompt, build_rewrite_system_prompt
from ..tracing import record_span_error, set_span_output, start_span
from .base import Rewriter

logger = logging.getLogger(__name__)


class PerplexityRewriter(Rewriter):
    """Rewrites articles through Perplexity's search-backed chat model."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Perplexity API key")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._transport = transport

    def rewrite(self, title: str, content: str | None) -> RewriteResult | None:
        prompt = build_rewrite_prompt(title, content)
        payload = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": build_rewrite_system_prompt()},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.cfg.max_tokens,
            "temperature": self.cfg.temperature,
        }
        text = ""
        with start_span(
            "perplexity.rewrite",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": "perplexity", "article.title": title},
        ) as span:
            try:
                data = post_completion(self.cfg, self.api_key, payload, self._transport)
                text = extract_text(data)
                set_span_output(span, text)
                result = parse_rewrite(text)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_response(title, "provider_error", str(exc), prompt)
                return None
            except (json.JSONDecodeError, ValueError) as exc:
                record_span_error(span, exc)
                self._log_response(title, "parse_error", text, prompt)
                return None

        self._log_response(title, "ok", text, prompt, tokens=total_tokens(data))
        return result

    def _log_response(
        self,
        title: str,
        status: str,
        content: str,
        prompt: str,
        tokens: int | None = None,
    ) -> None:
        if status == "ok":
            logger.info("Rewrote %r", title[:50])
        else:
            logger.warning("Rewrite failed for %r (%s)", title[:50], status)
        log_llm_response(
            self.llm_logger,
            self.log_cfg,
            "llm_rewrite_response",
            {"status": status, "model": self.cfg.model, "article_title": title, "total_tokens": tokens},
            content,
            prompt,
        )


def post_completion(
    cfg: ProviderConfig,
    api_key: str,
    payload: dict[str, Any],
    transport: httpx.BaseTransport | None = None,
) -> dict[str, Any]:
    """POST a chat completion request and return the decoded body."""
    headers = {"Authorization": f"Bearer {api_key}"}
    with httpx.Client(
        timeout=cfg.timeout_seconds,
        trust_env=cfg.trust_env,
        transport=transport,
    ) as client:
        resp = client.post(cfg.base_url, headers=headers, json=payload)
        resp.raise_for_status()
        return resp.json()


def log_llm_response(
    llm_logger: logging.Logger | None,
    log_cfg: LoggingConfig,
    event: str,
    fields: dict[str, Any],
    content: str,
    prompt: str,
) -> None:
    """Write one provider response to the dedicated LLM log, if enabled."""
    if llm_logger is None or not log_cfg.llm_log_enabled:
        return
    payload: dict[str, Any] = {"event": event, **fields, "raw_response": truncate_text(content)}
    if log_cfg.llm_log_detail == "prompt_response":
        payload["raw_prompt"] = truncate_text(prompt)
    log_event(llm_logger, "LLM response", **payload)


def parse_rewrite(content: str) -> RewriteResult:
    """Parse a rewrite response into a RewriteResult.

    Raises:
        json.JSONDecodeError: If no JSON object can be found
        ValueError: If `rewrittenTitle` or `rewrittenContent` is missing
    """
    obj = parse_json_response(content)
    title = str(obj.get("rewrittenTitle") or "").strip()
    body = str(obj.get("rewrittenContent") or "").strip()
    if not title or not body:
        raise ValueError("Missing required fields in rewrite response")
    excerpt = str(obj.get("excerpt") or "").strip() or body[:200]
    meta = str(obj.get("metaDescription") or "").strip() or excerpt
    return RewriteResult(
        title=title,
        content=body,
        excerpt=excerpt,
        meta_description=meta,
        seo_keywords=_string_list(obj.get("seoKeywords")),
        suggested_tags=_string_list(obj.get("suggestedTags")),
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def extract_text(data: dict[str, Any]) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def total_tokens(data: dict[str, Any]) -> int | None:
    usage = data.get("usage") or {}
    return usage.get("total_tokens")


def parse_json_response(content: str) -> dict[str, Any]:
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        obj = json.loads(content)
    except json.JSONDecodeError:
        obj = json.loads(_extract_json_snippet(content))
    if not isinstance(obj, dict):
        raise ValueError("Response is not a JSON object")
    return obj


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
