# hn_digest/summarize.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional
import json
import re

from openai import OpenAI

from .errors import SummaryError
from .logging_setup import get_logger

logger = get_logger("hn_digest.summarize")

DEFAULT_MODEL = "gpt-4o-mini"
MAX_TAGS = 5

SYS_PROMPT = (
    "You are a concise tech news summarizer. Output plain, non-jargon English. "
    "Avoid hype; stick to facts present in the text. Respond with valid JSON only."
)

_CODE_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.+?)\s*```\s*$", re.DOTALL)


@dataclass
class SummaryResult:
    summary: str
    tags: List[str] = field(default_factory=list)


def _truncate(s: str, max_chars: int = 9000) -> str:
    return s[:max_chars] if s else s


def build_prompt(title: str, content: str) -> str:
    return f"""
Summarize the following article in 1-2 sentences and provide 3-5 lowercase tags
categorizing its topic.

Return strict JSON with keys:
  - summary: string
  - tags: array of 3 to 5 lowercase strings

TITLE: {title}
ARTICLE:
{_truncate(content)}
""".strip()


def strip_code_fence(text: str) -> str:
    text = (text or "").strip()
    m = _CODE_FENCE_RE.match(text)
    return m.group(1).strip() if m else text


def normalize_tags(raw) -> List[str]:
    if not isinstance(raw, list):
        return []
    out: List[str] = []
    for t in raw:
        if not isinstance(t, str):
            continue
        tag = t.strip().lower()
        if tag and tag not in out:
            out.append(tag)
    return out[:MAX_TAGS]


def parse_summary(content: str) -> SummaryResult:
    """Parse the model's JSON answer. Raises SummaryError on anything unusable."""
    try:
        data = json.loads(strip_code_fence(content))
    except (TypeError, json.JSONDecodeError) as e:
        raise SummaryError("model output is not valid JSON") from e
    if not isinstance(data, dict):
        raise SummaryError("model output is not a JSON object")

    summary = (data.get("summary") or "").strip() if isinstance(data.get("summary"), str) else ""
    if not summary:
        raise SummaryError("model output has no summary")
    tags = normalize_tags(data.get("tags"))
    if not tags:
        raise SummaryError("model output has no tags")
    return SummaryResult(summary=summary, tags=tags)


class OpenAISummarizer:
    def __init__(self, client: Optional[OpenAI] = None, model: str = DEFAULT_MODEL, api_key: Optional[str] = None):
        self.client = client or OpenAI(api_key=api_key)
        self.model = model

    def summarize(self, title: str, content: str) -> SummaryResult:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                temperature=0.2,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYS_PROMPT},
                    {"role": "user", "content": build_prompt(title, content)},
                ],
            )
            content_out = resp.choices[0].message.content
        except Exception as e:
            raise SummaryError(f"summary request failed: {type(e).__name__}") from e

        result = parse_summary(content_out)
        logger.debug("SUMMARY_OK", extra={"title": title[:120], "tags": result.tags})
        return result
