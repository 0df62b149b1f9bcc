"""Impact-analysis generation with Claude.

`TextGenerator` is the thin transport layer: prompt in, text out, every SDK
failure translated into a classified `GenerationError`. `NarrativeGenerator`
owns the editorial prompt. Neither retries; that is the retry controller's job.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING, Optional

import anthropic

from policybrief.models import Candidate

if TYPE_CHECKING:
    from policybrief.analysis.trends import TrendTracker

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You explain policy news in plain, conversational language, like a well-informed "
    "friend over coffee. You use concrete numbers from the story, avoid jargon, and "
    "never invent facts, dates or figures that the story does not give you."
)

NARRATIVE_PROMPT = """\
Write a plain-English impact analysis of the news story below in exactly four paragraphs, in this order:

1. The immediate impact: what changes for ordinary people and when.
2. The mechanics: how the change actually works, with concrete numbers from the story.
3. Winners and losers: who comes out ahead and who pays.
4. Insider context: what is not being said and what to watch for next.

Rules:
- Between {min_target} and {max_target} words in total.
- Prose paragraphs only, separated by a blank line. No headings, no bullet points, no numbered lists.
- Plain language, no jargon.
- Do not mention any year or date that does not appear in the story details.

Story: "{title}"
Details: "{description}"
Source: "{source}"
Date: "{published}"
"""

TREND_SECTION = """
Trend context from recent editions (weave it in only where it fits naturally): {trend_context}
"""

TARGET_WORDS = (140, 170)

_UNSAFE_TEXT = re.compile(r"[^\w\s\-.,!?'$%:]")
_UNSAFE_SOURCE = re.compile(r"[^\w\s.]")


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    TRANSPORT = "transport"
    UPSTREAM = "upstream"
    VALIDATION_REJECTED = "validation_rejected"


class GenerationError(Exception):
    """A classified failure of the generative-text service."""

    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind is not ErrorKind.AUTH_FAILED


def classify_api_error(exc: anthropic.APIError) -> GenerationError:
    """Map an Anthropic SDK exception onto an ErrorKind."""
    if isinstance(exc, anthropic.APIStatusError):
        status = exc.status_code
        if status == 429:
            kind = ErrorKind.RATE_LIMITED
        elif status == 401:
            kind = ErrorKind.AUTH_FAILED
        else:
            kind = ErrorKind.UPSTREAM
        return GenerationError(kind, f"Anthropic API error {status}: {exc.message}", status)
    if isinstance(exc, anthropic.APIConnectionError):
        return GenerationError(ErrorKind.TRANSPORT, f"Anthropic connection error: {exc}")
    return GenerationError(ErrorKind.UPSTREAM, f"Anthropic API error: {exc}")


class TextGenerator:
    """Prompt in, text out. Raises GenerationError on any failure."""

    def __init__(self, client: anthropic.Anthropic, model: str):
        self.client = client
        self.model = model

    def generate(
        self,
        prompt: str,
        system_instructions: str,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ) -> str:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_instructions,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise classify_api_error(e) from e

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        ).strip()
        if not text:
            raise GenerationError(ErrorKind.UPSTREAM, "Anthropic returned empty content")
        return text


def _clean(text: Optional[str], pattern: re.Pattern, limit: int) -> str:
    return pattern.sub("", text or "").strip()[:limit]


class NarrativeGenerator:
    """Builds the four-paragraph impact prompt for a candidate and runs it."""

    def __init__(
        self,
        text_generator: TextGenerator,
        trend_tracker: Optional[TrendTracker] = None,
        max_tokens: int = 600,
        temperature: float = 0.4,
    ):
        self.text_generator = text_generator
        self.trend_tracker = trend_tracker
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_prompt(self, candidate: Candidate, trend_context: str = "") -> str:
        published = candidate.published.isoformat() if candidate.published else "not stated"
        prompt = NARRATIVE_PROMPT.format(
            min_target=TARGET_WORDS[0],
            max_target=TARGET_WORDS[1],
            title=_clean(candidate.title, _UNSAFE_TEXT, 200),
            description=_clean(candidate.description, _UNSAFE_TEXT, 500),
            source=_clean(candidate.source, _UNSAFE_SOURCE, 50) or "not stated",
            published=published,
        )
        if trend_context:
            prompt += TREND_SECTION.format(trend_context=trend_context)
        return prompt

    def generate(self, candidate: Candidate) -> str:
        trend_context = ""
        if self.trend_tracker is not None:
            trend_context = self.trend_tracker.trend_context(candidate)
        prompt = self.build_prompt(candidate, trend_context)
        return self.text_generator.generate(
            prompt, SYSTEM_PROMPT, max_tokens=self.max_tokens, temperature=self.temperature,
        )
