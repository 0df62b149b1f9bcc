"""Generate-then-validate loop with bounded retries and a static fallback."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from policybrief.analysis.generator import ErrorKind, GenerationError, NarrativeGenerator
from policybrief.analysis.sanitizer import Sanitizer
from policybrief.models import Candidate

logger = logging.getLogger(__name__)


FALLBACK_TEXT = "\n\n".join([
    "The concrete impact of this policy is still taking shape, and the people most "
    "affected may face new paperwork, changed eligibility rules, or delays before "
    "anything reaches them directly.",
    "Families and communities could see a period of uncertainty while local "
    "organizations, employers, schools, and service providers work out how to apply "
    "the new requirements in practice.",
    "Those with strong legal or financial resources usually adapt first and benefit "
    "most, while people without that access tend to carry more of the cost and the "
    "waiting.",
    "Hidden costs such as administrative backlogs or unexpected exclusions are rarely "
    "covered in early reporting. Watch for official guidance and follow-up coverage "
    "in the coming weeks.",
])


@dataclass
class AnalysisResult:
    text: str
    attempts: int
    used_fallback: bool = False
    failure_reason: Optional[str] = None


class RetryController:
    """Runs the narrative generator until the sanitizer accepts its output.

    Rate limits, transport and upstream errors and validation rejections are
    retried after a fixed delay. An authentication failure is raised
    immediately. When every attempt fails the static fallback text is used.
    """

    def __init__(
        self,
        generator: NarrativeGenerator,
        sanitizer: Sanitizer,
        max_retries: int = 3,
        retry_delay: float = 1.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.generator = generator
        self.sanitizer = sanitizer
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.sleep = sleep

    def analyze(self, candidate: Candidate, now: Optional[datetime] = None) -> AnalysisResult:
        reason: Optional[str] = None

        for attempt in range(1, self.max_retries + 1):
            logger.info(f"  Generation attempt {attempt}/{self.max_retries}...")
            try:
                raw = self.generator.generate(candidate)
            except GenerationError as e:
                if not e.retryable:
                    logger.error(f"  Generation aborted [{e.kind.value}]: {e}")
                    raise
                reason = e.kind.value
                logger.warning(f"  Generation failed [{reason}]: {e}")
            except Exception as e:
                reason = ErrorKind.TRANSPORT.value
                logger.warning(f"  Generation failed [{reason}]: {e}")
            else:
                cleaned = self.sanitizer.sanitize(candidate, raw, now=now)
                if cleaned:
                    return AnalysisResult(text=cleaned, attempts=attempt)
                reason = ErrorKind.VALIDATION_REJECTED.value

            if attempt < self.max_retries:
                logger.info(f"  Retrying in {self.retry_delay}s...")
                self.sleep(self.retry_delay)

        logger.warning(
            f"  FALLBACK USED [exhausted_retries] after {self.max_retries} attempts, "
            f"last failure [{reason}]: {candidate.title[:60]}"
        )
        return AnalysisResult(
            text=FALLBACK_TEXT, attempts=self.max_retries,
            used_fallback=True, failure_reason=reason,
        )
