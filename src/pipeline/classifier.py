"""Suspicious-content classifier: real job listing vs. site UI noise.

Runs on sanitized records. It only labels; it never drops a record, so
rejected candidates keep their reasons for metrics and debugging.
"""

import logging
import re

from src.core.config import ClassifierConfig
from src.core.schemas import CandidateRecord, Classification

logger = logging.getLogger(__name__)

# Case-insensitive substrings that mark search-page chrome.
NOISE_PHRASES: tuple[str, ...] = (
    "saved search",
    "sign in",
    "refine your search",
    "please refine",
    "no results",
    "create job alert",
    "create alert",
    "job alerts",
    "loading more results",
    "search suggestions",
    "try different keywords",
    "search for jobs",
    "resumes limited",
    "javascript required",
    "enable cookies",
    "page not found",
    "session expired",
    "please wait",
    "error occurred",
    "temporarily unavailable",
)

_URL = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)


class SuspiciousContentClassifier:
    """Flags records that look like navigation, banners, or search prompts."""

    def __init__(self, config: ClassifierConfig | None = None) -> None:
        self._config = config or ClassifierConfig()
        self._phrases = NOISE_PHRASES + tuple(
            p for p in self._config.extra_noise_phrases if p not in NOISE_PHRASES
        )

    def __call__(self, record: CandidateRecord) -> Classification:
        return self.classify(record)

    def classify(self, record: CandidateRecord) -> Classification:
        reasons: list[str] = []
        title = record.title.strip()
        company = record.company.strip()

        for field, value in (("title", title), ("company", company)):
            lowered = value.lower()
            for phrase in self._phrases:
                if phrase in lowered:
                    reasons.append(f"{field} contains noise phrase '{phrase}'")

        if _URL.search(title):
            reasons.append("title contains a URL")
        if len(title) < self._config.title_min_length:
            reasons.append(f"title shorter than {self._config.title_min_length} characters")
        elif len(title) > self._config.title_max_length:
            reasons.append(f"title longer than {self._config.title_max_length} characters")
        if not company:
            reasons.append("company is empty")

        if reasons:
            logger.debug("Suspicious record '%s': %s", title[:50], "; ".join(reasons))
        return Classification(suspicious=bool(reasons), reasons=tuple(reasons))


def classify(record: CandidateRecord, config: ClassifierConfig | None = None) -> Classification:
    """Classify one record with a throwaway classifier."""
    return SuspiciousContentClassifier(config).classify(record)
