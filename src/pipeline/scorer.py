"""Batch quality scoring.

Score range: 0-100 (int, rounded half-up). ``100 * valid / parsed`` where
parsed counts every candidate that survived structural extraction. An empty
batch scores 0.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable

from src.core.schemas import ParsingMethod, QualityMetricRecord, ValidatedRecord

logger = logging.getLogger(__name__)


def quality_score(valid_count: int, parsed_count: int) -> int:
    """Return the batch quality score for the given counts."""
    if parsed_count <= 0:
        return 0
    ratio = max(0, min(valid_count, parsed_count)) / parsed_count
    return int(math.floor(100 * ratio + 0.5))


def score(validated: Iterable[ValidatedRecord]) -> int:
    """Score a batch of validated records (all of them, valid and invalid)."""
    records = list(validated)
    valid = sum(1 for r in records if r.is_valid)
    return quality_score(valid, len(records))


def common_errors(validated: Iterable[ValidatedRecord]) -> dict[str, int]:
    """Count validation messages across a batch, most frequent first."""
    counts: Counter[str] = Counter(
        code.message for r in validated for code in r.validation_errors
    )
    return dict(counts.most_common())


def build_metric_record(
    *,
    session_id: str,
    site: str,
    validated: list[ValidatedRecord],
    parsing_method: ParsingMethod,
    elapsed_ms: float,
) -> QualityMetricRecord:
    """Summarize one batch as a QualityMetricRecord.

    ``average_processing_time`` is milliseconds per parsed candidate (the whole
    elapsed time when nothing was parsed).
    """
    parsed = len(validated)
    valid = sum(1 for r in validated if r.is_valid)
    return QualityMetricRecord(
        session_id=session_id,
        site=site,
        total_parsed=parsed,
        valid_jobs=valid,
        invalid_jobs=parsed - valid,
        quality_score=quality_score(valid, parsed),
        common_errors=common_errors(validated),
        parsing_method=parsing_method,
        average_processing_time=max(0.0, elapsed_ms / parsed if parsed else elapsed_ms),
    )
