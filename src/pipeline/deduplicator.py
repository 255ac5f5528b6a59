"""In-batch deduplication by normalized (title, company).

First occurrence wins; later duplicates are dropped without an error.
Invalid records never reach the output.
"""

import logging

from src.core.schemas import ValidatedRecord

logger = logging.getLogger(__name__)


def normalize(value: str) -> str:
    return value.strip().lower()


def dedupe_key(record: ValidatedRecord) -> tuple[str, str]:
    return (normalize(record.title), normalize(record.company))


class Deduplicator:
    """Keeps the first valid record per (title, company) key.

    Stateful within one instance; the pipeline creates one per batch.
    """

    def __init__(self) -> None:
        self._seen: set[tuple[str, str]] = set()

    def __call__(self, records: list[ValidatedRecord]) -> list[ValidatedRecord]:
        result: list[ValidatedRecord] = []
        valid = 0
        for r in records:
            if not r.is_valid:
                continue
            valid += 1
            key = dedupe_key(r)
            if key not in self._seen:
                self._seen.add(key)
                result.append(r)
        deduped = valid - len(result)
        if deduped:
            logger.debug("Deduplicator: removed %d duplicates", deduped)
        return result


def dedupe(records: list[ValidatedRecord]) -> list[ValidatedRecord]:
    """Deduplicate one batch."""
    return Deduplicator()(records)
