"""Orchestrator: wires extraction, sanitizer, classifier, validator, dedupe, scorer.

Data flow:
  1. Strategy choice (DOM vs markdown), once per invocation
  2. Structural extraction -> candidates (``parsed``)
  3. Sanitize -> classify -> validate, per candidate
  4. Deduplicate the valid records
  5. Score the batch, best-effort append to the metrics store
"""

import json
import logging
import time
import uuid

from src.core.config import Settings
from src.core.schemas import (
    GENERIC_SITE,
    BatchResult,
    CandidateRecord,
    ErrorCode,
    ParsingMethod,
    ValidatedRecord,
)
from src.extraction import get_strategy, select_method
from src.extraction.policies import build_policy_table
from src.pipeline.classifier import SuspiciousContentClassifier
from src.pipeline.deduplicator import Deduplicator
from src.pipeline.metrics import MetricsStore
from src.pipeline.sanitizer import sanitize
from src.pipeline.scorer import build_metric_record, quality_score
from src.pipeline.validator import FieldValidator

logger = logging.getLogger(__name__)

NO_INPUT_ERROR = "No job listings found in HTML or markdown input"


class ListingPipeline:
    """Turns one (html, markdown, site_id) input into a BatchResult.

    Holds only read-only configuration; the metrics store is the single
    shared mutable collaborator and is never read back here.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        metrics_store: MetricsStore | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._metrics = metrics_store
        self._policies = build_policy_table(self._settings.sites)
        self._classifier = SuspiciousContentClassifier(self._settings.classifier)
        self._validator = FieldValidator(self._settings.validation)

    def run(
        self,
        html: str = "",
        markdown: str = "",
        site_id: str = GENERIC_SITE,
        *,
        session_id: str | None = None,
    ) -> BatchResult:
        """Extract, clean, validate and score one batch. Never raises on content."""
        started = time.perf_counter()
        site_id = site_id or GENERIC_SITE
        html = html or ""
        markdown = markdown or ""
        site_key = site_id if site_id in self._policies else GENERIC_SITE
        warnings: list[str] = []

        method, candidates = self._extract(html, markdown, site_id, site_key, warnings)
        logger.info(
            "Extracted %d candidates from '%s' via %s", len(candidates), site_id, method.value,
        )

        validated = [self._process(candidate) for candidate in candidates]
        valid = [r for r in validated if r.is_valid]
        records = Deduplicator()(validated)

        errors = _collect_errors(validated)
        if not candidates:
            errors.append(NO_INPUT_ERROR)
        truncated = sum(1 for r in validated if ErrorCode.DESCRIPTION_TRUNCATED in r.validation_errors)
        if truncated:
            warnings.append(f"{truncated} description(s) truncated")

        result = BatchResult(
            records=tuple(records),
            parsed=len(validated),
            valid=len(valid),
            invalid=len(validated) - len(valid),
            duplicates=len(valid) - len(records),
            quality_score=quality_score(len(valid), len(validated)),
            errors=tuple(errors),
            warnings=tuple(warnings),
            site=site_key,
            parsing_method=method,
        )

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Batch for '%s': %d parsed, %d valid, %d invalid, %d duplicates, score %d (%.1f ms)",
            site_key, result.parsed, result.valid, result.invalid,
            result.duplicates, result.quality_score, elapsed_ms,
        )
        self._record_metrics(session_id, site_key, validated, method, elapsed_ms)
        return result

    # --- Private helpers ---

    def _extract(
        self,
        html: str,
        markdown: str,
        site_id: str,
        site_key: str,
        warnings: list[str],
    ) -> tuple[ParsingMethod, list[CandidateRecord]]:
        extraction = self._settings.extraction
        method = select_method(html, markdown, extraction)
        source = html if method is ParsingMethod.DOM else markdown
        candidates = self._run_strategy(method, source, site_id, site_key)

        if (
            not candidates
            and method is ParsingMethod.DOM
            and extraction.markdown_fallback
            and markdown.strip()
        ):
            warnings.append("HTML yielded no listings, fell back to markdown")
            method = ParsingMethod.MARKDOWN
            candidates = self._run_strategy(method, markdown, site_id, site_key)
        return method, candidates

    def _run_strategy(
        self, method: ParsingMethod, source: str, site_id: str, site_key: str,
    ) -> list[CandidateRecord]:
        strategy = get_strategy(method, self._policies)
        try:
            candidates = strategy.extract(source, site_id)
        except Exception:
            logger.exception("Extraction via %s failed for '%s'", method.value, site_id)
            return []
        # Unknown site ids are reported as the generic policy they ran under.
        return [
            c if c.source_site == site_key else c.model_copy(update={"source_site": site_key})
            for c in candidates
        ]

    def _process(self, candidate: CandidateRecord) -> ValidatedRecord:
        clean = sanitize(candidate, self._settings.sanitizer)
        classification = self._classifier(clean)
        return self._validator(clean, classification)

    def _record_metrics(
        self,
        session_id: str | None,
        site: str,
        validated: list[ValidatedRecord],
        method: ParsingMethod,
        elapsed_ms: float,
    ) -> None:
        if self._metrics is None:
            return
        try:
            record = build_metric_record(
                session_id=session_id or uuid.uuid4().hex,
                site=site,
                validated=validated,
                parsing_method=method,
                elapsed_ms=elapsed_ms,
            )
            self._metrics.append(record)
        except Exception:
            logger.exception("Failed to record quality metrics for '%s'", site)


def _collect_errors(validated: list[ValidatedRecord]) -> list[str]:
    """Hard-error messages of invalid records, suspicious ones with reasons."""
    errors: list[str] = []
    for r in validated:
        if r.is_valid:
            continue
        for code in r.hard_errors:
            if code is ErrorCode.SUSPICIOUS_CONTENT and r.suspicious_reasons:
                errors.append(f"{code.message}: {', '.join(r.suspicious_reasons)}")
            else:
                errors.append(code.message)
    return errors


def export_batch_json(result: BatchResult) -> str:
    """Serialize a batch for the response-building layer (camelCase keys)."""
    return json.dumps(result.model_dump(mode="json", by_alias=True), indent=2)
