"""Rolling quality-metrics store for operational reporting.

Append-only and bounded: once ``capacity`` is reached the oldest record is
evicted. Appends are serialized by a lock; readers take a snapshot under the
same lock and compute on the copy. Nothing in the extraction path reads it.

Usage::

    store = MetricsStore(MetricsConfig(capacity=500))
    pipeline = ListingPipeline(settings, metrics_store=store)
    pipeline.run(html, "", "indeed")
    store.aggregate_quality_by_site("indeed")
"""

import logging
import threading
from collections import defaultdict, deque
from collections.abc import Iterable
from datetime import datetime, timedelta

from src.core.config import MetricsConfig
from src.core.schemas import (
    QualityMetricRecord,
    QualityStats,
    QualityTrendPoint,
    Recommendation,
    SiteQuality,
    ValidationStats,
)

logger = logging.getLogger(__name__)


class MetricsStore:
    """Thread-safe bounded store of QualityMetricRecord observations."""

    def __init__(self, config: MetricsConfig | None = None) -> None:
        self._config = config or MetricsConfig()
        self._records: deque[QualityMetricRecord] = deque(maxlen=self._config.capacity)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def capacity(self) -> int:
        return self._config.capacity

    def append(self, record: QualityMetricRecord) -> None:
        """Record one observation, evicting the oldest past capacity."""
        with self._lock:
            self._records.append(record)

        logger.info(
            "Quality metrics recorded: session=%s site=%s score=%d valid=%d/%d method=%s",
            record.session_id, record.site, record.quality_score,
            record.valid_jobs, record.total_parsed, record.parsing_method.value,
        )
        if record.quality_score < self._config.low_quality_threshold:
            top = list(record.common_errors.items())[:3]
            logger.warning(
                "Low parsing quality for '%s': score=%d, top errors=%s",
                record.site, record.quality_score, top,
            )
        elif record.quality_score >= self._config.high_quality_threshold:
            logger.info(
                "High parsing quality for '%s': score=%d (%d/%d valid)",
                record.site, record.quality_score, record.valid_jobs, record.total_parsed,
            )

    # --- Read-only query surface ---

    def list_recent_metrics(self, limit: int = 50) -> list[QualityMetricRecord]:
        """Return up to ``limit`` most recent records, newest first."""
        if limit <= 0:
            return []
        with self._lock:
            snapshot = list(self._records)
        return list(reversed(snapshot[-limit:]))

    def aggregate_quality_by_site(self, site: str) -> SiteQuality:
        """Aggregate every stored record for ``site``."""
        records = [r for r in self._snapshot() if r.site == site]
        return _site_quality(site, records)

    def export(self, hours: float = 24) -> list[QualityMetricRecord]:
        """Return records newer than ``hours`` ago, oldest first."""
        return self._recent(hours)

    def quality_stats(self, hours: float = 24) -> QualityStats:
        """Average quality, totals, per-site breakdown and hourly trend."""
        recent = self._recent(hours)
        if not recent:
            return QualityStats()

        by_site: dict[str, list[QualityMetricRecord]] = defaultdict(list)
        by_hour: dict[str, list[QualityMetricRecord]] = defaultdict(list)
        for r in recent:
            by_site[r.site].append(r)
            by_hour[r.timestamp.strftime("%Y-%m-%dT%H:00:00")].append(r)

        breakdown = sorted(
            (_site_quality(site, rs) for site, rs in by_site.items()),
            key=lambda s: s.average_quality,
            reverse=True,
        )

        trend: list[QualityTrendPoint] = []
        for hour in sorted(by_hour):
            bucket = by_hour[hour]
            sites: dict[str, list[QualityMetricRecord]] = defaultdict(list)
            for r in bucket:
                sites[r.site].append(r)
            top = sorted(
                (_site_quality(s, rs) for s, rs in sites.items()),
                key=lambda s: s.average_quality,
                reverse=True,
            )[:3]
            trend.append(
                QualityTrendPoint(
                    hour=hour,
                    average_quality=_average(r.quality_score for r in bucket),
                    total_jobs=sum(r.total_parsed for r in bucket),
                    valid_jobs=sum(r.valid_jobs for r in bucket),
                    top_sites=top,
                )
            )

        return QualityStats(
            average_quality=_average(r.quality_score for r in recent),
            total_sessions=len(recent),
            total_jobs_parsed=sum(r.total_parsed for r in recent),
            total_valid_jobs=sum(r.valid_jobs for r in recent),
            site_breakdown=breakdown,
            trend=trend,
        )

    def validation_stats(self, hours: float = 24) -> ValidationStats:
        """Bucket recent error counts by the field family they mention."""
        stats = ValidationStats()
        buckets = (
            ("title", "title_failures"),
            ("company", "company_failures"),
            ("location", "location_failures"),
            ("description", "description_failures"),
            ("pay", "pay_failures"),
            ("suspicious", "suspicious_content"),
        )
        for r in self._recent(hours):
            for message, count in r.common_errors.items():
                lowered = message.lower()
                for needle, attr in buckets:
                    if needle in lowered:
                        setattr(stats, attr, getattr(stats, attr) + count)
        return stats

    def recommendations(self, hours: float = 24) -> list[Recommendation]:
        """Derive operator hints from recent quality and validation stats."""
        stats = self.quality_stats(hours)
        validation = self.validation_stats(hours)
        result: list[Recommendation] = []

        if stats.total_sessions == 0:
            return result

        if stats.average_quality < 60:
            worst = ", ".join(
                f"{s.site} ({s.average_quality:.0f}%)" for s in stats.site_breakdown[-2:]
            )
            result.append(Recommendation(
                priority="high",
                recommendation="Improve selector policies for low-performing sites",
                details=f"Average quality is {stats.average_quality:.2f}%. Lowest: {worst}",
            ))
        if validation.suspicious_content > 5:
            result.append(Recommendation(
                priority="high",
                recommendation="Extend noise-phrase policy or exclude selectors",
                details=f"{validation.suspicious_content} suspicious records in the last {hours:g}h",
            ))
        if validation.title_failures > 10:
            result.append(Recommendation(
                priority="medium",
                recommendation="Review title selectors",
                details=f"{validation.title_failures} title failures in the last {hours:g}h",
            ))
        if stats.average_quality >= self._config.high_quality_threshold:
            result.append(Recommendation(
                priority="low",
                recommendation="Quality target met, keep monitoring",
                details=f"Average quality is {stats.average_quality:.2f}%",
            ))
        return result

    def log_report(self, hours: float = 24) -> None:
        """Log a one-shot quality report."""
        stats = self.quality_stats(hours)
        logger.info(
            "Quality report (%gh): sessions=%d avg=%.2f parsed=%d valid=%d",
            hours, stats.total_sessions, stats.average_quality,
            stats.total_jobs_parsed, stats.total_valid_jobs,
        )
        for site in stats.site_breakdown:
            logger.info(
                "  %s: avg=%.2f sessions=%d parsed=%d",
                site.site, site.average_quality, site.sessions, site.total_parsed,
            )
        for rec in self.recommendations(hours):
            logger.info("  [%s] %s: %s", rec.priority, rec.recommendation, rec.details)

    def clear_older_than(self, hours: float = 72) -> int:
        """Drop records older than ``hours``. Returns how many were removed."""
        cutoff = datetime.now() - timedelta(hours=hours)
        with self._lock:
            kept = [r for r in self._records if r.timestamp >= cutoff]
            removed = len(self._records) - len(kept)
            self._records.clear()
            self._records.extend(kept)
        if removed:
            logger.info("Cleared %d metrics older than %gh", removed, hours)
        return removed

    # --- Private helpers ---

    def _snapshot(self) -> list[QualityMetricRecord]:
        with self._lock:
            return list(self._records)

    def _recent(self, hours: float) -> list[QualityMetricRecord]:
        cutoff = datetime.now() - timedelta(hours=hours)
        return [r for r in self._snapshot() if r.timestamp >= cutoff]


def _average(values: Iterable[float]) -> float:
    items = list(values)
    if not items:
        return 0.0
    return round(sum(items) / len(items), 2)


def _site_quality(site: str, records: list[QualityMetricRecord]) -> SiteQuality:
    return SiteQuality(
        site=site,
        sessions=len(records),
        average_quality=_average(r.quality_score for r in records),
        total_parsed=sum(r.total_parsed for r in records),
        total_valid=sum(r.valid_jobs for r in records),
    )
