"""Integration test: full listing pipeline over HTML and markdown captures."""

import json
from textwrap import dedent
from unittest.mock import MagicMock, patch

import pytest

from src.core.config import ExtractionConfig, MetricsConfig, SanitizerConfig, Settings
from src.core.schemas import BatchResult, ErrorCode, ParsingMethod, SitePolicy
from src.extraction.dom import DomExtractor
from src.pipeline.metrics import MetricsStore
from src.pipeline.orchestrator import NO_INPUT_ERROR, ListingPipeline, export_batch_json

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _job(
    title: str,
    company: str,
    *,
    location: str = "Austin, TX",
    pay: str = "",
    description: str = "Work with a friendly team on interesting problems every day.",
    href: str | None = None,
) -> str:
    href = href or "/jobs/" + "-".join(title.lower().split())
    pay_html = f'<span class="salary">{pay}</span>' if pay else ""
    return (
        f'<div class="job"><h3><a href="{href}">{title}</a></h3>'
        f'<span class="company">{company}</span>'
        f'<span class="location">{location}</span>{pay_html}'
        f'<p class="description">{description}</p></div>'
    )


SCENARIO_HTML = dedent(f"""\
    <html><body>
    <nav class="nav"><div class="job"><h3>Browse all jobs</h3></div></nav>
    <main>
      {_job("Software Developer", "Tech Solutions Inc", location="San Francisco, CA", pay="$120,000")}
      {_job("Data Analyst", "Acme Corp")}
      {_job("Registered Nurse", "City Clinic", location="Reno, NV", pay="$45 an hour")}
      <div class="job"><h3>No results found for "welder"</h3><span class="company">Indeed</span></div>
      <div class="job"><span class="company">Ghost LLC</span><p class="description">No heading here.</p></div>
    </main>
    </body></html>
""")

MARKDOWN_PAGE = dedent("""\
    # Search results

    ## Software Developer
    Tech Solutions Inc
    San Francisco, CA
    $120,000 - $150,000 a year
    Build and maintain web services for our customers.

    ## Saved Search - Software Jobs
    Sign in to create job alerts
""")


@pytest.fixture
def store() -> MetricsStore:
    return MetricsStore(MetricsConfig(capacity=100))


@pytest.fixture
def pipeline(store: MetricsStore) -> ListingPipeline:
    return ListingPipeline(Settings(), metrics_store=store)


def _assert_counts_consistent(result: BatchResult) -> None:
    assert result.valid + result.invalid == result.parsed
    assert len(result.records) == result.valid - result.duplicates
    assert 0 <= result.quality_score <= 100
    assert all(r.is_valid for r in result.records)


# ---------------------------------------------------------------------------
# HTML batches
# ---------------------------------------------------------------------------


class TestHtmlScenario:
    def test_counts_and_score(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run(SCENARIO_HTML, "", "generic")
        assert result.parsed == 4
        assert result.valid == 3
        assert result.invalid == 1
        assert result.duplicates == 0
        assert result.quality_score == 75
        assert result.parsing_method is ParsingMethod.DOM
        assert result.site == "generic"
        _assert_counts_consistent(result)

    def test_records_cleaned(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run(SCENARIO_HTML, "", "generic")
        titles = [r.record.title for r in result.records]
        assert titles == ["Software Developer", "Data Analyst", "Registered Nurse"]
        assert result.records[0].record.url == "/jobs/software-developer"
        assert result.records[0].quality_contribution == 100

    def test_banner_reported(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run(SCENARIO_HTML, "", "generic")
        assert any("no results" in e for e in result.errors)
        assert all(e.startswith("Contains suspicious content") for e in result.errors)

    def test_duplicates_collapsed(self, pipeline: ListingPipeline) -> None:
        html = _job("Data Analyst", "Acme Corp") + _job("data analyst", "ACME CORP")
        result = pipeline.run(html, "", "generic")
        assert result.parsed == 2
        assert result.valid == 2
        assert result.duplicates == 1
        assert len(result.records) == 1
        assert result.quality_score == 100
        _assert_counts_consistent(result)

    def test_site_policy(self, pipeline: ListingPipeline) -> None:
        html = (
            '<div class="job_seen_beacon"><h2 class="jobTitle"><a href="/rc/clk?jk=1">'
            '<span title="Welder">Welder</span></a></h2>'
            '<span class="companyName">Forge Works</span>'
            '<div class="companyLocation">Pittsburgh, PA</div>'
            '<div class="job-snippet">MIG and TIG welding on structural steel.</div></div>'
        )
        result = pipeline.run(html, "", "indeed")
        assert result.site == "indeed"
        assert result.valid == 1
        assert result.records[0].record.source_site == "indeed"

    def test_unknown_site_reported_as_generic(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run(_job("Welder", "Forge Works"), "", "monster")
        assert result.site == "generic"
        assert result.records[0].record.source_site == "generic"

    def test_configured_site(self, store: MetricsStore) -> None:
        settings = Settings(sites={"snagajob": SitePolicy(container=(".posting",), title=("h4",))})
        html = (
            '<li class="posting"><h4>Cashier</h4><span class="company">Corner Store</span>'
            '<span class="location">Reno, NV</span></li>'
        )
        result = ListingPipeline(settings, metrics_store=store).run(html, "", "snagajob")
        assert result.site == "snagajob"
        assert result.valid == 1


class TestHostileInput:
    def test_payloads_stripped_from_every_record(self, pipeline: ListingPipeline) -> None:
        html = _job(
            "Engineer<script>alert(1)</script>",
            '<img src=x onerror="alert(1)">Tech Solutions Inc',
            description='<iframe src="javascript:alert(1)"></iframe>Design and ship APIs for partners.',
            href="/jobs/engineer",
        )
        result = pipeline.run(html, "", "generic")
        assert result.valid == 1
        dumped = export_batch_json(result).lower()
        assert "<script" not in dumped
        assert "onerror=" not in dumped
        assert "<iframe" not in dumped
        assert "javascript:" not in dumped
        record = result.records[0].record
        assert record.title == "Engineer"
        assert record.company == "Tech Solutions Inc"

    def test_title_emptied_by_sanitizer(self, pipeline: ListingPipeline) -> None:
        html = '<div class="job"><h3>**</h3><span class="company">Acme</span></div>'
        result = pipeline.run(html, "", "generic")
        assert result.parsed == 1
        assert result.invalid == 1
        assert ErrorCode.MISSING_TITLE.message in result.errors

    def test_oversized_description(self, store: MetricsStore) -> None:
        settings = Settings(sanitizer=SanitizerConfig(max_description_length=100))
        html = _job("Welder", "Forge Works", description="weld " * 200)
        result = ListingPipeline(settings, metrics_store=store).run(html, "", "generic")
        assert result.valid == 1
        validated = result.records[0]
        assert len(validated.record.description) <= 100
        assert ErrorCode.DESCRIPTION_TRUNCATED in validated.validation_errors
        assert validated.quality_contribution == 95
        assert "1 description(s) truncated" in result.warnings


# ---------------------------------------------------------------------------
# Markdown batches and strategy choice
# ---------------------------------------------------------------------------


class TestMarkdown:
    def test_markdown_batch(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run("", MARKDOWN_PAGE, "generic")
        assert result.parsing_method is ParsingMethod.MARKDOWN
        assert result.parsed == 2
        assert result.valid == 1
        assert result.invalid == 1
        assert result.quality_score == 50
        record = result.records[0].record
        assert record.title == "Software Developer"
        assert record.location == "San Francisco, CA"
        assert record.pay == "$120,000 - $150,000 a year"
        _assert_counts_consistent(result)

    def test_html_preferred_when_both(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run(SCENARIO_HTML, MARKDOWN_PAGE, "generic")
        assert result.parsing_method is ParsingMethod.DOM
        assert result.parsed == 4

    def test_markdown_preferred_by_config(self, store: MetricsStore) -> None:
        settings = Settings(extraction=ExtractionConfig(prefer_html=False))
        result = ListingPipeline(settings, metrics_store=store).run(SCENARIO_HTML, MARKDOWN_PAGE)
        assert result.parsing_method is ParsingMethod.MARKDOWN

    def test_no_fallback_by_default(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run("<p>Nothing to see</p>", MARKDOWN_PAGE, "generic")
        assert result.parsing_method is ParsingMethod.DOM
        assert result.parsed == 0

    def test_fallback_when_enabled(self, store: MetricsStore) -> None:
        settings = Settings(extraction=ExtractionConfig(markdown_fallback=True))
        result = ListingPipeline(settings, metrics_store=store).run(
            "<p>Nothing to see</p>", MARKDOWN_PAGE, "generic",
        )
        assert result.parsing_method is ParsingMethod.MARKDOWN
        assert result.parsed == 2
        assert any("fell back to markdown" in w for w in result.warnings)


# ---------------------------------------------------------------------------
# Empty input and failure isolation
# ---------------------------------------------------------------------------


class TestEmptyAndFailures:
    def test_empty_input(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run("", "", "generic")
        assert result.parsed == 0
        assert result.quality_score == 0
        assert result.records == ()
        assert result.errors == (NO_INPUT_ERROR,)

    def test_none_like_inputs(self, pipeline: ListingPipeline) -> None:
        result = pipeline.run(None, None, "")  # type: ignore[arg-type]
        assert result.parsed == 0
        assert result.site == "generic"

    def test_extractor_crash_degrades(self, pipeline: ListingPipeline) -> None:
        with patch.object(DomExtractor, "extract", side_effect=RuntimeError("boom")):
            result = pipeline.run(SCENARIO_HTML, "", "generic")
        assert result.parsed == 0
        assert result.quality_score == 0
        assert NO_INPUT_ERROR in result.errors

    def test_metrics_failure_does_not_fail_batch(self) -> None:
        broken = MagicMock(spec=MetricsStore)
        broken.append.side_effect = RuntimeError("store down")
        result = ListingPipeline(Settings(), metrics_store=broken).run(SCENARIO_HTML, "", "generic")
        assert result.quality_score == 75
        broken.append.assert_called_once()


# ---------------------------------------------------------------------------
# Metrics recording
# ---------------------------------------------------------------------------


class TestMetricsRecording:
    def test_one_record_per_run(self, pipeline: ListingPipeline, store: MetricsStore) -> None:
        pipeline.run(SCENARIO_HTML, "", "generic", session_id="sess-1")
        pipeline.run("", MARKDOWN_PAGE, "indeed", session_id="sess-2")
        assert len(store) == 2

        latest, first = store.list_recent_metrics()
        assert first.session_id == "sess-1"
        assert first.total_parsed == 4
        assert first.valid_jobs == 3
        assert first.invalid_jobs == 1
        assert first.quality_score == 75
        assert first.parsing_method is ParsingMethod.DOM
        assert first.common_errors["Contains suspicious content"] == 1

        assert latest.site == "indeed"
        assert latest.parsing_method is ParsingMethod.MARKDOWN

    def test_session_id_generated(self, pipeline: ListingPipeline, store: MetricsStore) -> None:
        pipeline.run(SCENARIO_HTML, "", "generic")
        assert store.list_recent_metrics()[0].session_id

    def test_empty_batch_recorded(self, pipeline: ListingPipeline, store: MetricsStore) -> None:
        pipeline.run("", "", "generic")
        assert store.list_recent_metrics()[0].quality_score == 0

    def test_store_does_not_affect_results(self, pipeline: ListingPipeline) -> None:
        first = pipeline.run(SCENARIO_HTML, "", "generic")
        for _ in range(5):
            pipeline.run("", "", "generic")
        assert pipeline.run(SCENARIO_HTML, "", "generic") == first

    def test_without_store(self) -> None:
        result = ListingPipeline().run(SCENARIO_HTML, "", "generic")
        assert result.quality_score == 75


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExport:
    def test_camel_case_json(self, pipeline: ListingPipeline) -> None:
        data = json.loads(export_batch_json(pipeline.run(SCENARIO_HTML, "", "generic")))
        assert data["qualityScore"] == 75
        assert data["parsingMethod"] == "dom"
        assert data["parsed"] == 4
        first = data["records"][0]
        assert first["isValid"] is True
        assert first["qualityContribution"] == 100
        assert first["sourceSite"] == "generic"
        assert first["title"] == "Software Developer"
        assert "record" not in first
        assert first["validationErrors"] == []
