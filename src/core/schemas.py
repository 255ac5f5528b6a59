"""Core data models for the listing extraction pipeline.

Records are frozen: each stage (sanitize, classify, validate) returns a new
model instead of mutating the one it was given.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

GENERIC_SITE = "generic"


class ParsingMethod(str, Enum):
    """Which extraction strategy produced a batch."""

    DOM = "dom"
    MARKDOWN = "markdown"


class ErrorCode(str, Enum):
    """Per-record validation outcome.

    Hard codes force ``is_valid = False``; soft codes only lower the record's
    quality contribution.
    """

    MISSING_TITLE = "missing_title"
    INVALID_TITLE = "invalid_title"
    MISSING_COMPANY = "missing_company"
    INVALID_COMPANY = "invalid_company"
    SUSPICIOUS_CONTENT = "suspicious_content"
    DESCRIPTION_TOO_SHORT = "description_too_short"
    MISSING_LOCATION = "missing_location"
    INVALID_LOCATION = "invalid_location"
    MISSING_PAY = "missing_pay"
    DESCRIPTION_TRUNCATED = "description_truncated"

    @property
    def hard(self) -> bool:
        return self in _HARD_CODES

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_HARD_CODES = frozenset({
    ErrorCode.MISSING_TITLE,
    ErrorCode.INVALID_TITLE,
    ErrorCode.MISSING_COMPANY,
    ErrorCode.INVALID_COMPANY,
    ErrorCode.SUSPICIOUS_CONTENT,
})

_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MISSING_TITLE: "Title is missing",
    ErrorCode.INVALID_TITLE: "Title format invalid",
    ErrorCode.MISSING_COMPANY: "Company is missing",
    ErrorCode.INVALID_COMPANY: "Company name invalid",
    ErrorCode.SUSPICIOUS_CONTENT: "Contains suspicious content",
    ErrorCode.DESCRIPTION_TOO_SHORT: "Description too short",
    ErrorCode.MISSING_LOCATION: "Location is missing",
    ErrorCode.INVALID_LOCATION: "Location format not recognized",
    ErrorCode.MISSING_PAY: "Pay is missing",
    ErrorCode.DESCRIPTION_TRUNCATED: "Description truncated",
}


class CandidateRecord(BaseModel):
    """A structurally extracted, not yet validated, job-listing guess."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    title: str = ""
    company: str = ""
    location: str = ""
    pay: str = ""
    schedule: str = ""
    description: str = ""
    url: str = ""
    source_site: str = GENERIC_SITE
    description_truncated: bool = False


class Classification(BaseModel):
    """Classifier verdict for one sanitized record."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    suspicious: bool = False
    reasons: tuple[str, ...] = ()


class ValidatedRecord(CandidateRecord):
    """A CandidateRecord with its validation outcome attached.

    The listing fields sit at the top level next to the outcome, so the JSON
    form is one flat object per record. Pass ``record=`` to build one from an
    existing CandidateRecord; the ``record`` property gives that view back.
    """

    is_valid: bool
    validation_errors: tuple[ErrorCode, ...] = ()
    quality_contribution: int = Field(default=100, ge=0, le=100)
    suspicious_reasons: tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def unpack_record(cls, data: Any) -> Any:
        if isinstance(data, dict) and "record" in data:
            data = dict(data)
            record = data.pop("record")
            fields = record.model_dump() if isinstance(record, CandidateRecord) else dict(record)
            data = {**fields, **data}
        return data

    @property
    def record(self) -> CandidateRecord:
        return CandidateRecord.model_validate(
            self.model_dump(include=set(CandidateRecord.model_fields))
        )

    @property
    def hard_errors(self) -> tuple[ErrorCode, ...]:
        return tuple(code for code in self.validation_errors if code.hard)

    @property
    def soft_errors(self) -> tuple[ErrorCode, ...]:
        return tuple(code for code in self.validation_errors if not code.hard)


class BatchResult(BaseModel):
    """Outcome of one pipeline invocation. Serializes with camelCase aliases."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    records: tuple[ValidatedRecord, ...] = ()
    parsed: int = Field(default=0, ge=0)
    valid: int = Field(default=0, ge=0)
    invalid: int = Field(default=0, ge=0)
    duplicates: int = Field(default=0, ge=0)
    quality_score: int = Field(default=0, ge=0, le=100)
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    site: str = GENERIC_SITE
    parsing_method: ParsingMethod = ParsingMethod.DOM


class QualityMetricRecord(BaseModel):
    """Append-only observation of one batch, kept for operational reporting."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    session_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    site: str
    total_parsed: int = Field(ge=0)
    valid_jobs: int = Field(ge=0)
    invalid_jobs: int = Field(ge=0)
    quality_score: int = Field(ge=0, le=100)
    common_errors: dict[str, int] = Field(default_factory=dict)
    parsing_method: ParsingMethod
    average_processing_time: float = Field(default=0.0, ge=0.0)


class SiteQuality(BaseModel):
    """Aggregated quality for one site over the stored metrics."""

    site: str
    sessions: int = 0
    average_quality: float = 0.0
    total_parsed: int = 0
    total_valid: int = 0


class QualityTrendPoint(BaseModel):
    """Hourly bucket of the quality trend."""

    hour: str
    average_quality: float
    total_jobs: int
    valid_jobs: int
    top_sites: list[SiteQuality] = Field(default_factory=list)


class QualityStats(BaseModel):
    """Summary of recent quality metrics."""

    average_quality: float = 0.0
    total_sessions: int = 0
    total_jobs_parsed: int = 0
    total_valid_jobs: int = 0
    site_breakdown: list[SiteQuality] = Field(default_factory=list)
    trend: list[QualityTrendPoint] = Field(default_factory=list)


class ValidationStats(BaseModel):
    """Validation failure counts bucketed by error family."""

    title_failures: int = 0
    company_failures: int = 0
    location_failures: int = 0
    description_failures: int = 0
    pay_failures: int = 0
    suspicious_content: int = 0


class Recommendation(BaseModel):
    """Operator-facing hint derived from recent metrics."""

    priority: str
    recommendation: str
    details: str


class SitePolicy(BaseModel):
    """Structural cues used to slice one site's markup into candidate fields.

    Each field is a tuple of CSS selectors tried in order.
    """

    model_config = ConfigDict(frozen=True)

    container: tuple[str, ...] = ()
    title: tuple[str, ...] = ()
    company: tuple[str, ...] = ()
    location: tuple[str, ...] = ()
    pay: tuple[str, ...] = ()
    schedule: tuple[str, ...] = ()
    description: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    def selectors_for(self, field: str) -> tuple[str, ...]:
        return getattr(self, field)  # type: ignore[no-any-return]
