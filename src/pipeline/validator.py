"""Field validator: hard requirements gate validity, soft ones lower quality.

Hard (record invalid, contribution forced to 0):
  missing or malformed title, missing or malformed company, classified suspicious.
Soft (record stays valid, contribution reduced by ValidationWeights):
  short description, missing or unrecognized location, missing pay,
  truncated description.

Format checks only run on non-empty fields; an empty field reports its
``MISSING_*`` code instead.
"""

import logging
import re

from src.core.config import ValidationConfig
from src.core.schemas import CandidateRecord, Classification, ErrorCode, ValidatedRecord

logger = logging.getLogger(__name__)

_PUNCTUATION_ONLY = re.compile(r"^[\W_]+$")
_DIGITS_ONLY = re.compile(r"^[\d\s.,-]+$")
_URL_LIKE = re.compile(r"^(?:https?://|www\.)", re.IGNORECASE)
_PAGE_CHROME_TITLE = re.compile(
    r"^(?:page\s+(?:\d+|not\s+found)|error\b\s*(?:\d{3}\b|:|$)|loading\W*$"
    r"|please\s+(?:wait|sign|log|enable))",
    re.IGNORECASE,
)
_PLACEHOLDER_COMPANY = re.compile(
    r"^(?:unknown|n/?a|none|null|undefined|error|tbd)[\s.!-]*$", re.IGNORECASE
)
_LOCATION_FORMATS = (
    # "Austin, TX", "Toronto, Ontario", "Austin, TX 78701"
    re.compile(r"^[a-z][a-z\s.'-]*,\s*[a-z][a-z\s.]+(?:\s+\d{5}(?:-\d{4})?)?$", re.IGNORECASE),
    re.compile(r"^(?:fully\s+)?(?:remote|hybrid|on-?site|work from home)\b", re.IGNORECASE),
    # bare place name: "Chicago", "United States"
    re.compile(r"^[a-z][a-z\s.'-]*$", re.IGNORECASE),
)


class FieldValidator:
    """Turns a sanitized, classified record into a ValidatedRecord."""

    def __init__(self, config: ValidationConfig | None = None) -> None:
        self._config = config or ValidationConfig()

    def __call__(self, record: CandidateRecord, classification: Classification) -> ValidatedRecord:
        return self.validate(record, classification)

    def validate(self, record: CandidateRecord, classification: Classification) -> ValidatedRecord:
        errors: list[ErrorCode] = []
        title = record.title.strip()
        company = record.company.strip()

        if not title:
            errors.append(ErrorCode.MISSING_TITLE)
        elif not self.title_well_formed(title):
            errors.append(ErrorCode.INVALID_TITLE)
        if not company:
            errors.append(ErrorCode.MISSING_COMPANY)
        elif not self.company_well_formed(company):
            errors.append(ErrorCode.INVALID_COMPANY)
        if classification.suspicious:
            errors.append(ErrorCode.SUSPICIOUS_CONTENT)

        errors.extend(self._soft_errors(record))

        is_valid = not any(code.hard for code in errors)
        contribution = self._contribution(errors) if is_valid else 0
        if not is_valid:
            logger.debug(
                "Rejected %r at %r: %s",
                title, company, ", ".join(code.value for code in errors if code.hard),
            )

        return ValidatedRecord(
            record=record,
            is_valid=is_valid,
            validation_errors=tuple(errors),
            quality_contribution=contribution,
            suspicious_reasons=classification.reasons,
        )

    @staticmethod
    def title_well_formed(title: str) -> bool:
        """A title must carry words, not page chrome, a URL, or a bare number."""
        return not (
            _PUNCTUATION_ONLY.match(title)
            or _DIGITS_ONLY.match(title)
            or _URL_LIKE.match(title)
            or _PAGE_CHROME_TITLE.match(title)
        )

    def company_well_formed(self, company: str) -> bool:
        if not self._config.company_min_length <= len(company) <= self._config.company_max_length:
            return False
        return not (
            _PUNCTUATION_ONLY.match(company)
            or _URL_LIKE.match(company)
            or _PLACEHOLDER_COMPANY.match(company)
        )

    def location_well_formed(self, location: str) -> bool:
        if not self._config.location_min_length <= len(location) <= self._config.location_max_length:
            return False
        return any(pattern.match(location) for pattern in _LOCATION_FORMATS)

    def _soft_errors(self, record: CandidateRecord) -> list[ErrorCode]:
        errors: list[ErrorCode] = []
        location = record.location.strip()
        if len(record.description.strip()) < self._config.min_description_length:
            errors.append(ErrorCode.DESCRIPTION_TOO_SHORT)
        if not location:
            errors.append(ErrorCode.MISSING_LOCATION)
        elif not self.location_well_formed(location):
            errors.append(ErrorCode.INVALID_LOCATION)
        if not record.pay.strip():
            errors.append(ErrorCode.MISSING_PAY)
        if record.description_truncated:
            errors.append(ErrorCode.DESCRIPTION_TRUNCATED)
        return errors

    def _contribution(self, errors: list[ErrorCode]) -> int:
        weights = self._config.weights
        deductions = {
            ErrorCode.DESCRIPTION_TOO_SHORT: weights.short_description,
            ErrorCode.MISSING_LOCATION: weights.missing_location,
            ErrorCode.INVALID_LOCATION: weights.invalid_location,
            ErrorCode.MISSING_PAY: weights.missing_pay,
            ErrorCode.DESCRIPTION_TRUNCATED: weights.description_truncated,
        }
        score = 100 - sum(deductions.get(code, 0) for code in errors)
        return max(0, min(100, score))


def validate(
    record: CandidateRecord,
    classification: Classification,
    config: ValidationConfig | None = None,
) -> ValidatedRecord:
    """Validate one record with a throwaway validator."""
    return FieldValidator(config).validate(record, classification)
