"""Configuration models and YAML loader for the listing extraction pipeline."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.schemas import SitePolicy


class SanitizerConfig(BaseModel):
    """Limits applied while cleaning free-text fields."""

    max_description_length: int = Field(default=2000, ge=1)


class ClassifierConfig(BaseModel):
    """Suspicious-content policy knobs."""

    title_min_length: int = Field(default=3, ge=0)
    title_max_length: int = Field(default=200, ge=1)
    extra_noise_phrases: list[str] = Field(default_factory=list)

    @field_validator("extra_noise_phrases")
    @classmethod
    def normalize_phrases(cls, v: list[str]) -> list[str]:
        return [p.lower().strip() for p in v if p.strip()]

    @model_validator(mode="after")
    def bounds_ordered(self) -> "ClassifierConfig":
        if self.title_min_length > self.title_max_length:
            msg = "title_min_length must not exceed title_max_length"
            raise ValueError(msg)
        return self


class ValidationWeights(BaseModel):
    """Points deducted from a record's quality contribution per soft issue."""

    short_description: int = Field(default=20, ge=0, le=100)
    missing_location: int = Field(default=10, ge=0, le=100)
    invalid_location: int = Field(default=5, ge=0, le=100)
    missing_pay: int = Field(default=0, ge=0, le=100)
    description_truncated: int = Field(default=5, ge=0, le=100)


class ValidationConfig(BaseModel):
    """Field validation thresholds."""

    min_description_length: int = Field(default=20, ge=0)
    company_min_length: int = Field(default=2, ge=1)
    company_max_length: int = Field(default=150, ge=1)
    location_min_length: int = Field(default=2, ge=1)
    location_max_length: int = Field(default=100, ge=1)
    weights: ValidationWeights = Field(default_factory=ValidationWeights)

    @model_validator(mode="after")
    def bounds_ordered(self) -> "ValidationConfig":
        if self.company_min_length > self.company_max_length:
            msg = "company_min_length must not exceed company_max_length"
            raise ValueError(msg)
        if self.location_min_length > self.location_max_length:
            msg = "location_min_length must not exceed location_max_length"
            raise ValueError(msg)
        return self


class ExtractionConfig(BaseModel):
    """Strategy selection policy."""

    prefer_html: bool = True
    markdown_fallback: bool = False


class MetricsConfig(BaseModel):
    """Rolling metrics store settings."""

    capacity: int = Field(default=1000, ge=1)
    low_quality_threshold: int = Field(default=50, ge=0, le=100)
    high_quality_threshold: int = Field(default=80, ge=0, le=100)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    sanitizer: SanitizerConfig = Field(default_factory=SanitizerConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    sites: dict[str, SitePolicy] = Field(default_factory=dict)

    @field_validator("sites")
    @classmethod
    def policies_have_containers(cls, v: dict[str, SitePolicy]) -> dict[str, SitePolicy]:
        for site_id, policy in v.items():
            if not policy.container:
                msg = f"site policy '{site_id}' must define at least one container selector"
                raise ValueError(msg)
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
