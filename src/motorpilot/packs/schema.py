"""
MotorPilot Configuration Pack Schemas

Pydantic models for validating configuration pack YAML/JSON files.

A configuration pack carries everything the engine would otherwise hard-code:
risk weights, rate tables, depreciation brackets, fraud weights, decision
thresholds, plus the static tariff and clause tables used when the
retrieval backend is unavailable.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders reject packs whose major version differs
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, Field, field_validator, model_validator

from ..adapters.retrieval import normalize_part_name


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

SeverityValue = Literal["minor", "moderate", "severe"]

AddOnValue = Literal[
    "zero_depreciation", "glass_cover", "engine_protect",
    "roadside_assistance", "consumables"
]

PartCategoryValue = Literal["metal", "body", "glass", "plastic", "rubber", "battery"]

IndicatorValue = Literal[
    "claim_frequency", "high_claim_ratio", "location_mismatch",
    "timestamp_inconsistency", "image_manipulation", "garage_collusion"
]

IndicatorSeverityValue = Literal["low", "medium", "high"]

ClauseKeyValue = Literal[
    "depreciation", "per_part_limit", "aggregate_limit", "annual_limit",
    "deductible", "unmatched_tariff", "coverage_exclusion",
    "manual_review", "fraud_investigation"
]


class _StrictModel(BaseModel):
    model_config = {
        "extra": "forbid",  # Reject unknown fields
    }


# =============================================================================
# Shared Schemas
# =============================================================================

class CitationSchema(_StrictModel):
    """Schema for a citation to a source document."""
    document_id: str = Field(..., description="Cited document identifier")
    section: Optional[str] = Field(None, description="Section/paragraph reference")
    page: Optional[int] = Field(None, ge=1, description="Page number")
    excerpt: str = Field("", description="Short excerpt of the cited text")


class RateBandSchema(_StrictModel):
    """Upper-bound-inclusive band; omit ``upper`` for the open-ended last band."""
    upper: Optional[int] = Field(None, ge=0, description="Inclusive upper bound")
    value: Decimal = Field(..., ge=0, description="Rate, percentage or amount")


def check_bands(bands: list[RateBandSchema], name: str) -> list[RateBandSchema]:
    """Bands must ascend strictly and end with one open-ended band."""
    if not bands:
        raise ValueError(f"{name} must have at least one band")
    uppers = [b.upper for b in bands]
    if uppers[-1] is not None:
        raise ValueError(f"{name} must end with an open-ended band")
    bounded = uppers[:-1]
    if any(u is None for u in bounded):
        raise ValueError(f"{name} may only have one open-ended band")
    if any(a >= b for a, b in zip(bounded, bounded[1:])):
        raise ValueError(f"{name} bands must ascend strictly")
    return bands


# =============================================================================
# Engine Sections
# =============================================================================

class RiskSchema(_StrictModel):
    """Schema for risk scoring constants."""
    base_score: Decimal = Field(Decimal("50"), ge=0, le=100)
    points_per_unit: Decimal = Field(Decimal("5"), ge=0)
    severity_weights: dict[SeverityValue, Decimal] = Field(
        default_factory=lambda: {"minor": Decimal("1"), "moderate": Decimal("2"), "severe": Decimal("3")}
    )
    recent_months: int = Field(6, ge=1)
    recent_weight: Decimal = Field(Decimal("1.0"), ge=0)
    mid_months: int = Field(12, ge=1)
    mid_weight: Decimal = Field(Decimal("0.6"), ge=0)
    old_weight: Decimal = Field(Decimal("0.3"), ge=0)
    frequency_step: Decimal = Field(Decimal("0.2"), ge=0)
    frequency_cap: Decimal = Field(Decimal("2.0"), ge=1)

    @model_validator(mode="after")
    def validate_weights(self) -> "RiskSchema":
        missing = {"minor", "moderate", "severe"} - set(self.severity_weights)
        if missing:
            raise ValueError(f"severity_weights missing {sorted(missing)}")
        w = self.severity_weights
        if not (w["minor"] <= w["moderate"] <= w["severe"]):
            raise ValueError("severity_weights must not decrease with severity")
        if self.mid_months <= self.recent_months:
            raise ValueError("mid_months must exceed recent_months")
        if not (self.recent_weight >= self.mid_weight >= self.old_weight):
            raise ValueError("recency weights must not increase with age")
        return self


class AddOnRateSchema(_StrictModel):
    """Schema for an add-on price."""
    percent_of_base: Decimal = Field(Decimal("0"), ge=0)
    flat_amount: Decimal = Field(Decimal("0"), ge=0)
    description: str = ""


class PremiumSchema(_StrictModel):
    """Schema for premium rate tables."""
    neutral_score: Decimal = Field(Decimal("50"), ge=0, le=100)
    minimum_premium: Decimal = Field(..., ge=0)
    validity_days: int = Field(30, ge=1)
    own_damage_rates: list[RateBandSchema] = Field(..., description="Percent of IDV by vehicle age (months)")
    third_party_premiums: list[RateBandSchema] = Field(..., description="Premium by engine capacity (cc)")
    add_ons: dict[AddOnValue, AddOnRateSchema] = Field(default_factory=dict)

    @field_validator("own_damage_rates", "third_party_premiums")
    @classmethod
    def validate_bands(cls, v: list[RateBandSchema]) -> list[RateBandSchema]:
        return check_bands(v, "premium bands")


class DepreciationSchema(_StrictModel):
    """Schema for depreciation tables."""
    standard: list[RateBandSchema]
    elevated: list[RateBandSchema]
    zero_depreciation_excluded: list[PartCategoryValue] = Field(
        default_factory=lambda: ["rubber", "battery"]
    )

    @field_validator("standard", "elevated")
    @classmethod
    def validate_bands(cls, v: list[RateBandSchema]) -> list[RateBandSchema]:
        check_bands(v, "depreciation table")
        if any(b.value > 100 for b in v):
            raise ValueError("depreciation percentages must not exceed 100")
        return v

    @model_validator(mode="after")
    def validate_elevated_stricter(self) -> "DepreciationSchema":
        """The elevated table must be stricter than the standard one at every bracket."""
        if [b.upper for b in self.standard] != [b.upper for b in self.elevated]:
            raise ValueError("elevated table must use the same brackets as the standard table")
        for std, elev in zip(self.standard, self.elevated):
            if elev.value <= std.value:
                bracket = std.upper if std.upper is not None else "open"
                raise ValueError(
                    f"elevated depreciation must exceed standard at bracket {bracket}"
                )
        return self


class FraudSchema(_StrictModel):
    """Schema for fraud scoring weights and thresholds."""
    weights: dict[IndicatorValue, int]
    severities: dict[IndicatorValue, IndicatorSeverityValue]
    max_claims_per_year: int = Field(2, ge=0)
    claim_to_idv_ratio: Decimal = Field(Decimal("0.5"), gt=0)
    location_mismatch_km: float = Field(50.0, gt=0)
    max_photo_span_hours: float = Field(48.0, gt=0)
    pre_incident_tolerance_minutes: float = Field(60.0, ge=0)
    collusion_repeat_threshold: int = Field(3, ge=1)
    review_threshold: int = Field(40, ge=0, le=100)
    flag_threshold: int = Field(70, ge=0, le=100)

    @model_validator(mode="after")
    def validate_indicators(self) -> "FraudSchema":
        all_indicators = set(get_args(IndicatorValue))
        for name, table in (("weights", self.weights), ("severities", self.severities)):
            missing = all_indicators - set(table)
            if missing:
                raise ValueError(f"fraud {name} missing {sorted(missing)}")
        if any(w < 0 for w in self.weights.values()):
            raise ValueError("fraud weights must not be negative")
        if self.review_threshold > self.flag_threshold:
            raise ValueError("review_threshold must not exceed flag_threshold")
        return self


class DecisionSchema(_StrictModel):
    """Schema for decision assembly and orchestration settings."""
    confidence_threshold: Decimal = Field(Decimal("80"), ge=0, le=100)
    decision_timeout_seconds: float = Field(30.0, gt=0)
    max_commit_attempts: int = Field(3, ge=1)
    max_workers: int = Field(2, ge=2)
    authorization_prefix: str = Field("ATR", min_length=1)
    min_tariff_relevance: Decimal = Field(Decimal("0"), ge=0, le=1)


# =============================================================================
# Static Tables
# =============================================================================

class TariffSchema(_StrictModel):
    """Schema for one static tariff row."""
    part: str = Field(..., min_length=1, description="Standardized part name")
    labor_cost: Decimal = Field(..., ge=0)
    part_cost: Decimal = Field(..., ge=0)
    citation: CitationSchema


class ClauseSchema(_StrictModel):
    """Schema for one static clause."""
    key: ClauseKeyValue
    text: str = Field(..., min_length=1)
    citation: CitationSchema


# =============================================================================
# Config Pack Schema
# =============================================================================

class ConfigPackSchema(_StrictModel):
    """Root schema for a configuration pack."""
    schema_version: str = Field(SCHEMA_VERSION, description="Pack schema version")
    pack_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = Field(None, description="Free text, excluded from the pack hash")
    currency: str = Field("INR", min_length=3, max_length=3)
    effective_date: Optional[date] = None

    risk: RiskSchema = Field(default_factory=RiskSchema)
    premium: PremiumSchema
    depreciation: DepreciationSchema
    fraud: FraudSchema
    decision: DecisionSchema = Field(default_factory=DecisionSchema)

    tariffs: list[TariffSchema] = Field(default_factory=list)
    clauses: list[ClauseSchema] = Field(default_factory=list)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def validate_unique_keys(self) -> "ConfigPackSchema":
        parts = [normalize_part_name(t.part) for t in self.tariffs]
        duplicates = sorted({p for p in parts if parts.count(p) > 1})
        if duplicates:
            raise ValueError(f"Duplicate tariff parts: {duplicates}")
        keys = [c.key for c in self.clauses]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"Duplicate clause keys: {duplicates}")
        return self


# =============================================================================
# Validation Helpers
# =============================================================================

def validate_config_pack(data: dict[str, Any]) -> ConfigPackSchema:
    """
    Validate a configuration pack dictionary against the schema.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return ConfigPackSchema.model_validate(data)


def check_schema_version(data: dict[str, Any]) -> bool:
    """Check that a pack's schema major version matches this engine's."""
    pack_version = str(data.get("schema_version", SCHEMA_VERSION))
    return pack_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
