"""
MotorPilot Configuration Pack Loader

Loads and validates configuration packs from YAML or JSON files.

Converts Pydantic schema models to the engine's frozen config dataclasses
plus the static tariff and clause tables.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..adapters.base import TariffRate
from ..adapters.retrieval import StaticRetriever, StaticTariff, normalize_part_name
from ..canon import compute_config_pack_hash
from ..exceptions import ConfigLoadError, ConfigValidationError, ConfigVersionMismatch
from ..models import (
    AddOn,
    AddOnRate,
    Citation,
    ClauseKey,
    DecisionConfig,
    DepreciationConfig,
    EngineConfig,
    FraudConfig,
    FraudIndicatorType,
    IndicatorSeverity,
    PartCategory,
    PremiumConfig,
    RateBand,
    RiskConfig,
    Severity,
)
from .schema import (
    SCHEMA_VERSION,
    CitationSchema,
    ConfigPackSchema,
    DecisionSchema,
    DepreciationSchema,
    FraudSchema,
    PremiumSchema,
    RateBandSchema,
    RiskSchema,
    check_schema_version,
    validate_config_pack,
)

logger = logging.getLogger(__name__)

DEFAULTS_DIR = Path(__file__).parent / "defaults"
DEFAULT_PACK = "in_motor_2024.yaml"


# =============================================================================
# Loaded Pack
# =============================================================================

@dataclass(frozen=True)
class ConfigPack:
    """
    A validated configuration pack.

    Attributes:
        pack_id: Pack identifier
        name: Display name
        config: Engine configuration, with ``version`` set to the pack hash
        tariffs: Static tariff table keyed by standardized part name
        clauses: Static clause table: key -> (text, citation)
        version: Content hash of the pack (description excluded)
    """
    pack_id: str
    name: str
    config: EngineConfig
    tariffs: dict[str, StaticTariff] = field(default_factory=dict)
    clauses: dict[ClauseKey, tuple[str, Citation]] = field(default_factory=dict)
    version: str = ""
    currency: str = "INR"

    def static_retriever(self) -> StaticRetriever:
        """Retriever over this pack's tables; also the retrieval fallback."""
        return StaticRetriever(tariffs=dict(self.tariffs), clauses=dict(self.clauses))


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_bands(bands: list[RateBandSchema]) -> tuple[RateBand, ...]:
    return tuple(RateBand(upper=b.upper, value=b.value) for b in bands)


def _convert_citation(schema: CitationSchema) -> Citation:
    return Citation(
        document_id=schema.document_id,
        section=schema.section,
        page=schema.page,
        excerpt=schema.excerpt,
    )


def _convert_risk(schema: RiskSchema) -> RiskConfig:
    return RiskConfig(
        base_score=schema.base_score,
        points_per_unit=schema.points_per_unit,
        severity_weights={Severity(k): v for k, v in schema.severity_weights.items()},
        recent_months=schema.recent_months,
        recent_weight=schema.recent_weight,
        mid_months=schema.mid_months,
        mid_weight=schema.mid_weight,
        old_weight=schema.old_weight,
        frequency_step=schema.frequency_step,
        frequency_cap=schema.frequency_cap,
    )


def _convert_premium(schema: PremiumSchema) -> PremiumConfig:
    return PremiumConfig(
        neutral_score=schema.neutral_score,
        minimum_premium=schema.minimum_premium,
        validity_days=schema.validity_days,
        own_damage_rates=_convert_bands(schema.own_damage_rates),
        third_party_premiums=_convert_bands(schema.third_party_premiums),
        add_on_rates={
            AddOn(k): AddOnRate(
                percent_of_base=v.percent_of_base,
                flat_amount=v.flat_amount,
                description=v.description,
            )
            for k, v in schema.add_ons.items()
        },
    )


def _convert_depreciation(schema: DepreciationSchema) -> DepreciationConfig:
    return DepreciationConfig(
        standard=_convert_bands(schema.standard),
        elevated=_convert_bands(schema.elevated),
        zero_depreciation_excluded=frozenset(PartCategory(c) for c in schema.zero_depreciation_excluded),
    )


def _convert_fraud(schema: FraudSchema) -> FraudConfig:
    return FraudConfig(
        weights={FraudIndicatorType(k): v for k, v in schema.weights.items()},
        severities={FraudIndicatorType(k): IndicatorSeverity(v) for k, v in schema.severities.items()},
        max_claims_per_year=schema.max_claims_per_year,
        claim_to_idv_ratio=schema.claim_to_idv_ratio,
        location_mismatch_km=schema.location_mismatch_km,
        max_photo_span_hours=schema.max_photo_span_hours,
        pre_incident_tolerance_minutes=schema.pre_incident_tolerance_minutes,
        collusion_repeat_threshold=schema.collusion_repeat_threshold,
        review_threshold=schema.review_threshold,
        flag_threshold=schema.flag_threshold,
    )


def _convert_decision(schema: DecisionSchema) -> DecisionConfig:
    return DecisionConfig(
        confidence_threshold=schema.confidence_threshold,
        decision_timeout_seconds=schema.decision_timeout_seconds,
        max_commit_attempts=schema.max_commit_attempts,
        max_workers=schema.max_workers,
        authorization_prefix=schema.authorization_prefix,
        min_tariff_relevance=schema.min_tariff_relevance,
    )


def _convert_config_pack(schema: ConfigPackSchema, version: str) -> ConfigPack:
    config = EngineConfig(
        risk=_convert_risk(schema.risk),
        premium=_convert_premium(schema.premium),
        depreciation=_convert_depreciation(schema.depreciation),
        fraud=_convert_fraud(schema.fraud),
        decision=_convert_decision(schema.decision),
        version=version,
    )
    tariffs = {}
    for row in schema.tariffs:
        key = normalize_part_name(row.part)
        tariffs[key] = StaticTariff(
            part_name=key,
            tariff=TariffRate(labor_cost=row.labor_cost, part_cost=row.part_cost),
            citation=_convert_citation(row.citation),
        )
    clauses = {
        ClauseKey(c.key): (c.text, _convert_citation(c.citation))
        for c in schema.clauses
    }
    return ConfigPack(
        pack_id=schema.pack_id,
        name=schema.name,
        config=config,
        tariffs=tariffs,
        clauses=clauses,
        version=version,
        currency=schema.currency,
    )


# =============================================================================
# Loader
# =============================================================================

class ConfigPackLoader:
    """
    Loads configuration packs from YAML or JSON files.

    Usage:
        loader = ConfigPackLoader()
        pack = loader.load("path/to/pack.yaml")
    """

    def __init__(self, strict_version: bool = True):
        """
        Initialize the loader.

        Args:
            strict_version: If True, reject packs with incompatible schema versions
        """
        self.strict_version = strict_version
        self._packs: dict[str, ConfigPack] = {}

    def load(self, path: Union[str, Path]) -> ConfigPack:
        """
        Load a configuration pack from a file.

        Raises:
            ConfigLoadError: If the file cannot be read or parsed
            ConfigValidationError: If validation fails
            ConfigVersionMismatch: If the schema version is incompatible
        """
        path = Path(path)
        try:
            data = self._load_file(path)
        except Exception as e:
            raise ConfigLoadError(
                message=f"Failed to load configuration pack: {e}",
                details={"path": str(path)},
                stage="config_pack",
            ) from e
        pack = self.load_data(data, source=str(path))
        logger.info(
            "Configuration pack loaded",
            extra={"pack_id": pack.pack_id, "config_version": pack.version[:12], "path": str(path)},
        )
        return pack

    def load_data(self, data: Any, source: str = "<memory>") -> ConfigPack:
        """Validate and convert an already-parsed pack."""
        if not isinstance(data, dict):
            raise ConfigLoadError(
                message="Configuration pack must be a mapping",
                details={"path": source},
                stage="config_pack",
            )

        if self.strict_version and not check_schema_version(data):
            pack_version = data.get("schema_version", "unknown")
            raise ConfigVersionMismatch(
                message=f"Schema version mismatch: pack has {pack_version}, expected {SCHEMA_VERSION}",
                details={
                    "pack_version": pack_version,
                    "expected_version": SCHEMA_VERSION,
                },
                stage="config_pack",
            )

        try:
            schema = validate_config_pack(data)
        except ValidationError as e:
            raise ConfigValidationError(
                message=f"Configuration pack validation failed: {e.error_count()} errors",
                details={
                    "errors": [
                        {"loc": list(err["loc"]), "msg": err["msg"]}
                        for err in e.errors()
                    ],
                    "path": source,
                },
                stage="config_pack",
            ) from e

        pack = _convert_config_pack(schema, compute_config_pack_hash(data))
        self._packs[pack.pack_id] = pack
        return pack

    def _load_file(self, path: Path) -> dict[str, Any]:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(f)
            elif path.suffix.lower() == ".json":
                return json.load(f)
            else:
                content = f.read()
                try:
                    return yaml.safe_load(content)
                except yaml.YAMLError:
                    return json.loads(content)

    def get_pack(self, pack_id: str) -> Optional[ConfigPack]:
        """Get a previously loaded pack by ID."""
        return self._packs.get(pack_id)

    def list_packs(self) -> list[str]:
        return sorted(self._packs)


# =============================================================================
# Convenience Functions
# =============================================================================

def load_config_pack(path: Union[str, Path]) -> ConfigPack:
    """Load a single configuration pack file."""
    return ConfigPackLoader().load(path)


def load_config_pack_from_string(content: str, format: str = "yaml") -> ConfigPack:
    """
    Load a configuration pack from a string.

    Args:
        content: Pack content
        format: "yaml" or "json"
    """
    try:
        if format.lower() == "json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigLoadError(
            message=f"Failed to parse configuration pack: {e}",
            details={"format": format},
            stage="config_pack",
        ) from e
    return ConfigPackLoader().load_data(data)


def default_pack_path() -> Path:
    """Path of the bundled configuration pack."""
    return DEFAULTS_DIR / DEFAULT_PACK


def load_default_pack() -> ConfigPack:
    """Load the bundled configuration pack."""
    return load_config_pack(default_pack_path())
