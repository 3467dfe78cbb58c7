"""
Tests for MotorPilot configuration packs

Tests cover:
- The bundled pack matches the engine defaults
- Pack hashing and versioning
- Schema validation errors
- Loading from files and strings
"""
import copy
import json

import pytest
import yaml

from motorpilot.adapters import RetrievalKind, RetrievalQuery
from motorpilot.exceptions import ConfigLoadError, ConfigValidationError, ConfigVersionMismatch
from motorpilot.models import (
    ClauseKey,
    CoverageType,
    DecisionConfig,
    DepreciationConfig,
    FraudConfig,
    PremiumConfig,
    RiskConfig,
)
from motorpilot.packs import (
    ConfigPackLoader,
    default_pack_path,
    load_config_pack,
    load_config_pack_from_string,
    load_default_pack,
)


@pytest.fixture
def pack_data():
    with open(default_pack_path(), "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def load(data):
    return ConfigPackLoader().load_data(copy.deepcopy(data))


# =============================================================================
# Bundled Pack
# =============================================================================

class TestDefaultPack:
    """The bundled pack mirrors the built-in defaults."""

    def test_loads(self):
        pack = load_default_pack()
        assert pack.pack_id == "in_motor_2024"
        assert pack.currency == "INR"
        assert len(pack.tariffs) == 11
        assert set(pack.clauses) == set(ClauseKey)

    def test_sections_match_defaults(self):
        config = load_default_pack().config
        assert config.risk == RiskConfig()
        assert config.premium == PremiumConfig()
        assert config.depreciation == DepreciationConfig()
        assert config.fraud == FraudConfig()
        assert config.decision == DecisionConfig()

    def test_version_is_content_hash(self):
        pack = load_default_pack()
        assert len(pack.version) == 64
        assert pack.config.version == pack.version
        assert load_default_pack().version == pack.version

    def test_tariff_cost_is_labor_plus_parts(self):
        tariff = load_default_pack().tariffs["front_bumper"]
        assert str(tariff.tariff.total) == "8000.00"
        assert tariff.citation.document_id == "garage-tariff-2024"

    def test_static_retriever_serves_pack_tables(self):
        retriever = load_default_pack().static_retriever()
        hits = retriever.search(RetrievalQuery(
            kind=RetrievalKind.TARIFF,
            terms=("Front Bumper",),
            coverage_type=CoverageType.COMPREHENSIVE,
        ))
        assert hits
        assert hits[0].tariff.part_cost == 6800


# =============================================================================
# Versioning
# =============================================================================

class TestVersioning:
    """Pack hashing and schema version checks."""

    def test_description_excluded_from_hash(self, pack_data):
        edited = copy.deepcopy(pack_data)
        edited["description"] = "Reworded description"
        assert load(edited).version == load(pack_data).version

    def test_tariff_change_changes_hash(self, pack_data):
        edited = copy.deepcopy(pack_data)
        edited["tariffs"][0]["part_cost"] = "6900.00"
        assert load(edited).version != load(pack_data).version

    def test_major_version_mismatch_rejected(self, pack_data):
        pack_data["schema_version"] = "2.0.0"
        with pytest.raises(ConfigVersionMismatch) as exc_info:
            load(pack_data)
        assert exc_info.value.details["pack_version"] == "2.0.0"

    def test_minor_version_accepted(self, pack_data):
        pack_data["schema_version"] = "1.3.0"
        assert load(pack_data).pack_id == "in_motor_2024"

    def test_lenient_loader_skips_version_check(self, pack_data):
        pack_data["schema_version"] = "2.0.0"
        pack = ConfigPackLoader(strict_version=False).load_data(pack_data)
        assert pack.pack_id == "in_motor_2024"


# =============================================================================
# Validation
# =============================================================================

class TestValidation:
    """Invalid packs are rejected with field locations."""

    def _errors(self, data):
        with pytest.raises(ConfigValidationError) as exc_info:
            load(data)
        return exc_info.value.details["errors"]

    def test_unknown_field(self, pack_data):
        pack_data["risk"]["base_scor"] = "50"
        errors = self._errors(pack_data)
        assert errors[0]["loc"] == ["risk", "base_scor"]

    def test_elevated_table_must_be_stricter(self, pack_data):
        pack_data["depreciation"]["elevated"][2]["value"] = "10"
        errors = self._errors(pack_data)
        assert "bracket 24" in errors[0]["msg"]

    def test_bands_must_ascend(self, pack_data):
        pack_data["premium"]["own_damage_rates"][1]["upper"] = 60
        self._errors(pack_data)

    def test_last_band_open_ended(self, pack_data):
        pack_data["premium"]["third_party_premiums"][-1]["upper"] = 3000
        self._errors(pack_data)

    def test_duplicate_tariff_part(self, pack_data):
        pack_data["tariffs"].append(copy.deepcopy(pack_data["tariffs"][0]))
        errors = self._errors(pack_data)
        assert "front_bumper" in errors[0]["msg"]

    def test_duplicate_tariff_part_after_normalization(self, pack_data):
        row = copy.deepcopy(pack_data["tariffs"][0])
        row["part"] = "Front Bumper"
        pack_data["tariffs"].append(row)
        errors = self._errors(pack_data)
        assert "front_bumper" in errors[0]["msg"]

    def test_fraud_weights_must_cover_every_indicator(self, pack_data):
        del pack_data["fraud"]["weights"]["garage_collusion"]
        errors = self._errors(pack_data)
        assert "garage_collusion" in errors[0]["msg"]

    def test_review_threshold_not_above_flag(self, pack_data):
        pack_data["fraud"]["review_threshold"] = 80
        self._errors(pack_data)

    def test_negative_rate_rejected(self, pack_data):
        pack_data["premium"]["minimum_premium"] = "-1"
        self._errors(pack_data)


# =============================================================================
# Loading
# =============================================================================

class TestLoading:
    """File and string loading."""

    def test_json_string(self, pack_data):
        pack = load_config_pack_from_string(json.dumps(pack_data, default=str), format="json")
        assert pack.pack_id == "in_motor_2024"

    def test_yaml_string(self):
        content = default_pack_path().read_text(encoding="utf-8")
        assert load_config_pack_from_string(content).version == load_default_pack().version

    def test_json_file(self, pack_data, tmp_path):
        path = tmp_path / "pack.json"
        path.write_text(json.dumps(pack_data, default=str), encoding="utf-8")
        assert load_config_pack(path).pack_id == "in_motor_2024"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError) as exc_info:
            load_config_pack(tmp_path / "missing.yaml")
        assert exc_info.value.details["path"].endswith("missing.yaml")

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigLoadError):
            load_config_pack_from_string("- just\n- a list\n")

    def test_unparseable_json(self):
        with pytest.raises(ConfigLoadError):
            load_config_pack_from_string("{not json", format="json")

    def test_loader_registry(self):
        loader = ConfigPackLoader()
        loader.load(default_pack_path())
        assert loader.list_packs() == ["in_motor_2024"]
        assert loader.get_pack("in_motor_2024") is not None
        assert loader.get_pack("other") is None
