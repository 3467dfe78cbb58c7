"""
Tests for the MotorPilot purchase path

Tests cover:
- Recency brackets and frequency multipliers
- Score bounds and factor lists
- Base premium from the rate table, risk adjustment, add-ons, minimum
- Input validation
- UnderwritingPipeline determinism and store failures
- Dominance monotonicity (seeded property check)
"""
import dataclasses
from datetime import date, timedelta
from decimal import Decimal

import pytest

from motorpilot.adapters import StaticRateTable
from motorpilot.engine import PremiumCalculator, RiskScorer, UnderwritingPipeline
from motorpilot.exceptions import DataUnavailable, ValidationError
from motorpilot.models import (
    AddOn,
    CoverageType,
    EngineConfig,
    PremiumConfig,
    RiskConfig,
    Severity,
)

from tests.conftest import (
    AS_OF,
    make_application,
    make_vehicle,
    make_violation,
    make_violation_store,
)

AS_OF_DATE = AS_OF.date()


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def scorer():
    return RiskScorer(RiskConfig())


@pytest.fixture
def calculator():
    return PremiumCalculator(PremiumConfig())


def _score(scorer, violations):
    return scorer.score("DRV-001", violations, as_of=AS_OF_DATE)


# =============================================================================
# Risk Scorer
# =============================================================================

class TestRiskScore:
    """Tests for RiskScorer.score."""

    def test_clean_record_scores_base(self, scorer):
        assessment = _score(scorer, [])
        assert assessment.score == Decimal("50")
        assert [f.code for f in assessment.factors] == ["clean_record"]
        assert assessment.nonzero_factors == ()

    def test_single_recent_severe(self, scorer):
        assessment = _score(scorer, [make_violation(severity=Severity.SEVERE)])
        # 5 points * severe 3 * recent 1.0
        assert assessment.score == Decimal("65.00")
        factor = assessment.factors[0]
        assert factor.code == "violations:speeding"
        assert factor.impact_pct == Decimal("15.00")
        assert factor.violation_ids == ("V-1",)

    def test_exactly_six_months_is_mid_weight(self, scorer):
        v = make_violation(violation_date=date(2024, 1, 1), severity=Severity.MODERATE)
        assert _score(scorer, [v]).score == Decimal("56.00")

    def test_just_inside_six_months_is_recent(self, scorer):
        v = make_violation(violation_date=date(2024, 1, 2), severity=Severity.MODERATE)
        assert _score(scorer, [v]).score == Decimal("60.00")

    def test_exactly_twelve_months_is_mid_weight(self, scorer):
        v = make_violation(violation_date=date(2023, 7, 1))
        assert _score(scorer, [v]).score == Decimal("53.00")

    def test_older_than_twelve_months_is_old_weight(self, scorer):
        v = make_violation(violation_date=date(2023, 6, 30))
        assert _score(scorer, [v]).score == Decimal("51.50")

    def test_frequency_multiplier_per_type(self, scorer):
        violations = [
            make_violation("V-1", "speeding", date(2024, 3, 1)),
            make_violation("V-2", "speeding", date(2024, 4, 1)),
            make_violation("V-3", "speeding", date(2024, 5, 1)),
        ]
        # 3 * (5 * 1 * 1.0 * 1.4)
        assert _score(scorer, violations).score == Decimal("71.00")

    def test_groups_are_scored_separately(self, scorer):
        violations = [
            make_violation("V-1", "speeding", date(2024, 3, 1)),
            make_violation("V-2", "speeding", date(2024, 4, 1)),
            make_violation("V-3", "red_light", date(2024, 5, 1)),
        ]
        assessment = _score(scorer, violations)
        assert assessment.score == Decimal("67.00")
        assert [f.code for f in assessment.factors] == ["violations:red_light", "violations:speeding"]

    def test_frequency_multiplier_capped(self, scorer):
        assert scorer.frequency_multiplier(1) == Decimal("1")
        assert scorer.frequency_multiplier(3) == Decimal("1.4")
        assert scorer.frequency_multiplier(10) == Decimal("2.0")

    def test_score_clamped_to_max(self, scorer):
        violations = [
            make_violation(f"V-{i}", severity=Severity.SEVERE, violation_date=date(2024, 6, 1))
            for i in range(10)
        ]
        assessment = _score(scorer, violations)
        assert assessment.score == Decimal("100.00")
        clamp = [f for f in assessment.factors if f.code == "score_clamped"]
        assert clamp and clamp[0].impact_pct == Decimal("-250.00")

    def test_future_violation_rejected(self, scorer):
        v = make_violation(violation_date=AS_OF_DATE + timedelta(days=1))
        with pytest.raises(ValidationError) as exc_info:
            _score(scorer, [v])
        assert exc_info.value.field_name == "violation_date"

    def test_configured_base_adds_baseline_factor(self):
        scorer = RiskScorer(RiskConfig(base_score=Decimal("30")))
        assessment = _score(scorer, [])
        assert assessment.score == Decimal("30.00")
        assert assessment.factors[0].code == "baseline"
        assert assessment.factors[0].impact_pct == Decimal("-20.00")

    def test_source_violations_sorted(self, scorer):
        late = make_violation("V-2", violation_date=date(2024, 5, 1))
        early = make_violation("V-1", violation_date=date(2024, 2, 1))
        assessment = _score(scorer, [late, early])
        assert [v.violation_id for v in assessment.source_violations] == ["V-1", "V-2"]


# =============================================================================
# Premium Calculator
# =============================================================================

class TestBasePremium:
    """Tests for the static rate table."""

    def test_comprehensive_is_own_damage_plus_third_party(self):
        table = StaticRateTable(PremiumConfig())
        vehicle = make_vehicle()
        assert table.base_premium(vehicle, CoverageType.OWN_DAMAGE, AS_OF) == Decimal("14000.00")
        assert table.base_premium(vehicle, CoverageType.THIRD_PARTY, AS_OF) == Decimal("3416.00")
        assert table.base_premium(vehicle, CoverageType.COMPREHENSIVE, AS_OF) == Decimal("17416.00")

    def test_rate_bands_by_age_and_engine(self):
        table = StaticRateTable(PremiumConfig())
        old_small = make_vehicle(engine_cc=800, manufacture_date=date(2013, 5, 1))
        assert table.own_damage_premium(old_small, AS_OF) == Decimal("18000.00")
        assert table.third_party_premium(old_small) == Decimal("2094.00")


class TestPremiumQuote:
    """Tests for PremiumCalculator.quote."""

    def test_clean_record_pays_base(self, scorer, calculator):
        quote = calculator.quote(make_application(), _score(scorer, []))
        assert quote.base_premium == Decimal("17416.00")
        assert quote.risk_adjustment == Decimal("0.00")
        assert quote.total_premium == quote.base_premium
        assert quote.coverage_type == CoverageType.COMPREHENSIVE

    def test_risk_adjustment_scales_base(self, scorer, calculator):
        assessment = _score(scorer, [make_violation(severity=Severity.SEVERE)])
        quote = calculator.quote(make_application(), assessment)
        assert quote.risk_adjustment == Decimal("2612.40")
        assert quote.total_premium == Decimal("20028.40")
        assert "Risk factor Speeding: +15.00%" in quote.explanation

    def test_below_neutral_discounts(self, calculator):
        scorer = RiskScorer(RiskConfig(base_score=Decimal("30")))
        quote = calculator.quote(make_application(), _score(scorer, []))
        assert quote.risk_adjustment == Decimal("-3483.20")
        assert quote.total_premium == Decimal("13932.80")

    def test_add_ons_priced_and_deduplicated(self, scorer, calculator):
        application = make_application(
            add_ons=["zero_depreciation", "roadside_assistance", "zero_depreciation"],
        )
        quote = calculator.quote(application, _score(scorer, []))
        assert [a.add_on for a in quote.add_on_premiums] == [
            AddOn.ZERO_DEPRECIATION, AddOn.ROADSIDE_ASSISTANCE,
        ]
        assert [a.amount for a in quote.add_on_premiums] == [Decimal("2612.40"), Decimal("199.00")]
        assert quote.total_premium == Decimal("20227.40")

    def test_minimum_premium_applied(self, scorer):
        calculator = PremiumCalculator(PremiumConfig(minimum_premium=Decimal("25000")))
        quote = calculator.quote(make_application(), _score(scorer, []))
        assert quote.minimum_applied
        assert quote.total_premium == Decimal("25000.00")
        assert "Minimum premium" in quote.explanation

    def test_validity_window(self, scorer, calculator):
        quote = calculator.quote(make_application(), _score(scorer, []))
        assert quote.quoted_at == AS_OF
        assert quote.valid_until == AS_OF + timedelta(days=30)

    def test_custom_rate_table(self, scorer):
        class FlatRateTable:
            def base_premium(self, vehicle, coverage_type, as_of):
                return Decimal("10000")

        calculator = PremiumCalculator(PremiumConfig(), rate_table=FlatRateTable())
        quote = calculator.quote(make_application(), _score(scorer, []))
        assert quote.total_premium == Decimal("10000.00")

    def test_non_positive_idv_rejected(self, scorer, calculator):
        application = make_application(vehicle=make_vehicle(idv=Decimal("0")))
        with pytest.raises(ValidationError) as exc_info:
            calculator.quote(application, _score(scorer, []))
        assert exc_info.value.field_name == "vehicle.idv"
        assert exc_info.value.stage == "premium_calculator"

    def test_unknown_coverage_rejected(self, scorer, calculator):
        with pytest.raises(ValidationError) as exc_info:
            calculator.quote(make_application(coverage_type="collision"), _score(scorer, []))
        assert exc_info.value.field_name == "coverage_type"
        assert exc_info.value.stage == "premium_calculator"

    def test_unknown_add_on_rejected(self, scorer, calculator):
        with pytest.raises(ValidationError) as exc_info:
            calculator.quote(make_application(add_ons=["nitro"]), _score(scorer, []))
        assert exc_info.value.field_name == "add_ons"
        assert exc_info.value.stage == "premium_calculator"

    def test_add_on_not_offered_rejected(self, scorer):
        calculator = PremiumCalculator(PremiumConfig(add_on_rates={}))
        with pytest.raises(ValidationError) as exc_info:
            calculator.quote(make_application(add_ons=["glass_cover"]), _score(scorer, []))
        assert exc_info.value.field_name == "add_ons"
        assert exc_info.value.details["add_on"] == "glass_cover"
        assert exc_info.value.stage == "premium_calculator"


# =============================================================================
# Pipeline
# =============================================================================

class TestUnderwritingPipeline:
    """Tests for UnderwritingPipeline.compute_premium."""

    def test_quote_from_store_history(self):
        store = make_violation_store(violations=[make_violation(severity=Severity.SEVERE)])
        quote = UnderwritingPipeline(store).compute_premium(make_application())
        assert quote.risk_assessment.score == Decimal("65.00")
        assert quote.total_premium == Decimal("20028.40")

    def test_retries_are_identical(self):
        store = make_violation_store(violations=[make_violation()])
        pipeline = UnderwritingPipeline(store)
        first = pipeline.compute_premium(make_application())
        second = pipeline.compute_premium(make_application())
        assert first.to_dict() == second.to_dict()

    def test_store_outage_is_retryable(self):
        store = make_violation_store()
        store.available = False
        with pytest.raises(DataUnavailable) as exc_info:
            UnderwritingPipeline(store).compute_premium(make_application())
        assert exc_info.value.retryable
        assert exc_info.value.code == "MP_DATA_UNAVAILABLE"

    def test_config_version_recorded(self):
        config = dataclasses.replace(EngineConfig(), version="abc123")
        quote = UnderwritingPipeline(make_violation_store(), config=config).compute_premium(make_application())
        assert quote.config_version == "abc123"
        assert quote.risk_assessment.config_version == "abc123"


# =============================================================================
# Properties
# =============================================================================

TYPES = ["speeding", "red_light", "no_seatbelt"]
SEVERITIES = list(Severity)
ORDER = {Severity.MINOR: 0, Severity.MODERATE: 1, Severity.SEVERE: 2}


def _random_violation(rng, i):
    return make_violation(
        violation_id=f"V-{i}",
        violation_type=rng.choice(TYPES),
        violation_date=AS_OF_DATE - timedelta(days=rng.randint(0, 3 * 365)),
        severity=rng.choice(SEVERITIES),
    )


def _dominate(rng, history):
    """Add a violation, raise a severity, or make a violation more recent."""
    history = list(history)
    move = rng.choice(["add", "severity", "recency"]) if history else "add"
    if move == "add":
        history.append(_random_violation(rng, len(history) + 100))
    else:
        i = rng.randrange(len(history))
        v = history[i]
        if move == "severity":
            worse = [s for s in SEVERITIES if ORDER[s] >= ORDER[v.severity]]
            history[i] = dataclasses.replace(v, severity=rng.choice(worse))
        else:
            days_back = (AS_OF_DATE - v.violation_date).days
            history[i] = dataclasses.replace(
                v, violation_date=AS_OF_DATE - timedelta(days=rng.randint(0, days_back)),
            )
    return history


class TestMonotonicity:
    """Dominating histories never score or price lower."""

    def test_dominating_history_scores_at_least_as_high(self, scorer, rng):
        for _ in range(200):
            base = [_random_violation(rng, i) for i in range(rng.randint(0, 6))]
            worse = _dominate(rng, base)
            assert _score(scorer, worse).score >= _score(scorer, base).score

    def test_higher_score_never_cheaper(self, scorer, calculator, rng):
        application = make_application()
        for _ in range(100):
            base = [_random_violation(rng, i) for i in range(rng.randint(0, 6))]
            worse = _dominate(rng, base)
            low = calculator.quote(application, _score(scorer, base))
            high = calculator.quote(application, _score(scorer, worse))
            assert high.total_premium >= low.total_premium

    def test_frequency_multiplier_is_per_type(self, scorer):
        same = [make_violation(f"V-{i}") for i in range(3)]
        mixed = [
            make_violation(f"V-{i}", violation_type=kind)
            for i, kind in enumerate(["speeding", "signal_jump", "no_helmet"])
        ]
        assert _score(scorer, same).score == Decimal("71.00")
        assert _score(scorer, mixed).score == Decimal("65.00")

    def test_premium_never_negative(self, calculator):
        scorer = RiskScorer(RiskConfig(base_score=Decimal("0")))
        quote = calculator.quote(make_application(coverage_type="third_party"), _score(scorer, []))
        assert quote.total_premium >= 0
