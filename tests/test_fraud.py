"""
Tests for MotorPilot fraud scoring

Tests cover:
- Each indicator's trigger condition and boundary
- Score clamping and recommendation thresholds (70 not flagged, 71 flagged)
- Unavailable signals
- Input validation
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from motorpilot.engine import FraudScorer
from motorpilot.exceptions import ValidationError
from motorpilot.models import (
    FraudConfig,
    FraudIndicatorType,
    FraudRecommendation,
    GeoPoint,
    IndicatorSeverity,
)

from tests.conftest import (
    INCIDENT_AT,
    PUNE,
    make_history,
    make_metadata,
    make_photo,
)

IDV = Decimal("500000")


@pytest.fixture
def scorer():
    return FraudScorer(FraudConfig())


def _types(analysis):
    return [i.indicator_type for i in analysis.indicators]


# =============================================================================
# Indicators
# =============================================================================

class TestIndicators:
    """Tests for individual fraud indicators."""

    def test_clean_claim_scores_zero(self, scorer):
        analysis = scorer.score(make_metadata(), make_history(), IDV)
        assert analysis.anomaly_score == 0
        assert analysis.indicators == ()
        assert analysis.unavailable_signals == ()
        assert analysis.recommendation == FraudRecommendation.APPROVE
        assert not analysis.flagged

    def test_claim_frequency(self, scorer):
        assert scorer.score(make_metadata(), make_history(claims_last_12_months=2), IDV).anomaly_score == 0
        analysis = scorer.score(make_metadata(), make_history(claims_last_12_months=3), IDV)
        assert _types(analysis) == [FraudIndicatorType.CLAIM_FREQUENCY]
        assert analysis.anomaly_score == 20
        assert analysis.indicators[0].severity == IndicatorSeverity.LOW

    def test_high_claim_ratio(self, scorer):
        at_half = scorer.score(make_metadata(claimed_amount=Decimal("250000")), make_history(), IDV)
        assert at_half.anomaly_score == 0
        above = scorer.score(make_metadata(claimed_amount=Decimal("250000.01")), make_history(), IDV)
        assert _types(above) == [FraudIndicatorType.HIGH_CLAIM_RATIO]
        assert above.anomaly_score == 15

    def test_location_mismatch(self, scorer):
        photos = (make_photo("P-1"), make_photo("P-2", gps=PUNE))
        analysis = scorer.score(make_metadata(photos=photos), make_history(), IDV)
        assert _types(analysis) == [FraudIndicatorType.LOCATION_MISMATCH]
        assert analysis.indicators[0].evidence_ref == "photo:P-2"
        assert analysis.anomaly_score == 25

    def test_nearby_photo_is_not_a_mismatch(self, scorer):
        nearby = GeoPoint(19.10, 72.90)
        photos = (make_photo("P-1", gps=nearby),)
        assert scorer.score(make_metadata(photos=photos), make_history(), IDV).anomaly_score == 0

    def test_photos_spanning_too_long(self, scorer):
        photos = (
            make_photo("P-1"),
            make_photo("P-2", taken_at=INCIDENT_AT + timedelta(hours=50)),
        )
        analysis = scorer.score(make_metadata(photos=photos), make_history(), IDV)
        assert _types(analysis) == [FraudIndicatorType.TIMESTAMP_INCONSISTENCY]
        assert analysis.indicators[0].evidence_ref == "photos:P-1,P-2"

    def test_photo_before_incident(self, scorer):
        photos = (make_photo("P-1", taken_at=INCIDENT_AT - timedelta(hours=2)),)
        analysis = scorer.score(make_metadata(photos=photos), make_history(), IDV)
        assert _types(analysis) == [FraudIndicatorType.TIMESTAMP_INCONSISTENCY]
        assert analysis.anomaly_score == 30

    def test_photo_within_pre_incident_tolerance(self, scorer):
        photos = (make_photo("P-1", taken_at=INCIDENT_AT - timedelta(minutes=30)),)
        assert scorer.score(make_metadata(photos=photos), make_history(), IDV).anomaly_score == 0

    def test_image_manipulation(self, scorer):
        photos = (make_photo("P-1"), make_photo("P-2", manipulation_detected=True))
        analysis = scorer.score(make_metadata(photos=photos), make_history(), IDV)
        assert _types(analysis) == [FraudIndicatorType.IMAGE_MANIPULATION]
        assert analysis.indicators[0].severity == IndicatorSeverity.HIGH
        assert analysis.anomaly_score == 40

    def test_flagged_garage(self, scorer):
        analysis = scorer.score(make_metadata(), make_history(flagged_garages=["GAR-1"]), IDV)
        assert _types(analysis) == [FraudIndicatorType.GARAGE_COLLUSION]
        assert analysis.indicators[0].evidence_ref == "garage:GAR-1"

    def test_repeat_garage(self, scorer):
        twice = scorer.score(make_metadata(), make_history(garage_claim_counts={"GAR-1": 2}), IDV)
        assert twice.anomaly_score == 0
        thrice = scorer.score(make_metadata(), make_history(garage_claim_counts={"GAR-1": 3}), IDV)
        assert thrice.anomaly_score == 35

    def test_shared_device(self, scorer):
        analysis = scorer.score(make_metadata(), make_history(shared_device_ids=["DEV-1"]), IDV)
        assert _types(analysis) == [FraudIndicatorType.GARAGE_COLLUSION]
        assert analysis.indicators[0].evidence_ref == "devices:DEV-1"

    def test_each_indicator_counts_once(self, scorer):
        history = make_history(flagged_garages=["GAR-1"], shared_device_ids=["DEV-1"])
        analysis = scorer.score(make_metadata(), history, IDV)
        assert analysis.anomaly_score == 35


# =============================================================================
# Score
# =============================================================================

class TestScore:
    """Tests for the combined score."""

    def test_score_clamped_to_100(self, scorer):
        photos = (
            make_photo("P-1", taken_at=INCIDENT_AT - timedelta(hours=3), gps=PUNE),
            make_photo("P-2", taken_at=INCIDENT_AT + timedelta(hours=60), manipulation_detected=True),
        )
        metadata = make_metadata(claimed_amount=Decimal("400000"), photos=photos)
        history = make_history(claims_last_12_months=5, flagged_garages=["GAR-1"])
        analysis = scorer.score(metadata, history, IDV)
        assert len(analysis.indicators) == 6
        assert analysis.anomaly_score == 100
        assert analysis.flagged
        assert analysis.recommendation == FraudRecommendation.INVESTIGATE

    def test_flag_threshold_edge(self):
        weights = {t: 0 for t in FraudIndicatorType}
        weights[FraudIndicatorType.CLAIM_FREQUENCY] = 70
        weights[FraudIndicatorType.HIGH_CLAIM_RATIO] = 1
        scorer = FraudScorer(FraudConfig(weights=weights))
        history = make_history(claims_last_12_months=3)

        at_seventy = scorer.score(make_metadata(), history, IDV)
        assert at_seventy.anomaly_score == 70
        assert not at_seventy.flagged
        assert at_seventy.recommendation == FraudRecommendation.MANUAL_REVIEW

        above = scorer.score(make_metadata(claimed_amount=Decimal("300000")), history, IDV)
        assert above.anomaly_score == 71
        assert above.flagged
        assert above.recommendation == FraudRecommendation.INVESTIGATE

    def test_review_threshold(self, scorer):
        assert scorer.recommend(39) == FraudRecommendation.APPROVE
        assert scorer.recommend(40) == FraudRecommendation.MANUAL_REVIEW
        assert scorer.recommend(70) == FraudRecommendation.MANUAL_REVIEW
        assert scorer.recommend(71) == FraudRecommendation.INVESTIGATE

    def test_missing_signals_listed_not_scored(self, scorer):
        metadata = make_metadata(incident_location=None, garage_id=None, photos=())
        analysis = scorer.score(metadata, make_history(), IDV)
        assert analysis.anomaly_score == 0
        assert analysis.unavailable_signals == (
            "incident_location", "photo_timestamps", "photos", "garage_id",
        )

    def test_photos_without_gps(self, scorer):
        metadata = make_metadata(photos=(make_photo("P-1", gps=None),))
        assert scorer.score(metadata, make_history(), IDV).unavailable_signals == ("photo_gps",)

    def test_score_always_in_range(self, scorer, rng):
        for _ in range(200):
            photos = tuple(
                make_photo(
                    f"P-{i}",
                    taken_at=INCIDENT_AT + timedelta(hours=rng.randint(-5, 80)),
                    gps=rng.choice([None, PUNE, GeoPoint(19.07, 72.88)]),
                    manipulation_detected=rng.random() < 0.2,
                )
                for i in range(rng.randint(0, 4))
            )
            metadata = make_metadata(
                claimed_amount=Decimal(rng.randint(0, 600000)),
                photos=photos,
                garage_id=rng.choice([None, "GAR-1", "GAR-2"]),
            )
            history = make_history(
                claims_last_12_months=rng.randint(0, 6),
                garage_claim_counts={"GAR-1": rng.randint(0, 5)},
                flagged_garages=rng.choice([(), ("GAR-2",)]),
            )
            analysis = scorer.score(metadata, history, IDV)
            assert 0 <= analysis.anomaly_score <= 100
            assert analysis.flagged == (analysis.anomaly_score > 70)


class TestValidation:
    """Out-of-range inputs are rejected."""

    def test_negative_claimed_amount(self, scorer):
        with pytest.raises(ValidationError) as exc_info:
            scorer.score(make_metadata(claimed_amount=Decimal("-1")), make_history(), IDV)
        assert exc_info.value.field_name == "metadata.claimed_amount"
        assert exc_info.value.claim_id == "CLM-001"

    def test_non_positive_idv(self, scorer):
        with pytest.raises(ValidationError) as exc_info:
            scorer.score(make_metadata(), make_history(), Decimal("0"))
        assert exc_info.value.field_name == "policy.idv"
        assert exc_info.value.stage == "fraud_scorer"

    def test_naive_photo_timestamp_with_aware_incident(self, scorer):
        photos = (
            make_photo("P-1"),
            make_photo("P-2", taken_at=datetime(2024, 7, 15, 10, 30)),
        )
        with pytest.raises(ValidationError) as exc_info:
            scorer.score(make_metadata(photos=photos), make_history(), IDV)
        assert exc_info.value.field_name == "metadata.photos[1].taken_at"
        assert exc_info.value.stage == "fraud_scorer"
        assert exc_info.value.retryable is False

    def test_aware_photo_timestamp_with_naive_incident(self, scorer):
        metadata = make_metadata(incident_at=datetime(2024, 7, 15, 10, 0))
        with pytest.raises(ValidationError) as exc_info:
            scorer.score(metadata, make_history(), IDV)
        assert exc_info.value.field_name == "metadata.photos[0].taken_at"

    def test_naive_timestamps_throughout_are_scored(self, scorer):
        incident = datetime(2024, 7, 15, 10, 0)
        photos = (make_photo("P-1", taken_at=incident + timedelta(minutes=20)),)
        analysis = scorer.score(make_metadata(incident_at=incident, photos=photos), make_history(), IDV)
        assert analysis.anomaly_score == 0
