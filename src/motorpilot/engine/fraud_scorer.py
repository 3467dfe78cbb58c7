"""
MotorPilot Fraud Scorer

Additive anomaly score over independent suspicious-pattern indicators.
Each indicator fires at most once; the sum is clamped to [0, 100].

    Indicator                 Weight   Condition
    claim_frequency           20       prior claims in 12 months > 2
    high_claim_ratio          15       claimed amount > 50% of IDV
    location_mismatch         25       photo GPS > 50 km from incident
    timestamp_inconsistency   30       photos span > 48 h, or taken
                                       before the incident
    image_manipulation        40       manipulation detected on a photo
    garage_collusion          35       flagged garage, repeat garage use,
                                       or device shared with other claimants

Recommendation: < 40 approve; 40-70 manual review; > 70 investigate.

The engine only scores raw signals; detection (EXIF parsing, image
forensics) belongs to the metadata provider. Missing signals contribute
nothing and are listed in ``unavailable_signals``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from ..exceptions import ValidationError
from ..models import (
    ClaimantHistory,
    ClaimMetadata,
    FraudAnalysis,
    FraudConfig,
    FraudIndicator,
    FraudIndicatorType,
    FraudRecommendation,
)


@dataclass
class FraudScorer:
    """
    Scores claim metadata and claimant history.

    Usage:
        scorer = FraudScorer(config=FraudConfig())
        analysis = scorer.score(metadata, history, idv=Decimal("500000"))
    """
    config: FraudConfig = field(default_factory=FraudConfig)

    def recommend(self, score: int) -> FraudRecommendation:
        if score > self.config.flag_threshold:
            return FraudRecommendation.INVESTIGATE
        if score >= self.config.review_threshold:
            return FraudRecommendation.MANUAL_REVIEW
        return FraudRecommendation.APPROVE

    def _indicator(self, kind: FraudIndicatorType, description: str, evidence_ref: str) -> FraudIndicator:
        return FraudIndicator(
            indicator_type=kind,
            severity=self.config.severities[kind],
            score_delta=self.config.weights[kind],
            description=description,
            evidence_ref=evidence_ref,
        )

    def score(
        self,
        metadata: ClaimMetadata,
        history: ClaimantHistory,
        idv: Decimal,
    ) -> FraudAnalysis:
        """
        Score one claim.

        Args:
            metadata: Raw claim signals from the metadata provider
            history: Claimant's historical claim pattern
            idv: Insured declared value of the vehicle

        Returns:
            FraudAnalysis with an integer score in [0, max_score]

        Raises:
            ValidationError: On a negative claimed amount, non-positive IDV,
                or photo timestamps whose timezone awareness differs from
                the incident time
        """
        if metadata.claimed_amount < 0:
            raise ValidationError(
                message="Claimed amount must not be negative",
                details={"field": "metadata.claimed_amount"},
                claim_id=metadata.claim_id,
                stage="fraud_scorer",
            )
        if idv <= 0:
            raise ValidationError(
                message="Insured declared value must be positive",
                details={"field": "policy.idv"},
                claim_id=metadata.claim_id,
                stage="fraud_scorer",
            )
        incident_aware = metadata.incident_at.tzinfo is not None
        for i, photo in enumerate(metadata.photos):
            if photo.taken_at is not None and (photo.taken_at.tzinfo is not None) != incident_aware:
                raise ValidationError(
                    message="Photo timestamp and incident time must both carry a timezone or neither",
                    details={"field": f"metadata.photos[{i}].taken_at", "photo_id": photo.photo_id},
                    claim_id=metadata.claim_id,
                    stage="fraud_scorer",
                )

        unavailable: list[str] = []
        checks = (
            self._claim_frequency(history),
            self._claim_ratio(metadata, idv),
            self._location_mismatch(metadata, unavailable),
            self._timestamp_inconsistency(metadata, unavailable),
            self._image_manipulation(metadata, unavailable),
            self._garage_collusion(metadata, history, unavailable),
        )
        indicators = tuple(i for i in checks if i is not None)

        raw = sum(i.score_delta for i in indicators)
        score = max(0, min(self.config.max_score, raw))
        return FraudAnalysis(
            claim_id=metadata.claim_id,
            anomaly_score=score,
            flagged=score > self.config.flag_threshold,
            indicators=indicators,
            recommendation=self.recommend(score),
            unavailable_signals=tuple(unavailable),
        )

    # -------------------------------------------------------------------------
    # Indicators
    # -------------------------------------------------------------------------

    def _claim_frequency(self, history: ClaimantHistory) -> Optional[FraudIndicator]:
        limit = self.config.max_claims_per_year
        if history.claims_last_12_months <= limit:
            return None
        return self._indicator(
            FraudIndicatorType.CLAIM_FREQUENCY,
            f"{history.claims_last_12_months} claims in the last 12 months (limit {limit})",
            f"claimant:{history.claimant_id}",
        )

    def _claim_ratio(self, metadata: ClaimMetadata, idv: Decimal) -> Optional[FraudIndicator]:
        threshold = idv * self.config.claim_to_idv_ratio
        if metadata.claimed_amount <= threshold:
            return None
        return self._indicator(
            FraudIndicatorType.HIGH_CLAIM_RATIO,
            f"Claimed amount exceeds {self.config.claim_to_idv_ratio * 100:.0f}% of IDV",
            f"claim:{metadata.claim_id}:claimed_amount",
        )

    def _location_mismatch(
        self,
        metadata: ClaimMetadata,
        unavailable: list[str],
    ) -> Optional[FraudIndicator]:
        if metadata.incident_location is None:
            unavailable.append("incident_location")
            return None
        located = [p for p in metadata.photos if p.gps is not None]
        if not located:
            unavailable.append("photo_gps")
            return None

        distances = [(metadata.incident_location.distance_km(p.gps), p.photo_id) for p in located]
        distance, photo_id = max(distances, key=lambda d: (d[0], d[1]))
        if distance <= self.config.location_mismatch_km:
            return None
        return self._indicator(
            FraudIndicatorType.LOCATION_MISMATCH,
            f"Photo taken {distance:.1f} km from the reported incident location",
            f"photo:{photo_id}",
        )

    def _timestamp_inconsistency(
        self,
        metadata: ClaimMetadata,
        unavailable: list[str],
    ) -> Optional[FraudIndicator]:
        timed = sorted(
            (p for p in metadata.photos if p.taken_at is not None),
            key=lambda p: (p.taken_at, p.photo_id),
        )
        if not timed:
            unavailable.append("photo_timestamps")
            return None

        earliest, latest = timed[0], timed[-1]
        span = latest.taken_at - earliest.taken_at
        if span > timedelta(hours=self.config.max_photo_span_hours):
            return self._indicator(
                FraudIndicatorType.TIMESTAMP_INCONSISTENCY,
                f"Photos span {span.total_seconds() / 3600:.1f} hours",
                f"photos:{earliest.photo_id},{latest.photo_id}",
            )

        cutoff = metadata.incident_at - timedelta(minutes=self.config.pre_incident_tolerance_minutes)
        if earliest.taken_at < cutoff:
            return self._indicator(
                FraudIndicatorType.TIMESTAMP_INCONSISTENCY,
                "Photo taken before the reported incident",
                f"photo:{earliest.photo_id}",
            )
        return None

    def _image_manipulation(
        self,
        metadata: ClaimMetadata,
        unavailable: list[str],
    ) -> Optional[FraudIndicator]:
        if not metadata.photos:
            unavailable.append("photos")
            return None
        manipulated = [p.photo_id for p in metadata.photos if p.manipulation_detected]
        if not manipulated:
            return None
        return self._indicator(
            FraudIndicatorType.IMAGE_MANIPULATION,
            f"Manipulation detected on {len(manipulated)} photo(s)",
            "photos:" + ",".join(sorted(manipulated)),
        )

    def _garage_collusion(
        self,
        metadata: ClaimMetadata,
        history: ClaimantHistory,
        unavailable: list[str],
    ) -> Optional[FraudIndicator]:
        garage = metadata.garage_id
        if garage is None:
            unavailable.append("garage_id")
        else:
            if garage in history.flagged_garages:
                return self._indicator(
                    FraudIndicatorType.GARAGE_COLLUSION,
                    "Repair garage is on the watch list",
                    f"garage:{garage}",
                )
            repeats = history.garage_claim_counts.get(garage, 0)
            if repeats >= self.config.collusion_repeat_threshold:
                return self._indicator(
                    FraudIndicatorType.GARAGE_COLLUSION,
                    f"{repeats} prior claims through the same garage",
                    f"garage:{garage}",
                )

        shared = sorted({
            p.device_id for p in metadata.photos
            if p.device_id and p.device_id in history.shared_device_ids
        })
        if shared:
            return self._indicator(
                FraudIndicatorType.GARAGE_COLLUSION,
                "Photo device seen on other claimants' claims",
                "devices:" + ",".join(shared),
            )
        return None
