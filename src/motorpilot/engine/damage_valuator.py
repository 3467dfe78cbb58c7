"""
MotorPilot Damage Valuator

Converts a DamageReport plus tariff lookup results into per-part
depreciated costs.

Depreciation (percent of tariff cost, by vehicle age in months, upper bound
inclusive):

    Age        Standard   Elevated (plastic/rubber/battery)
    0-6        0          20
    7-12       5          25
    13-24      10         30
    25-36      15         35
    37-48      25         45
    49-60      35         50
    60+        50         60

Category rules:
- Glass: 0% with the glass_cover add-on, else standard
- Plastic/rubber/battery: elevated table
- Metal/body: standard table
- zero_depreciation add-on: 0% for every category except rubber and battery

Parts without a tariff match are listed uncovered with UNMATCHED_TARIFF and
contribute nothing. The vision estimate is kept for audit but never priced.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..adapters.rates import band_value
from ..adapters.retrieval import TariffLookup
from ..exceptions import ValidationError
from ..models import (
    AddOn,
    Citation,
    ClauseBook,
    ClauseKey,
    DamageReport,
    DenialReason,
    DepreciationConfig,
    DetectedPart,
    PartAmount,
    PartCategory,
    Policy,
    Valuation,
    dedupe_citations,
)
from ..money import HUNDRED, ZERO, apply_percent_reduction, money

logger = logging.getLogger(__name__)

REASON_LOW_CONFIDENCE = "overall_confidence_below_threshold"
REASON_VISION_FLAG = "vision_manual_review_flag"
REASON_STATIC_FALLBACK = "static_tariff_fallback"


def validate_report(report: DamageReport) -> None:
    """
    Range-check the vision collaborator's report.

    Raises:
        ValidationError: On confidences outside [0, 100] or negative estimates
    """
    if not (0 <= report.overall_confidence <= HUNDRED):
        raise ValidationError(
            message="Overall confidence must be within [0, 100]",
            details={"field": "damage_report.overall_confidence", "report_id": report.report_id},
            stage="damage_valuator",
        )
    for index, part in enumerate(report.parts):
        if not (0 <= part.confidence <= HUNDRED):
            raise ValidationError(
                message="Part confidence must be within [0, 100]",
                details={"field": f"damage_report.parts[{index}].confidence"},
                stage="damage_valuator",
            )
        if part.estimated_cost < 0:
            raise ValidationError(
                message="Part estimate must not be negative",
                details={"field": f"damage_report.parts[{index}].estimated_cost"},
                stage="damage_valuator",
            )


# =============================================================================
# Damage Valuator
# =============================================================================

@dataclass
class DamageValuator:
    """
    Values a damage report against matched tariffs.

    Usage:
        valuator = DamageValuator(config=DepreciationConfig())
        valuation = valuator.value(report, tariffs, policy, vehicle_age_months=30)
    """
    config: DepreciationConfig = field(default_factory=DepreciationConfig)
    confidence_threshold: Decimal = Decimal("80")

    def depreciation_pct(self, category: PartCategory, age_months: int, policy: Policy) -> Decimal:
        """Depreciation percentage for one part category at a vehicle age."""
        if category == PartCategory.GLASS and policy.has_add_on(AddOn.GLASS_COVER):
            return Decimal("0")
        if (
            policy.has_add_on(AddOn.ZERO_DEPRECIATION)
            and category not in self.config.zero_depreciation_excluded
        ):
            return Decimal("0")
        table = self.config.elevated if category.uses_elevated_depreciation else self.config.standard
        return band_value(table, age_months, stage="damage_valuator")

    def value(
        self,
        report: DamageReport,
        tariffs: TariffLookup,
        policy: Policy,
        vehicle_age_months: int,
        clauses: Optional[ClauseBook] = None,
    ) -> Valuation:
        """
        Value every detected part, in report order.

        Args:
            report: DamageReport from the vision collaborator
            tariffs: Tariffs resolved for the report's part names
            policy: Policy the claim is made under
            vehicle_age_months: Vehicle age for the depreciation bracket
            clauses: Clause citations for the claim

        Returns:
            Valuation, provisional when a human must confirm it

        Raises:
            ValidationError: On out-of-range report values or negative age
        """
        if vehicle_age_months < 0:
            raise ValidationError(
                message="Vehicle age must not be negative",
                details={"field": "vehicle_age_months"},
                stage="damage_valuator",
            )
        validate_report(report)
        clauses = clauses or ClauseBook(policy_document_id=policy.document_id)

        parts = tuple(
            self._value_part(part, tariffs, policy, vehicle_age_months)
            for part in report.parts
        )

        reasons: list[str] = []
        if report.overall_confidence < self.confidence_threshold:
            reasons.append(REASON_LOW_CONFIDENCE)
        if report.manual_review_flag:
            reasons.append(REASON_VISION_FLAG)
        if tariffs.fallback_used:
            reasons.append(REASON_STATIC_FALLBACK)

        citations: list[Citation] = [p.citation for p in parts if p.citation is not None]
        if any(p.depreciation_pct > 0 for p in parts):
            citations.append(clauses.get(ClauseKey.DEPRECIATION))
        if any(p.is_unmatched for p in parts):
            citations.append(clauses.get(ClauseKey.UNMATCHED_TARIFF))
            logger.info(
                "Unmatched tariff parts in report",
                extra={"stage": "damage_valuator", "report_id": report.report_id},
            )
        if any(p.denial_reason == DenialReason.COVERAGE_EXCLUDED for p in parts):
            citations.append(clauses.get(ClauseKey.COVERAGE_EXCLUSION))

        return Valuation(
            parts=parts,
            vehicle_age_months=vehicle_age_months,
            provisional=bool(reasons),
            review_reasons=tuple(reasons),
            tariff_source=tariffs.source,
            citations=dedupe_citations(citations),
        )

    def _value_part(
        self,
        part: DetectedPart,
        tariffs: TariffLookup,
        policy: Policy,
        age_months: int,
    ) -> PartAmount:
        match = tariffs.get(part.name)
        common = dict(
            part_name=part.name,
            category=part.category,
            estimated_cost=money(part.estimated_cost),
            detection_confidence=part.confidence,
            photo_ref=part.photo_ref,
        )
        if match is None:
            return PartAmount(
                tariff_cost=ZERO,
                depreciation_pct=Decimal("0"),
                depreciated_cost=ZERO,
                covered=False,
                approved_amount=ZERO,
                denial_reason=DenialReason.UNMATCHED_TARIFF,
                **common,
            )

        tariff_cost = money(match.cost)
        pct = self.depreciation_pct(part.category, age_months, policy)
        depreciated = apply_percent_reduction(tariff_cost, pct)

        if not policy.coverage_type.covers_own_damage:
            return PartAmount(
                tariff_cost=tariff_cost,
                depreciation_pct=pct,
                depreciated_cost=depreciated,
                covered=False,
                approved_amount=ZERO,
                denial_reason=DenialReason.COVERAGE_EXCLUDED,
                citation=match.citation,
                **common,
            )

        return PartAmount(
            tariff_cost=tariff_cost,
            depreciation_pct=pct,
            depreciated_cost=depreciated,
            covered=True,
            approved_amount=depreciated,
            citation=match.citation,
            **common,
        )
