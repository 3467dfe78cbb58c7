"""
MotorPilot Premium Calculator

Turns a RiskAssessment plus vehicle/coverage facts into a premium quote.

    base       = RateTable.base_premium(vehicle, coverage, as_of)
    adjustment = base * (score - neutral) / 100
    total      = max(minimum, base + adjustment + sum(add-ons))

The explanation lists every nonzero risk factor and each add-on.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any, Optional

from ..adapters.base import RateTable
from ..adapters.rates import StaticRateTable
from ..exceptions import ValidationError
from ..models import (
    AddOn,
    AddOnPremium,
    CoverageType,
    PremiumApplication,
    PremiumConfig,
    PremiumQuote,
    RiskAssessment,
)
from ..money import HUNDRED, ZERO, money, total


def parse_coverage_type(value: Any) -> CoverageType:
    """Coerce a caller-supplied coverage type, rejecting unknown values."""
    try:
        return CoverageType(value)
    except ValueError:
        raise ValidationError(
            message="Unknown coverage type",
            details={"field": "coverage_type", "allowed": [c.value for c in CoverageType]},
            stage="premium_calculator",
        ) from None


def parse_add_ons(values: Any) -> tuple[AddOn, ...]:
    """Coerce add-ons, dropping duplicates and keeping caller order."""
    parsed: list[AddOn] = []
    for value in values:
        try:
            add_on = AddOn(value)
        except ValueError:
            raise ValidationError(
                message="Unknown add-on",
                details={"field": "add_ons", "allowed": [a.value for a in AddOn]},
                stage="premium_calculator",
            ) from None
        if add_on not in parsed:
            parsed.append(add_on)
    return tuple(parsed)


@dataclass
class PremiumCalculator:
    """
    Prices premium applications.

    Usage:
        calculator = PremiumCalculator(config=PremiumConfig())
        quote = calculator.quote(application, assessment)
    """
    config: PremiumConfig = field(default_factory=PremiumConfig)
    rate_table: Optional[RateTable] = None
    config_version: str = ""

    def __post_init__(self) -> None:
        if self.rate_table is None:
            self.rate_table = StaticRateTable(self.config)

    def risk_adjustment(self, base_premium: Decimal, score: Decimal) -> Decimal:
        return money(base_premium * (score - self.config.neutral_score) / HUNDRED)

    def add_on_premium(self, add_on: AddOn, base_premium: Decimal) -> AddOnPremium:
        rate = self.config.add_on_rates.get(add_on)
        if rate is None:
            raise ValidationError(
                message="Add-on is not offered",
                details={"field": "add_ons", "add_on": add_on.value},
                stage="premium_calculator",
            )
        amount = money(base_premium * rate.percent_of_base / HUNDRED + rate.flat_amount)
        return AddOnPremium(add_on=add_on, amount=amount, description=rate.description)

    def quote(self, application: PremiumApplication, assessment: RiskAssessment) -> PremiumQuote:
        """
        Price one application.

        Raises:
            ValidationError: On non-positive IDV, unknown coverage type or
                unknown add-on
        """
        if application.vehicle.idv <= 0:
            raise ValidationError(
                message="Insured declared value must be positive",
                details={"field": "vehicle.idv", "application_id": application.application_id},
                stage="premium_calculator",
            )
        coverage = parse_coverage_type(application.coverage_type)
        add_ons = parse_add_ons(application.add_ons)

        base = money(self.rate_table.base_premium(application.vehicle, coverage, application.as_of))
        if base < 0:
            raise ValidationError(
                message="Rate table returned a negative base premium",
                details={"field": "base_premium", "application_id": application.application_id},
                stage="premium_calculator",
            )
        adjustment = self.risk_adjustment(base, assessment.score)
        add_on_premiums = tuple(self.add_on_premium(a, base) for a in add_ons)

        subtotal = money(base + adjustment + total(a.amount for a in add_on_premiums))
        minimum_applied = subtotal < self.config.minimum_premium
        total_premium = money(self.config.minimum_premium) if minimum_applied else subtotal

        lines = [f"Base premium ({coverage.value}): {base}"]
        for factor in assessment.nonzero_factors:
            sign = "+" if factor.impact_pct > 0 else ""
            lines.append(f"Risk factor {factor.label}: {sign}{factor.impact_pct}% ({factor.rationale})")
        lines.append(f"Risk adjustment at score {assessment.score}: {adjustment}")
        for premium in add_on_premiums:
            lines.append(f"Add-on {premium.add_on.value}: {premium.amount}")
        if minimum_applied:
            lines.append(f"Minimum premium {total_premium} applied (computed {subtotal})")
        lines.append(f"Total premium: {total_premium}")

        return PremiumQuote(
            application_id=application.application_id,
            coverage_type=coverage,
            base_premium=base,
            risk_adjustment=adjustment,
            add_on_premiums=add_on_premiums,
            total_premium=max(ZERO, total_premium),
            explanation="; ".join(lines),
            quoted_at=application.as_of,
            valid_until=application.as_of + timedelta(days=self.config.validity_days),
            risk_assessment=assessment,
            explanation_lines=tuple(lines),
            minimum_applied=minimum_applied,
            config_version=self.config_version,
        )
