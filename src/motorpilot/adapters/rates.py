"""
MotorPilot Static Rate Table

Base premium lookup from the configuration pack's rate bands:
- own damage: percent of IDV by vehicle age
- third party: fixed premium by engine capacity
- comprehensive: own damage + third party
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from ..exceptions import ValidationError
from ..models import CoverageType, PremiumConfig, RateBand, VehicleFacts
from ..money import HUNDRED, ZERO, money


def band_value(bands: tuple[RateBand, ...], x: int, stage: str = "rate_table") -> Decimal:
    """Value of the first band containing ``x``."""
    for band in bands:
        if band.contains(x):
            return band.value
    raise ValidationError(
        message="No rate band covers value",
        details={"field": "rate_band", "value": x},
        stage=stage,
    )


@dataclass
class StaticRateTable:
    """RateTable backed by PremiumConfig bands."""
    config: PremiumConfig = field(default_factory=PremiumConfig)

    def own_damage_premium(self, vehicle: VehicleFacts, as_of: datetime) -> Decimal:
        rate = band_value(self.config.own_damage_rates, vehicle.age_months(as_of.date()))
        return money(vehicle.idv * rate / HUNDRED)

    def third_party_premium(self, vehicle: VehicleFacts) -> Decimal:
        return money(band_value(self.config.third_party_premiums, vehicle.engine_cc))

    def base_premium(
        self,
        vehicle: VehicleFacts,
        coverage_type: CoverageType,
        as_of: datetime,
    ) -> Decimal:
        own_damage = self.own_damage_premium(vehicle, as_of) if coverage_type.covers_own_damage else ZERO
        third_party = self.third_party_premium(vehicle) if coverage_type.covers_third_party else ZERO
        return money(own_damage + third_party)
