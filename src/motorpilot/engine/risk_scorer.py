"""
MotorPilot Risk Scorer

Converts an applicant's violation history into a bounded risk score.

    score = base + sum_v(points * severity(v) * recency(v) * frequency(type(v)))

clamped to [min_score, max_score] and rounded to two places.

Key features:
- Recency measured in calendar months against an explicit ``as_of`` date,
  so retries of the same application score identically
- Frequency multiplier applied per violation-type group
- Factor list is never empty: a clean record yields a clean-record factor
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ..dates import add_months
from ..exceptions import ValidationError
from ..models import RiskAssessment, RiskConfig, RiskFactor, Severity, ViolationRecord

SCORE_QUANTUM = Decimal("0.01")
NEUTRAL_SCORE = Decimal("50")


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(SCORE_QUANTUM, rounding=ROUND_HALF_UP)


# =============================================================================
# Risk Scorer
# =============================================================================

@dataclass
class RiskScorer:
    """
    Scores violation histories.

    Usage:
        scorer = RiskScorer(config=RiskConfig())
        assessment = scorer.score("APP-1", violations, as_of=date(2024, 7, 1))
    """
    config: RiskConfig = field(default_factory=RiskConfig)
    config_version: str = ""

    def recency_weight(self, violation_date: date, as_of: date) -> Decimal:
        """
        Weight by violation age.

        Younger than ``recent_months`` -> recent weight; from ``recent_months``
        up to and including ``mid_months`` -> mid weight; older -> old weight.
        """
        cfg = self.config
        if violation_date > add_months(as_of, -cfg.recent_months):
            return cfg.recent_weight
        if violation_date >= add_months(as_of, -cfg.mid_months):
            return cfg.mid_weight
        return cfg.old_weight

    def frequency_multiplier(self, count: int) -> Decimal:
        """``min(cap, 1 + (count - 1) * step)`` for a violation-type group."""
        if count <= 1:
            return Decimal("1")
        multiplier = Decimal("1") + (count - 1) * self.config.frequency_step
        return min(self.config.frequency_cap, multiplier)

    def severity_weight(self, severity: Severity) -> Decimal:
        try:
            return self.config.severity_weights[Severity(severity)]
        except (KeyError, ValueError):
            raise ValidationError(
                message="Unknown violation severity",
                details={"field": "severity"},
                stage="risk_scorer",
            ) from None

    def score(
        self,
        applicant_id: str,
        violations: Iterable[ViolationRecord],
        as_of: date,
    ) -> RiskAssessment:
        """
        Score a violation history.

        Args:
            applicant_id: Applicant the history belongs to
            violations: History from the violation store (possibly empty)
            as_of: Business date recency is measured against

        Returns:
            RiskAssessment with a non-empty factor list

        Raises:
            ValidationError: If a violation is dated after ``as_of`` or has
                an unknown severity
        """
        cfg = self.config
        history = tuple(violations)
        for v in history:
            if v.violation_date > as_of:
                raise ValidationError(
                    message="Violation dated after assessment date",
                    details={"field": "violation_date", "violation_id": v.violation_id},
                    stage="risk_scorer",
                )

        groups: dict[str, list[ViolationRecord]] = defaultdict(list)
        for v in history:
            groups[v.violation_type].append(v)

        factors: list[RiskFactor] = []
        if cfg.base_score != NEUTRAL_SCORE:
            factors.append(RiskFactor(
                code="baseline",
                label="Configured base score",
                impact_pct=_quantize(cfg.base_score - NEUTRAL_SCORE),
                rationale=f"Base score {cfg.base_score} differs from the neutral 50",
            ))

        raw = cfg.base_score
        for violation_type in sorted(groups):
            group = sorted(groups[violation_type], key=lambda v: (v.violation_date, v.violation_id))
            multiplier = self.frequency_multiplier(len(group))
            contribution = Decimal("0")
            for v in group:
                contribution += (
                    cfg.points_per_unit
                    * self.severity_weight(v.severity)
                    * self.recency_weight(v.violation_date, as_of)
                    * multiplier
                )
            raw += contribution
            factors.append(RiskFactor(
                code=f"violations:{violation_type}",
                label=violation_type.replace("_", " ").capitalize(),
                impact_pct=_quantize(contribution),
                rationale=(
                    f"{len(group)} {violation_type} violation(s), "
                    f"frequency multiplier {multiplier}"
                ),
                violation_ids=tuple(v.violation_id for v in group),
            ))

        if not history:
            factors.append(RiskFactor(
                code="clean_record",
                label="Clean driving record",
                impact_pct=Decimal("0.00"),
                rationale="No recorded violations",
            ))

        clamped = min(cfg.max_score, max(cfg.min_score, raw))
        if clamped != raw:
            factors.append(RiskFactor(
                code="score_clamped",
                label="Score bound",
                impact_pct=_quantize(clamped - raw),
                rationale=f"Raw score {_quantize(raw)} clamped to [{cfg.min_score}, {cfg.max_score}]",
            ))

        return RiskAssessment(
            applicant_id=applicant_id,
            score=_quantize(clamped),
            factors=tuple(factors),
            source_violations=tuple(sorted(history, key=lambda v: (v.violation_date, v.violation_id))),
            assessed_as_of=as_of,
            config_version=self.config_version,
        )
