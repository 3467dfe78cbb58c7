"""
MotorPilot Engine

Scoring and decision components plus the two pipelines that wire them.

Components:
- RiskScorer: violation history -> bounded risk score
- PremiumCalculator: risk score + vehicle facts -> premium quote
- DamageValuator: damage report + tariffs -> depreciated part costs
- LimitEnforcer: per-part, aggregate and annual caps
- FraudScorer: claim metadata -> anomaly score
- DecisionAssembler: limits + fraud -> final claim decision
"""
from __future__ import annotations

from .damage_valuator import DamageValuator, validate_report
from .decision_assembler import TRANSITIONS, ClaimLifecycle, DecisionAssembler
from .fraud_scorer import FraudScorer
from .limit_enforcer import LimitEnforcer, pro_rata_allocate
from .pipeline import ClaimsPipeline, UnderwritingPipeline
from .premium_calculator import PremiumCalculator, parse_add_ons, parse_coverage_type
from .risk_scorer import RiskScorer

__all__ = [
    "ClaimLifecycle",
    "ClaimsPipeline",
    "DamageValuator",
    "DecisionAssembler",
    "FraudScorer",
    "LimitEnforcer",
    "PremiumCalculator",
    "RiskScorer",
    "TRANSITIONS",
    "UnderwritingPipeline",
    "parse_add_ons",
    "parse_coverage_type",
    "pro_rata_allocate",
    "validate_report",
]
