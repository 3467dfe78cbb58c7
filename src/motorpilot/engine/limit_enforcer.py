"""
MotorPilot Limit Enforcer

Caps approved part amounts against policy limits, in order:

1. Per-part cap: ``approved = min(depreciated, per_part_limit)``
2. Aggregate cap: if the sum exceeds ``total_claim_limit``, every covered
   part is scaled pro rata so the sum equals the limit exactly
3. Annual cap: the excess over ``annual_claim_limit - annual_paid`` is
   denied pro rata with ANNUAL_LIMIT_EXCEEDED

Pro-rata scaling truncates each share to the cent, then hands the leftover
cents to the largest remainders (ties by breakdown order), so the scaled
sum hits the target exactly and no part rises above its input amount.

Policy-limit breaches are decision outcomes, not errors.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Sequence

from ..models import (
    ClauseBook,
    ClauseKey,
    DenialReason,
    LimitEvent,
    LimitOutcome,
    PartAmount,
    Policy,
    Valuation,
)
from ..money import CENT, ZERO, money, money_floor, total


def pro_rata_allocate(amounts: Sequence[Decimal], target: Decimal) -> list[Decimal]:
    """
    Scale cent amounts down so they sum exactly to ``target``.

    Example:
        >>> pro_rata_allocate([Decimal("1.00"), Decimal("1.00"), Decimal("1.00")], Decimal("2.00"))
        [Decimal('0.67'), Decimal('0.67'), Decimal('0.66')]
    """
    current = total(amounts)
    if target >= current:
        return list(amounts)
    if target <= 0 or current == 0:
        return [ZERO for _ in amounts]

    shares = [a * target / current for a in amounts]
    floors = [money_floor(s) for s in shares]
    leftover = int((target - total(floors)) / CENT)
    by_remainder = sorted(range(len(amounts)), key=lambda i: (-(shares[i] - floors[i]), i))
    for i in by_remainder[:leftover]:
        floors[i] += CENT
    return floors


@dataclass
class LimitEnforcer:
    """
    Applies per-part, aggregate and annual limits to a valuation.

    Usage:
        enforcer = LimitEnforcer()
        outcome = enforcer.enforce(valuation, policy, annual_paid, clauses)
    """

    def enforce(
        self,
        valuation: Valuation,
        policy: Policy,
        annual_paid: Decimal,
        clauses: Optional[ClauseBook] = None,
        snapshot_version: int = 0,
    ) -> LimitOutcome:
        """
        Apply the three limits in order.

        Args:
            valuation: DamageValuator output
            policy: Policy limits
            annual_paid: Claims already paid this policy year (snapshot)
            clauses: Clause citations for limit events
            snapshot_version: Version of the annual-paid snapshot

        Returns:
            LimitOutcome with capped parts and one event per applied limit

        Raises:
            ValidationError: If the policy limits are out of range
        """
        policy.validate()
        clauses = clauses or ClauseBook(policy_document_id=policy.document_id)
        parts = list(valuation.parts)
        events: list[LimitEvent] = []

        # 1. Per-part cap
        if policy.per_part_limit is not None:
            limit = money(policy.per_part_limit)
            for i, part in enumerate(parts):
                if part.covered and part.approved_amount > limit:
                    events.append(LimitEvent(
                        clause=ClauseKey.PER_PART_LIMIT,
                        description=f"{part.part_name} capped at per-part limit {limit}",
                        amount_before=part.approved_amount,
                        amount_after=limit,
                        citation=clauses.get(ClauseKey.PER_PART_LIMIT),
                    ))
                    parts[i] = _reduce(part, limit, DenialReason.PER_PART_LIMIT)

        # 2. Aggregate cap
        claim_limit = money(policy.total_claim_limit)
        event = self._scale(parts, claim_limit, DenialReason.AGGREGATE_LIMIT)
        if event is not None:
            before, after = event
            events.append(LimitEvent(
                clause=ClauseKey.AGGREGATE_LIMIT,
                description=f"Approved total {before} scaled pro rata to claim limit {claim_limit}",
                amount_before=before,
                amount_after=after,
                citation=clauses.get(ClauseKey.AGGREGATE_LIMIT),
            ))

        # 3. Annual cap
        paid = money(annual_paid)
        remaining = max(ZERO, money(policy.annual_claim_limit) - paid)
        event = self._scale(parts, remaining, DenialReason.ANNUAL_LIMIT_EXCEEDED)
        if event is not None:
            before, after = event
            events.append(LimitEvent(
                clause=ClauseKey.ANNUAL_LIMIT,
                description=(
                    f"Approved total {before} exceeds annual limit remaining {remaining}; "
                    f"excess {money(before - after)} denied"
                ),
                amount_before=before,
                amount_after=after,
                citation=clauses.get(ClauseKey.ANNUAL_LIMIT),
            ))

        return LimitOutcome(
            parts=tuple(parts),
            events=tuple(events),
            annual_paid_snapshot=paid,
            snapshot_version=snapshot_version,
        )

    def _scale(
        self,
        parts: list[PartAmount],
        target: Decimal,
        reason: DenialReason,
    ) -> Optional[tuple[Decimal, Decimal]]:
        """Scale covered parts in place; return (before, after) if scaling applied."""
        covered = [i for i, p in enumerate(parts) if p.covered]
        before = total(parts[i].approved_amount for i in covered)
        if before <= target:
            return None

        scaled = pro_rata_allocate([parts[i].approved_amount for i in covered], target)
        for i, amount in zip(covered, scaled):
            part = parts[i]
            if amount >= part.approved_amount:
                continue
            parts[i] = _reduce(part, amount, reason)
            if amount == 0 and reason == DenialReason.ANNUAL_LIMIT_EXCEEDED:
                parts[i] = replace(parts[i], denial_reason=reason)
        return before, total(scaled)


def _reduce(part: PartAmount, amount: Decimal, reason: DenialReason) -> PartAmount:
    adjustments = part.adjustments if reason in part.adjustments else part.adjustments + (reason,)
    return replace(part, approved_amount=amount, adjustments=adjustments)
