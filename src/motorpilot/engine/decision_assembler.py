"""
MotorPilot Decision Assembler

Combines limit-enforced amounts and the fraud analysis into the final claim
decision, driven by an explicit lifecycle state machine.

Lifecycle:

    submitted -> assessed -> fraud_checked -> approved
                                           -> partially_approved
                                           -> denied
                                           -> requires_manual_review
                                           -> flagged_fraud
    requires_manual_review -> fraud_checked   (after human resolution)

Outcome precedence (first match wins, fraud dominates):
1. anomaly score above the flag threshold -> flagged_fraud (payout pending)
2. provisional valuation or unmatched part -> requires_manual_review
3. claimable == 0 -> denied
4. claimable < full value -> partially_approved
5. otherwise -> approved

``claimable = max(0, sum(approved) - deductible)``: limits are applied
first, then the deductible.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Optional

from ..canon import content_hash, content_hash_short
from ..exceptions import InvalidTransitionError
from ..models import (
    DENIAL_CLAUSES,
    Citation,
    ClaimDecision,
    ClaimState,
    ClaimStatus,
    ClauseBook,
    ClauseKey,
    DecisionConfig,
    Explanation,
    FraudAnalysis,
    LimitOutcome,
    PayoutStatus,
    Policy,
    ReviewResolution,
    Valuation,
    dedupe_citations,
)
from ..money import ZERO, money


# =============================================================================
# Lifecycle
# =============================================================================

TRANSITIONS: dict[ClaimState, frozenset[ClaimState]] = {
    ClaimState.SUBMITTED: frozenset({ClaimState.ASSESSED}),
    ClaimState.ASSESSED: frozenset({ClaimState.FRAUD_CHECKED}),
    ClaimState.FRAUD_CHECKED: frozenset({
        ClaimState.APPROVED,
        ClaimState.PARTIALLY_APPROVED,
        ClaimState.DENIED,
        ClaimState.REQUIRES_MANUAL_REVIEW,
        ClaimState.FLAGGED_FRAUD,
    }),
    ClaimState.REQUIRES_MANUAL_REVIEW: frozenset({ClaimState.FRAUD_CHECKED}),
    ClaimState.APPROVED: frozenset(),
    ClaimState.PARTIALLY_APPROVED: frozenset(),
    ClaimState.DENIED: frozenset(),
    ClaimState.FLAGGED_FRAUD: frozenset(),
}


@dataclass
class ClaimLifecycle:
    """
    Guarded claim state machine.

    Every move is checked against TRANSITIONS; an illegal move (for example
    approved -> flagged_fraud) raises InvalidTransitionError.
    """
    claim_id: str
    history: list[ClaimState] = field(default_factory=lambda: [ClaimState.SUBMITTED])

    @classmethod
    def resume(cls, claim_id: str, history: Iterable[ClaimState]) -> ClaimLifecycle:
        states = list(history)
        if not states:
            states = [ClaimState.SUBMITTED]
        return cls(claim_id=claim_id, history=states)

    @property
    def state(self) -> ClaimState:
        return self.history[-1]

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.state]

    def can_transition(self, target: ClaimState) -> bool:
        return target in TRANSITIONS[self.state]

    def advance(self, target: ClaimState) -> ClaimLifecycle:
        if not self.can_transition(target):
            raise InvalidTransitionError(
                message=f"Illegal claim transition {self.state.value} -> {target.value}",
                details={"from": self.state.value, "to": target.value},
                claim_id=self.claim_id,
                stage="decision_assembler",
            )
        self.history.append(target)
        return self


# =============================================================================
# Decision Assembler
# =============================================================================

@dataclass
class DecisionAssembler:
    """
    Builds ClaimDecisions.

    Usage:
        assembler = DecisionAssembler(config=DecisionConfig())
        decision = assembler.assemble(
            claim_id="CLM-1",
            policy=policy,
            valuation=valuation,
            limits=outcome,
            fraud=analysis,
            clauses=clause_book,
        )
    """
    config: DecisionConfig = field(default_factory=DecisionConfig)
    fraud_flag_threshold: int = 70
    config_version: str = ""

    def assemble(
        self,
        claim_id: str,
        policy: Policy,
        valuation: Valuation,
        limits: LimitOutcome,
        fraud: FraudAnalysis,
        clauses: Optional[ClauseBook] = None,
    ) -> ClaimDecision:
        """
        Assemble a fresh decision: submitted -> assessed -> fraud_checked -> outcome.

        The result is a pure function of its inputs; ``processing_ms`` is
        left at 0 for the caller to stamp.
        """
        lifecycle = ClaimLifecycle(claim_id=claim_id)
        lifecycle.advance(ClaimState.ASSESSED).advance(ClaimState.FRAUD_CHECKED)
        return self._decide(lifecycle, policy, valuation, limits, fraud, clauses, review=None)

    def resume_after_review(
        self,
        previous: ClaimDecision,
        policy: Policy,
        valuation: Valuation,
        limits: LimitOutcome,
        fraud: FraudAnalysis,
        review: ReviewResolution,
        clauses: Optional[ClauseBook] = None,
    ) -> ClaimDecision:
        """
        Re-decide a suspended claim after human resolution.

        The claim re-enters fraud_checked. A confirmed valuation clears the
        manual-review condition; unmatched parts stay uncovered. A rejected
        valuation denies the claim.

        Raises:
            InvalidTransitionError: If the previous decision is not suspended
        """
        lifecycle = ClaimLifecycle.resume(previous.claim_id, previous.state_history)
        lifecycle.advance(ClaimState.FRAUD_CHECKED)
        return self._decide(lifecycle, policy, valuation, limits, fraud, clauses, review=review)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _status(
        self,
        valuation: Valuation,
        fraud: FraudAnalysis,
        claimable: Decimal,
        full_value: Decimal,
        review: Optional[ReviewResolution],
    ) -> ClaimStatus:
        if fraud.anomaly_score > self.fraud_flag_threshold:
            return ClaimStatus.FLAGGED_FRAUD
        if review is not None and not review.confirm_valuation:
            return ClaimStatus.DENIED
        if review is None and (valuation.provisional or valuation.has_unmatched):
            return ClaimStatus.REQUIRES_MANUAL_REVIEW
        if claimable == 0:
            return ClaimStatus.DENIED
        if claimable < full_value:
            return ClaimStatus.PARTIALLY_APPROVED
        return ClaimStatus.APPROVED

    def _decide(
        self,
        lifecycle: ClaimLifecycle,
        policy: Policy,
        valuation: Valuation,
        limits: LimitOutcome,
        fraud: FraudAnalysis,
        clauses: Optional[ClauseBook],
        review: Optional[ReviewResolution],
    ) -> ClaimDecision:
        clauses = clauses or ClauseBook(policy_document_id=policy.document_id)
        approved_total = limits.total_approved
        deductible = money(policy.deductible)
        deductible_applied = min(deductible, approved_total)
        claimable = max(ZERO, money(approved_total - deductible))
        full_value = max(ZERO, money(valuation.depreciated_total - deductible))

        status = self._status(valuation, fraud, claimable, full_value, review)
        if status == ClaimStatus.DENIED and review is not None and not review.confirm_valuation:
            claimable = ZERO
        lifecycle.advance(status.state)

        if status in (ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED):
            payout = PayoutStatus.PAYABLE
        elif status == ClaimStatus.DENIED:
            payout = PayoutStatus.NONE
        else:
            payout = PayoutStatus.PENDING

        explanation = self._explain(
            status, valuation, limits, fraud, clauses, claimable, deductible_applied, review,
        )

        decision = ClaimDecision(
            claim_id=lifecycle.claim_id,
            policy_id=policy.policy_id,
            status=status,
            claimable_amount=claimable,
            payout_status=payout,
            deductible_applied=deductible_applied,
            approved_total=approved_total,
            full_value=full_value,
            breakdown=limits.parts,
            explanation=explanation,
            fraud_analysis=fraud,
            state_history=tuple(lifecycle.history),
            limit_events=limits.events,
            tariff_source=valuation.tariff_source,
            review=review,
            config_version=self.config_version,
        )
        if status.authorizes_repair:
            decision = replace(decision, authorization_ref=self.authorization_ref(decision))
        return replace(decision, decision_hash=content_hash(decision.fingerprint_payload()))

    def authorization_ref(self, decision: ClaimDecision) -> str:
        """Approval-to-Repair reference derived from the approved amounts."""
        payload = {
            "claim_id": decision.claim_id,
            "policy_id": decision.policy_id,
            "status": decision.status.value,
            "claimable_amount": decision.claimable_amount,
            "parts": [(p.part_name, p.approved_amount) for p in decision.breakdown],
        }
        return f"{self.config.authorization_prefix}-{content_hash_short(payload).upper()}"

    def _explain(
        self,
        status: ClaimStatus,
        valuation: Valuation,
        limits: LimitOutcome,
        fraud: FraudAnalysis,
        clauses: ClauseBook,
        claimable: Decimal,
        deductible_applied: Decimal,
        review: Optional[ReviewResolution],
    ) -> Explanation:
        details: list[str] = []
        citations: list[Citation] = list(valuation.citations)
        reduction_citations: list[Citation] = []

        for part in limits.parts:
            line = (
                f"{part.part_name}: tariff {part.tariff_cost}, depreciation {part.depreciation_pct}%, "
                f"depreciated {part.depreciated_cost}, approved {part.approved_amount}"
            )
            if part.denial_reason is not None:
                line += f" [{part.denial_reason.value}]"
                reduction_citations.append(clauses.get(DENIAL_CLAUSES[part.denial_reason]))
            details.append(line)

        for event in limits.events:
            details.append(event.description)
            reduction_citations.append(event.citation)

        if deductible_applied > 0:
            details.append(f"Deductible applied: {deductible_applied}")
            reduction_citations.append(clauses.get(ClauseKey.DEDUCTIBLE))

        for reason in valuation.review_reasons:
            details.append(f"Review required: {reason}")
        if valuation.has_unmatched:
            names = ", ".join(p.part_name for p in valuation.unmatched_parts)
            details.append(f"Parts without tariff match: {names}")

        for indicator in fraud.indicators:
            details.append(
                f"Fraud indicator {indicator.indicator_type.value} (+{indicator.score_delta}): "
                f"{indicator.description}"
            )
        if fraud.unavailable_signals:
            details.append("Fraud signals unavailable: " + ", ".join(fraud.unavailable_signals))

        if review is not None:
            verdict = "confirmed" if review.confirm_valuation else "rejected"
            details.append(f"Valuation {verdict} by reviewer {review.reviewer_id}")
            citations.append(clauses.get(ClauseKey.MANUAL_REVIEW))

        if status == ClaimStatus.FLAGGED_FRAUD:
            citations.append(clauses.get(ClauseKey.FRAUD_INVESTIGATION))
        elif status == ClaimStatus.REQUIRES_MANUAL_REVIEW:
            citations.append(clauses.get(ClauseKey.MANUAL_REVIEW))
        elif status == ClaimStatus.DENIED and not reduction_citations:
            reduction_citations.append(clauses.get(ClauseKey.COVERAGE_EXCLUSION))

        summary = {
            ClaimStatus.APPROVED: f"Claim approved: {claimable} payable",
            ClaimStatus.PARTIALLY_APPROVED: f"Claim partially approved: {claimable} payable after policy limits",
            ClaimStatus.DENIED: "Claim denied: nothing payable under the policy",
            ClaimStatus.REQUIRES_MANUAL_REVIEW: f"Claim requires manual review: {claimable} pending",
            ClaimStatus.FLAGGED_FRAUD: (
                f"Claim flagged for fraud investigation (score {fraud.anomaly_score}): "
                f"{claimable} withheld"
            ),
        }[status]

        return Explanation(
            summary=summary,
            details=tuple(details),
            citations=dedupe_citations(reduction_citations + citations),
        )
