"""
MotorPilot In-Memory Stores

Reference adapters for the violation-history and policy/claim stores.
Used by the service in demo mode and by the tests; production deployments
provide their own implementations of the same protocols.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..exceptions import DataUnavailable, ValidationError
from ..models import ClaimDecision, ClaimStatus, PayoutStatus, Policy, PolicySnapshot, ViolationRecord
from ..money import ZERO, money
from .base import CommitResult


@dataclass
class InMemoryViolationStore:
    """
    Violation history keyed by applicant id.

    Unknown applicants have an empty (valid) history. Set ``available`` to
    False to simulate a store outage.
    """
    records: dict[str, list[ViolationRecord]] = field(default_factory=dict)
    available: bool = True

    def add(self, applicant_id: str, violation: ViolationRecord) -> None:
        self.records.setdefault(applicant_id, []).append(violation)

    def fetch(self, applicant_id: str) -> list[ViolationRecord]:
        if not self.available:
            raise DataUnavailable(
                message="Violation history store unavailable",
                details={"applicant_id": applicant_id},
                stage="violation_history",
            )
        history = self.records.get(applicant_id, [])
        return sorted(history, key=lambda v: (v.violation_date, v.violation_id))


class InMemoryClaimStore:
    """
    Thread-safe policy/claim store.

    - Decisions are keyed by claim id; the first commit wins.
    - Each policy carries an annual-paid total and a version counter that
      changes whenever the total changes, for optimistic re-validation.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._policies: dict[str, Policy] = {}
        self._annual_paid: dict[str, Decimal] = {}
        self._versions: dict[str, int] = {}
        self._decisions: dict[str, ClaimDecision] = {}

    def add_policy(self, policy: Policy, annual_paid: Decimal = ZERO) -> None:
        with self._lock:
            self._policies[policy.policy_id] = policy
            self._annual_paid[policy.policy_id] = money(annual_paid)
            self._versions[policy.policy_id] = 0

    def has_policy(self, policy_id: str) -> bool:
        with self._lock:
            return policy_id in self._policies

    def record_payment(self, policy_id: str, amount: Decimal) -> None:
        """Add a payment made outside this engine to the annual total."""
        with self._lock:
            self._annual_paid[policy_id] = money(self._annual_paid.get(policy_id, ZERO) + amount)
            self._versions[policy_id] = self._versions.get(policy_id, 0) + 1

    def annual_paid(self, policy_id: str) -> Decimal:
        with self._lock:
            return self._annual_paid.get(policy_id, ZERO)

    def get_policy_snapshot(self, policy_id: str) -> PolicySnapshot:
        with self._lock:
            policy = self._policies.get(policy_id)
            if policy is None:
                raise ValidationError(
                    message="Unknown policy",
                    details={"field": "policy_id", "policy_id": policy_id},
                    stage="policy_store",
                )
            return PolicySnapshot(
                policy=policy,
                annual_paid=self._annual_paid[policy_id],
                version=self._versions[policy_id],
            )

    def get_decision(self, claim_id: str) -> Optional[ClaimDecision]:
        with self._lock:
            return self._decisions.get(claim_id)

    def commit(
        self,
        decision: ClaimDecision,
        snapshot_version: int,
        replace_suspended: bool = False,
    ) -> CommitResult:
        with self._lock:
            existing = self._decisions.get(decision.claim_id)
            if existing is not None:
                resumable = (
                    replace_suspended
                    and existing.status == ClaimStatus.REQUIRES_MANUAL_REVIEW
                )
                if not resumable:
                    return CommitResult(decision=existing, committed=False)

            if self._versions.get(decision.policy_id) != snapshot_version:
                return CommitResult(decision=None, committed=False, conflict=True)

            self._decisions[decision.claim_id] = decision
            if decision.payout_status == PayoutStatus.PAYABLE and decision.claimable_amount > 0:
                paid = self._annual_paid.get(decision.policy_id, ZERO)
                self._annual_paid[decision.policy_id] = money(paid + decision.claimable_amount)
                self._versions[decision.policy_id] += 1
            return CommitResult(decision=decision, committed=True)
