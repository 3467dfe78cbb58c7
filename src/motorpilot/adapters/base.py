"""
MotorPilot Collaborator Protocols

Capability interfaces for the external collaborators the engine talks to.
The engine depends only on these protocols; concrete backends (a vector
store, a policy admin system, a rating service) are swappable adapters.

Protocols:
- ViolationHistoryStore: applicant -> violation history
- Retriever: query -> ranked tariff/clause hits with citations
- RateTable: vehicle + coverage -> base premium
- ClaimStore: policy snapshot, decision lookup, idempotent commit
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from ..models import (
    Citation,
    ClaimDecision,
    CoverageType,
    PolicySnapshot,
    VehicleFacts,
    ViolationRecord,
)


# =============================================================================
# Retrieval Contract
# =============================================================================

class RetrievalKind(str, Enum):
    """What a retrieval query is looking for."""
    TARIFF = "tariff"
    CLAUSE = "clause"


@dataclass(frozen=True)
class RetrievalQuery:
    """
    A retrieval request.

    Attributes:
        kind: Tariff rates or clause wording
        terms: Standardized part names (tariffs) or clause keys (clauses)
        coverage_type: Coverage the claim is made under
    """
    kind: RetrievalKind
    terms: tuple[str, ...]
    coverage_type: CoverageType


@dataclass(frozen=True)
class TariffRate:
    """Standardized labor + part cost for one part."""
    labor_cost: Decimal
    part_cost: Decimal

    @property
    def total(self) -> Decimal:
        return self.labor_cost + self.part_cost


@dataclass(frozen=True)
class RetrievalHit:
    """
    One ranked retrieval result.

    Exactly one of ``tariff`` or ``clause_text`` is set, matching the
    query kind.
    """
    term: str
    relevance_score: Decimal
    citation: Citation
    tariff: Optional[TariffRate] = None
    clause_text: Optional[str] = None


# =============================================================================
# Protocols
# =============================================================================

@runtime_checkable
class ViolationHistoryStore(Protocol):
    """Violation-history store."""

    def fetch(self, applicant_id: str) -> list[ViolationRecord]:
        """
        Fetch an applicant's violation history.

        Returns:
            Violations, possibly empty (an empty history is valid)

        Raises:
            DataUnavailable: If the backing store errors
        """
        ...


@runtime_checkable
class Retriever(Protocol):
    """Tariff/clause retrieval collaborator."""

    def search(self, query: RetrievalQuery) -> list[RetrievalHit]:
        """
        Run a ranked search.

        Returns:
            Hits for any of the query terms, in any order

        Raises:
            RetrievalUnavailable: If the retrieval backend fails
        """
        ...


@runtime_checkable
class RateTable(Protocol):
    """External base-premium rate table."""

    def base_premium(
        self,
        vehicle: VehicleFacts,
        coverage_type: CoverageType,
        as_of: datetime,
    ) -> Decimal:
        """Look up the base premium for a vehicle and coverage."""
        ...


@dataclass(frozen=True)
class CommitResult:
    """
    Outcome of a decision commit.

    Attributes:
        decision: The authoritative decision (the caller's or the existing one)
        committed: True if the caller's decision was written
        conflict: True if the annual-claims snapshot was stale
    """
    decision: Optional[ClaimDecision]
    committed: bool
    conflict: bool = False


@runtime_checkable
class ClaimStore(Protocol):
    """Policy/claim store with transactional, idempotent write-back."""

    def get_policy_snapshot(self, policy_id: str) -> PolicySnapshot:
        """Read the policy and the annual-claims-to-date as one snapshot."""
        ...

    def get_decision(self, claim_id: str) -> Optional[ClaimDecision]:
        """Return the committed decision for a claim, if any."""
        ...

    def commit(
        self,
        decision: ClaimDecision,
        snapshot_version: int,
        replace_suspended: bool = False,
    ) -> CommitResult:
        """
        Write a decision keyed by claim id. First commit wins.

        Args:
            decision: Decision to persist
            snapshot_version: Policy snapshot version the decision was made on
            replace_suspended: Allow replacing a requires_manual_review
                decision (review resolution)
        """
        ...
