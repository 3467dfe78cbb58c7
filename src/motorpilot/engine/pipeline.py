"""
MotorPilot Pipelines

Caller-facing entry points:

- UnderwritingPipeline.compute_premium(application) -> PremiumQuote
- ClaimsPipeline.compute_claim_decision(claim) -> ClaimDecision
- ClaimsPipeline.resolve_review(claim, resolution) -> ClaimDecision

Both are synchronous and safe to retry. The claims path runs
valuation + limit enforcement and fraud scoring as two parallel tasks,
joins them under a hard deadline, then commits through the claim store's
compare-and-set. A second run for an already decided claim returns the
stored decision unchanged.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from ..adapters.base import ClaimStore, RateTable, Retriever, ViolationHistoryStore
from ..adapters.retrieval import StaticRetriever, lookup_tariffs, resolve_clause_book
from ..dates import months_between
from ..exceptions import (
    ClaimNotFoundError,
    ComputationError,
    InvalidTransitionError,
    MotorPilotError,
    ValidationError,
)
from ..models import (
    ClaimDecision,
    ClaimState,
    ClaimSubmission,
    ClauseBook,
    EngineConfig,
    FraudAnalysis,
    LimitOutcome,
    PolicySnapshot,
    PremiumApplication,
    PremiumQuote,
    ReviewResolution,
    TariffSource,
    Valuation,
)
from .damage_valuator import DamageValuator
from .decision_assembler import ClaimLifecycle, DecisionAssembler
from .fraud_scorer import FraudScorer
from .limit_enforcer import LimitEnforcer
from .premium_calculator import PremiumCalculator
from .risk_scorer import RiskScorer

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


# =============================================================================
# Underwriting
# =============================================================================

@dataclass
class UnderwritingPipeline:
    """
    Purchase path: violation history -> RiskScorer -> PremiumCalculator.

    Re-entrant; holds no per-request state.
    """
    violation_store: ViolationHistoryStore
    config: EngineConfig = field(default_factory=EngineConfig)
    rate_table: Optional[RateTable] = None

    def __post_init__(self) -> None:
        self.risk_scorer = RiskScorer(self.config.risk, config_version=self.config.version)
        self.premium_calculator = PremiumCalculator(
            self.config.premium,
            rate_table=self.rate_table,
            config_version=self.config.version,
        )

    def compute_premium(self, application: PremiumApplication) -> PremiumQuote:
        """
        Quote a premium for one application.

        Raises:
            ValidationError: On malformed application data
            DataUnavailable: If the violation store fails
        """
        start = time.monotonic()
        violations = self.violation_store.fetch(application.applicant_id)
        assessment = self.risk_scorer.score(
            application.applicant_id,
            violations,
            as_of=application.as_of.date(),
        )
        quote = self.premium_calculator.quote(application, assessment)
        logger.info(
            "Premium quoted",
            extra={
                "application_id": application.application_id,
                "stage": "premium",
                "risk_score": str(assessment.score),
                "duration_ms": _elapsed_ms(start),
            },
        )
        return quote


# =============================================================================
# Claims
# =============================================================================

@dataclass(frozen=True)
class _Assessment:
    """Output of the valuation + limits task."""
    valuation: Valuation
    clauses: ClauseBook
    limits: LimitOutcome


@dataclass
class ClaimsPipeline:
    """
    Claims path: (DamageValuator -> LimitEnforcer) || FraudScorer -> DecisionAssembler.

    Usage:
        pipeline = ClaimsPipeline(
            claim_store=store,
            retriever=retriever,
            fallback_retriever=pack.static_retriever(),
            config=pack.config,
        )
        decision = pipeline.compute_claim_decision(submission)
    """
    claim_store: ClaimStore
    retriever: Retriever
    fallback_retriever: Retriever = field(default_factory=StaticRetriever)
    config: EngineConfig = field(default_factory=EngineConfig)

    def __post_init__(self) -> None:
        cfg = self.config
        self.valuator = DamageValuator(
            cfg.depreciation,
            confidence_threshold=cfg.decision.confidence_threshold,
        )
        self.enforcer = LimitEnforcer()
        self.fraud_scorer = FraudScorer(cfg.fraud)
        self.assembler = DecisionAssembler(
            cfg.decision,
            fraud_flag_threshold=cfg.fraud.flag_threshold,
            config_version=cfg.version,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def compute_claim_decision(self, claim: ClaimSubmission) -> ClaimDecision:
        """
        Decide a claim, at most once.

        Returns:
            The committed decision; an existing decision is returned unchanged

        Raises:
            ValidationError: On malformed claim or policy data
            ComputationError: On deadline expiry or repeated commit conflicts
        """
        existing = self.claim_store.get_decision(claim.claim_id)
        if existing is not None:
            logger.info(
                "Returning existing decision",
                extra={"claim_id": claim.claim_id, "stage": "dedupe", "status": existing.status.value},
            )
            return existing

        start = time.monotonic()
        snapshot = self.claim_store.get_policy_snapshot(claim.policy_id)
        assessment, fraud = self._evaluate(claim, snapshot)

        def build(current: _Assessment) -> ClaimDecision:
            return self.assembler.assemble(
                claim_id=claim.claim_id,
                policy=snapshot.policy,
                valuation=current.valuation,
                limits=current.limits,
                fraud=fraud,
                clauses=current.clauses,
            )

        return self._commit(claim, snapshot, assessment, build, start, replace_suspended=False)

    def resolve_review(self, claim: ClaimSubmission, resolution: ReviewResolution) -> ClaimDecision:
        """
        Resume a claim suspended in requires_manual_review.

        Raises:
            ClaimNotFoundError: If the claim has no decision yet
            InvalidTransitionError: If the decision is not suspended
        """
        previous = self.claim_store.get_decision(claim.claim_id)
        if previous is None:
            raise ClaimNotFoundError(
                message="No decision to review",
                claim_id=claim.claim_id,
                stage="review",
            )
        if not ClaimLifecycle.resume(claim.claim_id, previous.state_history).can_transition(
            ClaimState.FRAUD_CHECKED
        ):
            raise InvalidTransitionError(
                message=f"Claim is {previous.status.value}, not awaiting review",
                details={"from": previous.status.value, "to": ClaimState.FRAUD_CHECKED.value},
                claim_id=claim.claim_id,
                stage="review",
            )

        start = time.monotonic()
        snapshot = self.claim_store.get_policy_snapshot(claim.policy_id)
        assessment, fraud = self._evaluate(claim, snapshot)

        def build(current: _Assessment) -> ClaimDecision:
            return self.assembler.resume_after_review(
                previous=previous,
                policy=snapshot.policy,
                valuation=current.valuation,
                limits=current.limits,
                fraud=fraud,
                review=resolution,
                clauses=current.clauses,
            )

        return self._commit(claim, snapshot, assessment, build, start, replace_suspended=True)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def vehicle_age_months(self, claim: ClaimSubmission, snapshot: PolicySnapshot) -> int:
        registered = snapshot.policy.vehicle_registration_date
        if registered is None:
            raise ValidationError(
                message="Policy has no vehicle registration date",
                details={"field": "vehicle_registration_date", "policy_id": snapshot.policy.policy_id},
                claim_id=claim.claim_id,
                stage="damage_valuator",
            )
        return months_between(registered, claim.metadata.incident_at.date())

    def assess(self, claim: ClaimSubmission, snapshot: PolicySnapshot) -> _Assessment:
        """Resolve tariffs and clauses, value the damage, enforce limits."""
        policy = snapshot.policy
        policy.validate(claim_id=claim.claim_id, stage="limit_enforcer")
        age = self.vehicle_age_months(claim, snapshot)

        tariffs = lookup_tariffs(
            self.retriever,
            self.fallback_retriever,
            (p.name for p in claim.damage_report.parts),
            policy.coverage_type,
            min_relevance=self.config.decision.min_tariff_relevance,
            claim_id=claim.claim_id,
        )
        clauses, clause_source = resolve_clause_book(
            self.retriever,
            self.fallback_retriever,
            policy.coverage_type,
            policy.document_id,
            claim_id=claim.claim_id,
        )
        if clause_source == TariffSource.STATIC_FALLBACK:
            tariffs = replace(tariffs, source=TariffSource.STATIC_FALLBACK)

        valuation = self.valuator.value(claim.damage_report, tariffs, policy, age, clauses)
        limits = self.enforcer.enforce(
            valuation, policy, snapshot.annual_paid, clauses, snapshot_version=snapshot.version,
        )
        return _Assessment(valuation=valuation, clauses=clauses, limits=limits)

    def score_fraud(self, claim: ClaimSubmission, snapshot: PolicySnapshot) -> FraudAnalysis:
        return self.fraud_scorer.score(claim.metadata, claim.history, snapshot.policy.idv)

    def _evaluate(
        self,
        claim: ClaimSubmission,
        snapshot: PolicySnapshot,
    ) -> tuple[_Assessment, FraudAnalysis]:
        """Run both branches in parallel and join them under the deadline."""
        timeout = self.config.decision.decision_timeout_seconds
        executor = ThreadPoolExecutor(
            max_workers=self.config.decision.max_workers,
            thread_name_prefix="motorpilot-claim",
        )
        try:
            assess_future = executor.submit(self.assess, claim, snapshot)
            fraud_future = executor.submit(self.score_fraud, claim, snapshot)
            done, pending = wait(
                [assess_future, fraud_future],
                timeout=timeout,
                return_when=FIRST_EXCEPTION,
            )
            for future in done:
                error = future.exception()
                if error is not None:
                    raise error
            if pending:
                logger.warning(
                    "Decision deadline exceeded",
                    extra={"claim_id": claim.claim_id, "stage": "join", "timeout_seconds": timeout},
                )
                raise ComputationError(
                    message=f"Claim computation exceeded {timeout}s deadline",
                    details={"timeout_seconds": timeout},
                    claim_id=claim.claim_id,
                    stage="join",
                )
            return assess_future.result(), fraud_future.result()
        except MotorPilotError:
            raise
        except Exception as e:
            logger.exception(
                "Claim computation failed",
                extra={"claim_id": claim.claim_id, "stage": "join"},
            )
            raise ComputationError(
                message=f"Claim computation failed: {type(e).__name__}",
                claim_id=claim.claim_id,
                stage="join",
            ) from e
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _commit(
        self,
        claim: ClaimSubmission,
        snapshot: PolicySnapshot,
        assessment: _Assessment,
        build: Callable[[_Assessment], ClaimDecision],
        start: float,
        replace_suspended: bool,
    ) -> ClaimDecision:
        """
        Commit with optimistic re-validation of the annual snapshot.

        On a stale snapshot the annual total is re-read and the limits
        re-enforced before re-assembling.
        """
        attempts = self.config.decision.max_commit_attempts
        for attempt in range(1, attempts + 1):
            decision = replace(build(assessment), processing_ms=_elapsed_ms(start))
            result = self.claim_store.commit(
                decision, snapshot.version, replace_suspended=replace_suspended,
            )
            if result.committed:
                logger.info(
                    "Claim decision committed",
                    extra={
                        "claim_id": claim.claim_id,
                        "stage": "commit",
                        "status": decision.status.value,
                        "duration_ms": decision.processing_ms,
                        "decision_hash_short": decision.decision_hash[:12],
                        "attempt": attempt,
                    },
                )
                return decision
            if not result.conflict and result.decision is not None:
                logger.info(
                    "Concurrent decision won the commit",
                    extra={"claim_id": claim.claim_id, "stage": "commit", "status": result.decision.status.value},
                )
                return result.decision

            logger.info(
                "Annual snapshot changed, re-validating limits",
                extra={"claim_id": claim.claim_id, "stage": "commit", "attempt": attempt},
            )
            snapshot = self.claim_store.get_policy_snapshot(claim.policy_id)
            limits = self.enforcer.enforce(
                assessment.valuation,
                snapshot.policy,
                snapshot.annual_paid,
                assessment.clauses,
                snapshot_version=snapshot.version,
            )
            assessment = replace(assessment, limits=limits)

        raise ComputationError(
            message="Claim commit kept conflicting with concurrent claims",
            details={"attempts": attempts},
            claim_id=claim.claim_id,
            stage="commit",
        )
