"""
Pytest configuration and fixtures for MotorPilot tests.

Provides helper factories and common fixtures matching actual model definitions.

Reference scenario used throughout: a comprehensive policy on a vehicle
registered 2022-01-15, incident on 2024-07-15 (vehicle age 30 months, so
15% standard depreciation), deductible 1,000.
"""
import random
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from motorpilot.adapters import (
    InMemoryClaimStore,
    InMemoryViolationStore,
    StaticRetriever,
    StaticTariff,
    TariffLookup,
    TariffMatch,
    TariffRate,
    normalize_part_name,
)
from motorpilot.models import (
    AddOn,
    Citation,
    ClaimantHistory,
    ClaimMetadata,
    ClaimSubmission,
    ClauseBook,
    ClauseKey,
    CoverageType,
    DamageReport,
    DetectedPart,
    EngineConfig,
    FraudAnalysis,
    FraudRecommendation,
    GeoPoint,
    PartAmount,
    PartCategory,
    PhotoEvidence,
    Policy,
    PremiumApplication,
    Severity,
    TariffSource,
    Valuation,
    VehicleFacts,
    ViolationRecord,
)


INCIDENT_AT = datetime(2024, 7, 15, 10, 0, tzinfo=timezone.utc)
REGISTERED_ON = date(2022, 1, 15)
AS_OF = datetime(2024, 7, 1, 9, 0, tzinfo=timezone.utc)
MUMBAI = GeoPoint(19.0760, 72.8777)
PUNE = GeoPoint(18.5204, 73.8567)


# =============================================================================
# Factory Helpers: Underwriting
# =============================================================================

def make_violation(
    violation_id: str = "V-1",
    violation_type: str = "speeding",
    violation_date: date = date(2024, 5, 1),
    severity: Severity = Severity.MINOR,
) -> ViolationRecord:
    """Create a ViolationRecord with required fields."""
    return ViolationRecord(
        violation_id=violation_id,
        violation_type=violation_type,
        violation_date=violation_date,
        severity=severity,
        location="Mumbai",
    )


def make_vehicle(
    idv: Decimal = Decimal("500000"),
    engine_cc: int = 1197,
    manufacture_date: date = date(2021, 7, 1),
) -> VehicleFacts:
    """Vehicle 36 months old at AS_OF: 2.80% own-damage rate, 3,416 third party."""
    return VehicleFacts(
        registration="MH-02-AB-1234",
        make="Maruti",
        model="Swift",
        manufacture_date=manufacture_date,
        engine_cc=engine_cc,
        idv=idv,
    )


def make_application(
    application_id: str = "APP-001",
    applicant_id: str = "DRV-001",
    coverage_type="comprehensive",
    add_ons=(),
    vehicle: Optional[VehicleFacts] = None,
    as_of: datetime = AS_OF,
) -> PremiumApplication:
    """Create a PremiumApplication; base premium 17,416.00 by default."""
    return PremiumApplication(
        application_id=application_id,
        applicant_id=applicant_id,
        vehicle=vehicle or make_vehicle(),
        coverage_type=coverage_type,
        add_ons=tuple(add_ons),
        as_of=as_of,
    )


def make_violation_store(applicant_id: str = "DRV-001", violations=()) -> InMemoryViolationStore:
    store = InMemoryViolationStore()
    for v in violations:
        store.add(applicant_id, v)
    return store


# =============================================================================
# Factory Helpers: Citations and Tariffs
# =============================================================================

def make_citation(
    document_id: str = "garage-tariff-2024",
    section: Optional[str] = "T-1",
    page: Optional[int] = 1,
    excerpt: str = "",
) -> Citation:
    return Citation(document_id=document_id, section=section, page=page, excerpt=excerpt)


def make_clause_table() -> dict[ClauseKey, tuple[str, Citation]]:
    """One clause per key, each on its own section of the policy wording."""
    return {
        key: (
            f"{key.value} clause wording",
            Citation(document_id="policy-wording", section=key.value, page=i + 1),
        )
        for i, key in enumerate(ClauseKey)
    }


def make_clause_book() -> ClauseBook:
    return ClauseBook(
        clauses={key: citation for key, (_, citation) in make_clause_table().items()},
        policy_document_id="policy-wording",
    )


def make_retriever(costs: Optional[dict[str, Decimal]] = None, with_clauses: bool = True) -> StaticRetriever:
    """StaticRetriever with one tariff per part name (all cost as part cost)."""
    costs = costs if costs is not None else {"front_bumper": Decimal("10000")}
    tariffs = {}
    for i, (name, cost) in enumerate(sorted(costs.items())):
        key = normalize_part_name(name)
        tariffs[key] = StaticTariff(
            part_name=key,
            tariff=TariffRate(labor_cost=Decimal("0"), part_cost=Decimal(cost)),
            citation=make_citation(section=f"T-{i + 1}"),
        )
    return StaticRetriever(tariffs=tariffs, clauses=make_clause_table() if with_clauses else {})


def make_lookup(costs: Optional[dict[str, Decimal]] = None, fallback: bool = False) -> TariffLookup:
    """TariffLookup built directly, bypassing retrieval."""
    costs = costs if costs is not None else {"front_bumper": Decimal("10000")}
    matches = {
        normalize_part_name(name): TariffMatch(
            part_key=normalize_part_name(name),
            cost=Decimal(cost),
            citation=make_citation(section=f"T-{i + 1}"),
        )
        for i, (name, cost) in enumerate(sorted(costs.items()))
    }
    source = TariffSource.STATIC_FALLBACK if fallback else TariffSource.RETRIEVAL
    return TariffLookup(matches=matches, source=source)


# =============================================================================
# Factory Helpers: Policy and Claims
# =============================================================================

def make_policy(
    policy_id: str = "POL-001",
    coverage_type: CoverageType = CoverageType.COMPREHENSIVE,
    deductible: Decimal = Decimal("1000"),
    total_claim_limit: Decimal = Decimal("100000"),
    annual_claim_limit: Decimal = Decimal("300000"),
    per_part_limit: Optional[Decimal] = None,
    add_ons=(),
    idv: Decimal = Decimal("500000"),
    registered_on: Optional[date] = REGISTERED_ON,
) -> Policy:
    """Create a Policy with required fields."""
    return Policy(
        policy_id=policy_id,
        coverage_type=coverage_type,
        idv=idv,
        deductible=deductible,
        total_claim_limit=total_claim_limit,
        annual_claim_limit=annual_claim_limit,
        per_part_limit=per_part_limit,
        active_add_ons=frozenset(AddOn(a) for a in add_ons),
        vehicle_registration_date=registered_on,
        document_id="policy-wording",
    )


def make_part(
    name: str = "front_bumper",
    category: PartCategory = PartCategory.METAL,
    severity: Severity = Severity.MODERATE,
    estimated_cost: Decimal = Decimal("9000"),
    confidence: Decimal = Decimal("95"),
) -> DetectedPart:
    return DetectedPart(
        name=name,
        category=category,
        severity=severity,
        estimated_cost=estimated_cost,
        confidence=confidence,
        photo_ref=f"photo:{name}",
    )


def make_report(
    parts=None,
    overall_confidence: Decimal = Decimal("92"),
    manual_review_flag: bool = False,
    report_id: str = "RPT-001",
) -> DamageReport:
    return DamageReport(
        report_id=report_id,
        parts=tuple(parts) if parts is not None else (make_part(),),
        overall_confidence=overall_confidence,
        manual_review_flag=manual_review_flag,
    )


def make_photo(
    photo_id: str = "P-1",
    taken_at: Optional[datetime] = INCIDENT_AT + timedelta(minutes=20),
    gps: Optional[GeoPoint] = MUMBAI,
    device_id: str = "DEV-1",
    manipulation_detected: bool = False,
) -> PhotoEvidence:
    return PhotoEvidence(
        photo_id=photo_id,
        taken_at=taken_at,
        gps=gps,
        image_hash=f"hash-{photo_id}",
        device_id=device_id,
        manipulation_detected=manipulation_detected,
    )


def make_metadata(
    claim_id: str = "CLM-001",
    claimed_amount: Decimal = Decimal("10000"),
    incident_location: Optional[GeoPoint] = MUMBAI,
    garage_id: Optional[str] = "GAR-1",
    photos=None,
    incident_at: datetime = INCIDENT_AT,
) -> ClaimMetadata:
    """Clean metadata: every signal present, no indicator fires."""
    if photos is None:
        photos = (
            make_photo("P-1"),
            make_photo("P-2", taken_at=INCIDENT_AT + timedelta(minutes=35)),
        )
    return ClaimMetadata(
        claim_id=claim_id,
        incident_at=incident_at,
        reported_at=incident_at + timedelta(hours=3),
        claimed_amount=claimed_amount,
        incident_location=incident_location,
        garage_id=garage_id,
        photos=tuple(photos),
    )


def make_history(
    claimant_id: str = "CUS-001",
    claims_last_12_months: int = 0,
    garage_claim_counts: Optional[dict[str, int]] = None,
    flagged_garages=(),
    shared_device_ids=(),
) -> ClaimantHistory:
    return ClaimantHistory(
        claimant_id=claimant_id,
        claims_last_12_months=claims_last_12_months,
        garage_claim_counts=dict(garage_claim_counts or {}),
        flagged_garages=frozenset(flagged_garages),
        shared_device_ids=frozenset(shared_device_ids),
    )


def make_submission(
    claim_id: str = "CLM-001",
    policy_id: str = "POL-001",
    parts=None,
    overall_confidence: Decimal = Decimal("92"),
    metadata: Optional[ClaimMetadata] = None,
    history: Optional[ClaimantHistory] = None,
) -> ClaimSubmission:
    """Create a ClaimSubmission with a clean fraud profile."""
    return ClaimSubmission(
        claim_id=claim_id,
        policy_id=policy_id,
        damage_report=make_report(parts=parts, overall_confidence=overall_confidence),
        metadata=metadata or make_metadata(claim_id=claim_id),
        history=history or make_history(),
        submitted_at=INCIDENT_AT + timedelta(hours=3),
    )


def make_claim_store(policy: Optional[Policy] = None, annual_paid: Decimal = Decimal("0")) -> InMemoryClaimStore:
    store = InMemoryClaimStore()
    store.add_policy(policy or make_policy(), annual_paid=annual_paid)
    return store


def make_fraud(score: int = 10, claim_id: str = "CLM-001", threshold: int = 70) -> FraudAnalysis:
    """FraudAnalysis with a given score and no indicators."""
    if score > threshold:
        recommendation = FraudRecommendation.INVESTIGATE
    elif score >= 40:
        recommendation = FraudRecommendation.MANUAL_REVIEW
    else:
        recommendation = FraudRecommendation.APPROVE
    return FraudAnalysis(
        claim_id=claim_id,
        anomaly_score=score,
        flagged=score > threshold,
        indicators=(),
        recommendation=recommendation,
    )


def make_part_amount(
    name: str,
    depreciated: Decimal,
    covered: bool = True,
    category: PartCategory = PartCategory.METAL,
) -> PartAmount:
    """PartAmount with no depreciation (tariff == depreciated)."""
    amount = Decimal(depreciated).quantize(Decimal("0.01"))
    return PartAmount(
        part_name=name,
        category=category,
        tariff_cost=amount,
        depreciation_pct=Decimal("0"),
        depreciated_cost=amount,
        covered=covered,
        approved_amount=amount if covered else Decimal("0.00"),
    )


def make_valuation(amounts, vehicle_age_months: int = 30) -> Valuation:
    """Valuation over covered parts named part_0, part_1, ..."""
    return Valuation(
        parts=tuple(make_part_amount(f"part_{i}", a) for i, a in enumerate(amounts)),
        vehicle_age_months=vehicle_age_months,
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def policy() -> Policy:
    return make_policy()


@pytest.fixture
def clause_book() -> ClauseBook:
    return make_clause_book()


@pytest.fixture
def rng() -> random.Random:
    """Seeded generator for property checks."""
    return random.Random(20240715)
