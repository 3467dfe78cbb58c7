"""Premium quote endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.schemas.requests import PremiumRequest
from api.schemas.responses import ErrorResponse, QuoteResponse
from api.services import Services, get_services
from motorpilot.adapters import InMemoryViolationStore
from motorpilot.engine import UnderwritingPipeline
from motorpilot.models import PremiumApplication, Severity, VehicleFacts, ViolationRecord

router = APIRouter(prefix="/premium", tags=["Underwriting"])


def to_application(request: PremiumRequest) -> PremiumApplication:
    """Build the engine's application from the request body."""
    as_of = request.as_of or datetime.now(timezone.utc)
    vehicle = request.vehicle
    return PremiumApplication(
        application_id=request.application_id,
        applicant_id=request.applicant_id,
        vehicle=VehicleFacts(
            registration=vehicle.registration,
            make=vehicle.make,
            model=vehicle.model,
            manufacture_date=vehicle.manufacture_date,
            engine_cc=vehicle.engine_cc,
            idv=vehicle.idv,
        ),
        coverage_type=request.coverage_type,
        add_ons=tuple(request.add_ons),
        as_of=as_of,
    )


@router.post(
    "",
    response_model=QuoteResponse,
    responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def compute_premium(request: PremiumRequest, services: Services = Depends(get_services)):
    """
    Quote a risk-adjusted premium.

    The violation history comes from the violation store unless the request
    supplies it inline.
    """
    pipeline = services.underwriting
    if request.violations is not None:
        store = InMemoryViolationStore()
        for v in request.violations:
            store.add(request.applicant_id, ViolationRecord(
                violation_id=v.violation_id,
                violation_type=v.violation_type,
                violation_date=v.violation_date,
                severity=Severity(v.severity),
                location=v.location,
            ))
        pipeline = UnderwritingPipeline(store, config=services.config)

    quote = pipeline.compute_premium(to_application(request))
    return quote.to_dict()
