from fastapi import APIRouter, Depends, Response

from app.api.deps import aggregation_failure, get_aggregator
from app.core.security import get_principal
from app.schemas.applicants import ClinicApplicantsOut
from app.services.aggregation import AggregationTimeoutError, ApplicantAggregator
from app.services.store import StoreUnavailableError

router = APIRouter()


@router.options("/{clinic_id}/applicants", include_in_schema=False)
async def applicants_preflight(clinic_id: str) -> Response:
    return Response(status_code=200)


@router.get("/{clinic_id}/applicants", response_model=ClinicApplicantsOut)
async def get_clinic_applicants(
    clinic_id: str,
    principal=Depends(get_principal),
    aggregator: ApplicantAggregator = Depends(get_aggregator),
) -> ClinicApplicantsOut:
    try:
        result = await aggregator.run(aggregator.clinic_applicants(clinic_id))
    except (StoreUnavailableError, AggregationTimeoutError) as exc:
        raise aggregation_failure(exc, "Failed to fetch applicants") from exc
    return ClinicApplicantsOut.from_result(result)
