from fastapi import APIRouter, Depends, Response

from app.api.deps import aggregation_failure, get_aggregator
from app.core.security import get_principal, require_clinic_access
from app.schemas.shifts import ShiftDashboardOut
from app.services.aggregation import AggregationTimeoutError, ApplicantAggregator
from app.services.store import StoreUnavailableError

router = APIRouter()


@router.options("/{clinic_id}/shifts", include_in_schema=False)
async def shifts_preflight(clinic_id: str) -> Response:
    return Response(status_code=200)


@router.get("/{clinic_id}/shifts", response_model=ShiftDashboardOut)
async def get_clinic_shifts(
    clinic_id: str,
    principal=Depends(get_principal),
    aggregator: ApplicantAggregator = Depends(get_aggregator),
) -> ShiftDashboardOut:
    require_clinic_access(principal, clinic_id, aggregator.settings)
    try:
        result = await aggregator.run(aggregator.shift_dashboard(clinic_id))
    except (StoreUnavailableError, AggregationTimeoutError) as exc:
        raise aggregation_failure(exc, "Failed to fetch clinic jobs details") from exc
    return ShiftDashboardOut.from_result(result)
