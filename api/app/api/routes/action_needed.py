from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.deps import aggregation_failure, get_aggregator
from app.core.security import get_principal
from app.schemas.applicants import ActionNeededSummaryOut, ClinicApplicantsOut
from app.services.aggregation import (
    ActionNeededSummary,
    AggregationTimeoutError,
    ApplicantAggregator,
    ClientInputError,
    parse_statuses,
    select_mode,
)
from app.services.store import StoreUnavailableError

router = APIRouter()


@router.options("/action-needed", include_in_schema=False)
@router.options("/clinics/{clinic_id}/action-needed", include_in_schema=False)
async def action_needed_preflight() -> Response:
    return Response(status_code=200)


@router.get("/action-needed", response_model=ClinicApplicantsOut | ActionNeededSummaryOut)
async def get_action_needed(
    clinic_id: str | None = Query(default=None, alias="clinicId"),
    aggregate: str | None = Query(default=None),
    statuses: str | None = Query(default=None),
    principal=Depends(get_principal),
    aggregator: ApplicantAggregator = Depends(get_aggregator),
) -> ClinicApplicantsOut | ActionNeededSummaryOut:
    return await _action_needed(aggregator, clinic_id, _is_true(aggregate), statuses)


@router.get("/clinics/{clinic_id}/action-needed", response_model=ClinicApplicantsOut | ActionNeededSummaryOut)
async def get_clinic_action_needed(
    clinic_id: str,
    aggregate: str | None = Query(default=None),
    statuses: str | None = Query(default=None),
    principal=Depends(get_principal),
    aggregator: ApplicantAggregator = Depends(get_aggregator),
) -> ClinicApplicantsOut | ActionNeededSummaryOut:
    return await _action_needed(aggregator, clinic_id, _is_true(aggregate), statuses)


def _is_true(flag: str | None) -> bool:
    return (flag or "").strip().lower() == "true"


async def _action_needed(
    aggregator: ApplicantAggregator,
    clinic_id: str | None,
    aggregate: bool,
    statuses: str | None,
) -> ClinicApplicantsOut | ActionNeededSummaryOut:
    try:
        selection = select_mode(clinic_id, aggregate)
    except ClientInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(exc)}) from exc

    allowed = parse_statuses(statuses, aggregator.settings.default_statuses)
    try:
        result = await aggregator.run(aggregator.action_needed(selection, allowed))
    except (StoreUnavailableError, AggregationTimeoutError) as exc:
        raise aggregation_failure(exc, "Failed to fetch action needed data") from exc

    if isinstance(result, ActionNeededSummary):
        return ActionNeededSummaryOut.from_result(result)
    return ClinicApplicantsOut.from_result(result)
