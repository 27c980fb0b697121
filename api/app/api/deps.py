from fastapi import Depends, HTTPException, status

from app.core.config import Settings, get_settings
from app.services.aggregation import AggregationTimeoutError, ApplicantAggregator
from app.services.store import DynamoStore, StoreUnavailableError, get_store


def get_aggregator(
    store: DynamoStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ApplicantAggregator:
    return ApplicantAggregator(store, settings)


def aggregation_failure(exc: StoreUnavailableError | AggregationTimeoutError, message: str) -> HTTPException:
    if isinstance(exc, AggregationTimeoutError):
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail={"error": message, "details": {"reason": str(exc)}},
        )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"error": message, "details": {"reason": str(exc)}},
    )
