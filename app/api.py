"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.schemas import ErrorResponse, MetricsResponse, series_row
from services.measurements import MeasurementService

router = APIRouter()

_ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_service(request: Request) -> MeasurementService:
    return request.app.state.measurements


@router.get(
    "/api/measurements",
    summary="Time-ordered values of one field over an optional date range.",
    responses=_ERROR_RESPONSES,
)
def list_measurements(
    field: Optional[str] = Query(None, description="One of field1, field2, field3 (default field1)."),
    start_date: Optional[str] = Query(None, description="Inclusive start day, YYYY-MM-DD (UTC)."),
    end_date: Optional[str] = Query(None, description="Inclusive end day, YYYY-MM-DD (UTC)."),
    limit: Optional[int] = Query(None, description="Maximum rows to return (default 500, capped at 5000)."),
    service: MeasurementService = Depends(get_service),
) -> List[Dict[str, Any]]:
    normalized, points = service.fetch_series(field, start_date, end_date, limit)
    return [series_row(normalized, point) for point in points]


@router.get(
    "/api/measurements/metrics",
    response_model=MetricsResponse,
    summary="Average, extremes, population standard deviation and count for one field.",
    responses={
        **_ERROR_RESPONSES,
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    },
)
def measurement_metrics(
    field: Optional[str] = Query(None, description="One of field1, field2, field3 (default field1)."),
    start_date: Optional[str] = Query(None, description="Inclusive start day, YYYY-MM-DD (UTC)."),
    end_date: Optional[str] = Query(None, description="Inclusive end day, YYYY-MM-DD (UTC)."),
    service: MeasurementService = Depends(get_service),
) -> MetricsResponse:
    summary = service.fetch_metrics(field, start_date, end_date)
    return MetricsResponse.from_summary(summary)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /ui for the dashboard and /docs for the API."}
