"""Pydantic schemas and row rendering for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.records import MeasurementField, SeriesPoint
from services.aggregator import MetricsSummary


class MetricsResponse(BaseModel):
    """Summary statistics for one field over the requested range."""

    model_config = ConfigDict(populate_by_name=True)

    avg: float
    # Extremes keep the stored numeric type, so integer data stays integral.
    min_value: Union[int, float] = Field(..., alias="min")
    max_value: Union[int, float] = Field(..., alias="max")
    std_dev: float = Field(
        ...,
        alias="stdDev",
        description="Population standard deviation.",
    )
    count: int = Field(..., ge=1)

    @classmethod
    def from_summary(cls, summary: MetricsSummary) -> "MetricsResponse":
        return cls(
            avg=summary.avg,
            min_value=summary.min_value,
            max_value=summary.max_value,
            std_dev=summary.std_dev,
            count=summary.count,
        )


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str
    details: Optional[str] = Field(
        default=None, description="Internal failure message, present on 500 responses only."
    )


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix; milliseconds only when present."""
    value = value.astimezone(timezone.utc)
    timespec = "milliseconds" if value.microsecond else "seconds"
    return value.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"


def series_row(field: MeasurementField, point: SeriesPoint) -> Dict[str, Any]:
    return {"timestamp": format_timestamp(point.timestamp), field.value: point.value}
