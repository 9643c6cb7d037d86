"""Read operations over the measurement store."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional, TypeVar

from datastore.base import MeasurementStore
from datastore.mock_measurements import MockMeasurementCollection
from datastore.mongo import connect_mongo_store
from models.records import MeasurementField, SeriesPoint
from services.aggregator import MetricsSummary
from services.errors import NotFound, StoreError
from services.query import build_filter, clamp_limit, normalize_field
from settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MeasurementService:
    """Validates query parameters and runs them against a measurement store.

    All validation happens before the store is contacted, so a malformed
    request never costs a database round trip.
    """

    def __init__(self, store: MeasurementStore) -> None:
        self.store = store

    def fetch_series(
        self,
        field: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> tuple[MeasurementField, list[SeriesPoint]]:
        """Return the normalized field and its time-ordered points.

        An empty result is a valid answer here, not an error.
        """
        normalized = normalize_field(field)
        query = build_filter(normalized, start_date, end_date)
        effective_limit = clamp_limit(limit)

        start_time = time.perf_counter()
        points = self._run(
            lambda: self.store.find_series(query, effective_limit),
            normalized,
            start_date,
            end_date,
        )
        logger.info(
            "Fetched measurement series",
            extra={
                "field": normalized,
                "start_date": start_date,
                "end_date": end_date,
                "limit": effective_limit,
                "row_count": len(points),
                "query_ms": _elapsed_ms(start_time),
            },
        )
        return normalized, points

    def fetch_metrics(
        self,
        field: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> MetricsSummary:
        """Summary statistics for the matching values; raises ``NotFound`` when none match."""
        normalized = normalize_field(field)
        query = build_filter(normalized, start_date, end_date)

        start_time = time.perf_counter()
        summary = self._run(
            lambda: self.store.summarize(query),
            normalized,
            start_date,
            end_date,
        )
        logger.info(
            "Computed measurement metrics",
            extra={
                "field": normalized,
                "start_date": start_date,
                "end_date": end_date,
                "row_count": summary.count,
                "query_ms": _elapsed_ms(start_time),
            },
        )
        if summary.count == 0:
            raise NotFound()
        return summary

    def close(self) -> None:
        """Release the store connection during application shutdown."""
        self.store.close()

    def _run(
        self,
        operation: Callable[[], T],
        field: MeasurementField,
        start_date: Optional[str],
        end_date: Optional[str],
    ) -> T:
        try:
            return operation()
        except StoreError as exc:
            logger.error(
                "Measurement store query failed",
                extra={
                    "field": field,
                    "start_date": start_date,
                    "end_date": end_date,
                    "store": self.store.name,
                    "reason": exc.details,
                },
            )
            raise


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


def build_default_store() -> MeasurementStore:
    """Pick MongoDB when a URI is configured, otherwise the local mock collection."""
    settings = get_settings()
    if settings.mongo_uri:
        return connect_mongo_store(
            settings.mongo_uri,
            db_name=settings.mongo_db_name,
            collection_name=settings.mongo_collection,
            timeout_ms=settings.mongo_timeout_ms,
        )

    path = settings.mock_measurements_path
    logger.warning(
        "MONGO_URI is not set; serving measurements from the local mock collection",
        extra={"store": "mock"},
    )
    return MockMeasurementCollection(
        name=settings.mongo_collection,
        persistence_path=Path(path) if path else None,
    )


@lru_cache
def build_default_service() -> MeasurementService:
    """Factory that wires the service with the configured store."""
    return MeasurementService(store=build_default_store())
