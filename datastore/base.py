"""Interface shared by the measurement store adapters."""

from __future__ import annotations

from typing import Protocol

from models.records import SeriesPoint
from services.aggregator import MetricsSummary
from services.query import MeasurementFilter


class MeasurementStore(Protocol):
    """Read-only access to the measurement collection.

    Implementations raise ``services.errors.StoreError`` for any failure of the
    underlying database and nothing else.
    """

    name: str

    def find_series(self, query: MeasurementFilter, limit: int) -> list[SeriesPoint]:
        """Matching points sorted by ascending timestamp, at most ``limit`` of them."""
        ...

    def summarize(self, query: MeasurementFilter) -> MetricsSummary:
        """Statistics over every matching value; ``count`` is 0 when nothing matched."""
        ...

    def close(self) -> None:
        ...
