"""Summary statistics over a measurement field."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable


@dataclass
class MetricsSummary:
    """Computed statistics for the values of one field."""

    count: int = 0
    avg: float | None = None
    min_value: float | None = None
    max_value: float | None = None
    std_dev: float | None = None


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation.

    Produces the same figures as the store-side ``$group`` stage: arithmetic
    mean, extremes, and the population (not sample) standard deviation.
    """

    def aggregate(self, values: Iterable[float]) -> MetricsSummary:
        summary = MetricsSummary()
        collected: list[float] = []

        for value in values:
            collected.append(value)
            if summary.min_value is None or value < summary.min_value:
                summary.min_value = value
            if summary.max_value is None or value > summary.max_value:
                summary.max_value = value

        summary.count = len(collected)
        if not collected:
            return summary

        mean = math.fsum(collected) / summary.count
        variance = math.fsum((value - mean) ** 2 for value in collected) / summary.count
        summary.avg = mean
        summary.std_dev = math.sqrt(variance)
        return summary
