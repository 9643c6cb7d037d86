"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from numbers import Real
from typing import Optional


class MeasurementField(str, Enum):
    """Closed set of numeric columns a client may query."""

    field1 = "field1"
    field2 = "field2"
    field3 = "field3"


DEFAULT_FIELD = MeasurementField.field1


def is_numeric(value: object) -> bool:
    """Mirror the store's ``$type: "number"`` check; booleans are not numbers."""
    return isinstance(value, (Real, Decimal)) and not isinstance(value, bool)


@dataclass(slots=True)
class Measurement:
    """A single persisted sensor reading."""

    timestamp: datetime
    field1: Optional[float] = None
    field2: Optional[float] = None
    field3: Optional[float] = None

    def value_for(self, field: MeasurementField) -> Optional[float]:
        if field is MeasurementField.field1:
            value = self.field1
        elif field is MeasurementField.field2:
            value = self.field2
        else:
            value = self.field3
        if not is_numeric(value):
            return None
        if isinstance(value, Decimal):
            return float(value)
        return value


@dataclass(slots=True)
class SeriesPoint:
    """One ``{timestamp, <field>}`` row of a series response."""

    timestamp: datetime
    value: float
