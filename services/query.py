"""Query normalization: field whitelisting, date-range filters and row limits."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional

from models.records import DEFAULT_FIELD, Measurement, MeasurementField
from services.errors import InvalidDateFormat, InvalidDateRange, InvalidField

DEFAULT_LIMIT = 500
MAX_LIMIT = 5000

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_ALLOWED_FIELDS = tuple(member.value for member in MeasurementField)


@dataclass(frozen=True)
class MeasurementFilter:
    """Store-agnostic description of which measurements a query selects.

    ``start`` is inclusive and ``end_exclusive`` is the midnight following the
    requested end date, so the whole final day is covered. Either bound may be
    ``None``. Records whose value for ``field`` is missing or non-numeric never
    match.
    """

    field: MeasurementField
    start: Optional[datetime] = None
    end_exclusive: Optional[datetime] = None

    def to_mongo(self) -> Dict[str, Any]:
        """Render the filter as a MongoDB ``$match`` document."""
        match: Dict[str, Any] = {}
        bounds: Dict[str, datetime] = {}
        if self.start is not None:
            bounds["$gte"] = self.start
        if self.end_exclusive is not None:
            bounds["$lt"] = self.end_exclusive
        if bounds:
            match["timestamp"] = bounds
        match[self.field.value] = {"$type": "number"}
        return match

    def matches(self, measurement: Measurement) -> bool:
        if measurement.value_for(self.field) is None:
            return False
        timestamp = measurement.timestamp
        if self.start is not None and timestamp < self.start:
            return False
        if self.end_exclusive is not None and timestamp >= self.end_exclusive:
            return False
        return True


def normalize_field(raw: Optional[str]) -> MeasurementField:
    """Map a requested field name onto the whitelist, defaulting when absent."""
    if not raw:
        return DEFAULT_FIELD
    try:
        return MeasurementField(raw)
    except ValueError as exc:
        raise InvalidField(_ALLOWED_FIELDS) from exc


def parse_date(raw: str) -> datetime:
    """Parse a strict ``YYYY-MM-DD`` string as midnight UTC of that day."""
    if not _DATE_PATTERN.fullmatch(raw):
        raise InvalidDateFormat(raw)
    try:
        day = date.fromisoformat(raw)
    except ValueError as exc:
        raise InvalidDateFormat(raw) from exc
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def build_filter(
    field: MeasurementField,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> MeasurementFilter:
    start = parse_date(start_date) if start_date else None
    end = parse_date(end_date) if end_date else None

    if start is not None and end is not None and start > end:
        raise InvalidDateRange()

    end_exclusive: Optional[datetime] = None
    if end is not None:
        try:
            end_exclusive = end + timedelta(days=1)
        except OverflowError:
            # 9999-12-31 has no following day; nothing can lie beyond it.
            end_exclusive = None

    return MeasurementFilter(field=field, start=start, end_exclusive=end_exclusive)


def clamp_limit(requested: Optional[int] = None) -> int:
    """Effective row cap: the default when unset or non-positive, never above ``MAX_LIMIT``."""
    if requested is None or requested <= 0:
        requested = DEFAULT_LIMIT
    return min(requested, MAX_LIMIT)
