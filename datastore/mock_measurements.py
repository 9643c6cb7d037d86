from __future__ import annotations
import json
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, Optional

from models.records import Measurement, MeasurementField, SeriesPoint
from services.aggregator import Aggregator, MetricsSummary
from services.errors import StoreError
from services.query import MeasurementFilter


class MockMeasurementCollection:
    """In-memory stand-in for the ``measurements`` collection.

    Documents are kept in insertion order and, when ``persistence_path`` is
    set, mirrored to a JSON array of ``{"timestamp": ..., "field1": ...}``
    objects so a local dataset survives restarts.
    """

    def __init__(
        self,
        name: str = "measurements",
        persistence_path: Optional[Path] = None,
        aggregator: Optional[Aggregator] = None,
    ) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self.aggregator = aggregator or Aggregator()
        self._documents: list[Measurement] = []
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, measurement: Measurement) -> None:
        self.insert_many([measurement])

    def insert_many(self, measurements: Iterable[Measurement]) -> None:
        with self._lock:
            for measurement in measurements:
                self._documents.append(
                    replace(measurement, timestamp=_as_utc(measurement.timestamp))
                )
            self._persist()

    def find_series(self, query: MeasurementFilter, limit: int) -> list[SeriesPoint]:
        with self._lock:
            matched = [doc for doc in self._documents if query.matches(doc)]
        matched.sort(key=lambda doc: doc.timestamp)
        return [
            SeriesPoint(timestamp=doc.timestamp, value=doc.value_for(query.field))
            for doc in matched[:limit]
        ]

    def summarize(self, query: MeasurementFilter) -> MetricsSummary:
        with self._lock:
            values = [
                doc.value_for(query.field)
                for doc in self._documents
                if query.matches(doc)
            ]
        return self.aggregator.aggregate(value for value in values if value is not None)

    def close(self) -> None:
        """Nothing to release; present for parity with the database-backed store."""

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [_to_document(doc) for doc in self._documents]
        self.persistence_path.write_text(json.dumps(payload, indent=2))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read {self.persistence_path}: {exc}") from exc

        if not isinstance(data, list):
            raise StoreError(f"{self.persistence_path} must contain a JSON array.")

        for index, document in enumerate(data):
            try:
                self._documents.append(_from_document(document))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise StoreError(
                    f"Invalid measurement at index {index} in {self.persistence_path}: {exc}"
                ) from exc


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(candidate))


def _from_document(document: Dict[str, Any]) -> Measurement:
    # Field values are kept verbatim; the numeric guard filters them at query time.
    values = {member.value: document.get(member.value) for member in MeasurementField}
    return Measurement(timestamp=_parse_timestamp(document["timestamp"]), **values)


def _to_document(measurement: Measurement) -> Dict[str, Any]:
    document: Dict[str, Any] = {
        "timestamp": measurement.timestamp.isoformat().replace("+00:00", "Z"),
    }
    for member in MeasurementField:
        value = getattr(measurement, member.value)
        if value is not None:
            document[member.value] = value
    return document
