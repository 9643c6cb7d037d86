from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson.decimal128 import Decimal128
from bson.errors import BSONError
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from models.records import MeasurementField, SeriesPoint
from services.aggregator import MetricsSummary
from services.errors import StoreError
from services.query import MeasurementFilter

logger = logging.getLogger(__name__)

# Aggregation operands per whitelisted field. Only these literals are ever
# placed into a pipeline.
_GROUP_OPERANDS: Dict[MeasurementField, str] = {
    MeasurementField.field1: "$field1",
    MeasurementField.field2: "$field2",
    MeasurementField.field3: "$field3",
}


class MongoMeasurementStore:
    """Measurement store backed by a MongoDB collection."""

    def __init__(
        self,
        collection: Collection,
        client: Optional[MongoClient] = None,
    ) -> None:
        self.collection = collection
        self.name = collection.name
        self._client = client
        try:
            self.collection.create_index([("timestamp", ASCENDING)])
        except PyMongoError as exc:
            raise StoreError(str(exc)) from exc

    def find_series(self, query: MeasurementFilter, limit: int) -> list[SeriesPoint]:
        key = query.field.value
        projection = {"_id": 0, "timestamp": 1, key: 1}
        try:
            cursor = (
                self.collection.find(query.to_mongo(), projection)
                .sort("timestamp", ASCENDING)
                .limit(limit)
            )
            return [
                SeriesPoint(
                    timestamp=_as_utc(document["timestamp"]),
                    value=_as_number(document[key]),
                )
                for document in cursor
            ]
        except (PyMongoError, BSONError) as exc:
            raise StoreError(str(exc)) from exc
        except (KeyError, TypeError, AttributeError) as exc:
            raise StoreError(f"Malformed measurement document: {exc!r}") from exc

    def summarize(self, query: MeasurementFilter) -> MetricsSummary:
        operand = _GROUP_OPERANDS[query.field]
        pipeline = [
            {"$match": query.to_mongo()},
            {
                "$group": {
                    "_id": None,
                    "avg": {"$avg": operand},
                    "min": {"$min": operand},
                    "max": {"$max": operand},
                    "stdDev": {"$stdDevPop": operand},
                    "count": {"$sum": 1},
                }
            },
            {"$project": {"_id": 0}},
        ]
        try:
            results = list(self.collection.aggregate(pipeline))
        except (PyMongoError, BSONError) as exc:
            raise StoreError(str(exc)) from exc
        if not results:
            return MetricsSummary()
        return _summary_from_group(results[0])

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_number(value: Any) -> Any:
    # $type: "number" also matches decimal128; responses carry plain floats.
    if isinstance(value, Decimal128):
        return float(value.to_decimal())
    return value


def _summary_from_group(document: Dict[str, Any]) -> MetricsSummary:
    return MetricsSummary(
        count=int(document.get("count", 0)),
        avg=_as_number(document.get("avg")),
        min_value=_as_number(document.get("min")),
        max_value=_as_number(document.get("max")),
        std_dev=_as_number(document.get("stdDev")),
    )


def connect_mongo_store(
    uri: str,
    db_name: str,
    collection_name: str,
    timeout_ms: int = 5000,
) -> MongoMeasurementStore:
    """Open the shared client and bind the store to its collection."""
    client: MongoClient = MongoClient(
        uri,
        tz_aware=True,
        tzinfo=timezone.utc,
        serverSelectionTimeoutMS=timeout_ms,
    )
    database = client.get_default_database(default=db_name)
    collection = database[collection_name]
    logger.info(
        "Connected to MongoDB collection %s.%s",
        database.name,
        collection_name,
        extra={"store": "mongo"},
    )
    try:
        return MongoMeasurementStore(collection=collection, client=client)
    except StoreError:
        client.close()
        raise
