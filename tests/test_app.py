from datetime import datetime, timedelta, timezone
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.mock_measurements import MockMeasurementCollection
from datastore.mongo import MongoMeasurementStore
from models.records import Measurement
from services.errors import StoreError
from services.measurements import MeasurementService, build_default_service


def _install_service(monkeypatch, service: MeasurementService) -> None:
    def build_test_service() -> MeasurementService:
        return service

    build_test_service.cache_clear = lambda: None  # type: ignore[attr-defined]
    monkeypatch.setattr("app.main.build_default_service", build_test_service)


@pytest.fixture
def collection() -> MockMeasurementCollection:
    return MockMeasurementCollection(name="test")


@pytest.fixture
def api_client(collection, monkeypatch) -> Iterator[TestClient]:
    _install_service(monkeypatch, MeasurementService(store=collection))
    with TestClient(create_app()) as client:
        yield client


def _seed(collection: MockMeasurementCollection, rows: List[Measurement]) -> None:
    collection.insert_many(rows)


def test_lifespan_builds_and_releases_default_service(monkeypatch) -> None:
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.setenv("MOCK_MEASUREMENTS_PATH", "")
    from settings import get_settings

    get_settings.cache_clear()
    build_default_service.cache_clear()
    try:
        app = create_app()
        with TestClient(app):
            during = app.state.measurements
            assert isinstance(during.store, MockMeasurementCollection)
            assert during is build_default_service()

        after = build_default_service()
        assert after is not during
    finally:
        build_default_service.cache_clear()
        get_settings.cache_clear()


def test_single_day_scenario_returns_series_and_metrics(api_client, collection) -> None:
    _seed(
        collection,
        [
            Measurement(timestamp=datetime(2024, 1, 1, 12, tzinfo=timezone.utc), field2=42),
            Measurement(timestamp=datetime(2024, 1, 2, 0, tzinfo=timezone.utc), field2=99),
            Measurement(timestamp=datetime(2023, 12, 31, 23, tzinfo=timezone.utc), field2=7),
        ],
    )
    params = {"field": "field2", "start_date": "2024-01-01", "end_date": "2024-01-01"}

    series = api_client.get("/api/measurements", params=params)
    metrics = api_client.get("/api/measurements/metrics", params=params)

    assert series.status_code == 200
    assert series.json() == [{"timestamp": "2024-01-01T12:00:00Z", "field2": 42}]
    assert metrics.status_code == 200
    assert metrics.json() == {"avg": 42, "min": 42, "max": 42, "stdDev": 0, "count": 1}


def test_series_defaults_to_field1_and_sorts_ascending(api_client, collection) -> None:
    base = datetime(2024, 3, 1, tzinfo=timezone.utc)
    _seed(
        collection,
        [
            Measurement(timestamp=base + timedelta(hours=2), field1=2.5),
            Measurement(timestamp=base, field1=0.5),
            Measurement(timestamp=base + timedelta(hours=1), field2=9.0),
        ],
    )

    response = api_client.get("/api/measurements")

    assert response.status_code == 200
    assert response.json() == [
        {"timestamp": "2024-03-01T00:00:00Z", "field1": 0.5},
        {"timestamp": "2024-03-01T02:00:00Z", "field1": 2.5},
    ]


def test_series_renders_millisecond_timestamps(api_client, collection) -> None:
    _seed(
        collection,
        [Measurement(timestamp=datetime(2024, 1, 1, 23, 59, 59, 999000, tzinfo=timezone.utc), field1=1)],
    )

    response = api_client.get("/api/measurements", params={"end_date": "2024-01-01"})

    assert response.json() == [{"timestamp": "2024-01-01T23:59:59.999Z", "field1": 1}]


def test_series_limit_caps_rows(api_client, collection) -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    _seed(collection, [Measurement(timestamp=base + timedelta(minutes=i), field1=float(i)) for i in range(25)])

    response = api_client.get("/api/measurements", params={"limit": 10})

    body = response.json()
    assert response.status_code == 200
    assert [row["field1"] for row in body] == [float(i) for i in range(10)]


def test_empty_series_returns_empty_list(api_client) -> None:
    response = api_client.get("/api/measurements", params={"field": "field3"})

    assert response.status_code == 200
    assert response.json() == []


def test_metrics_without_data_returns_not_found(api_client) -> None:
    response = api_client.get("/api/measurements/metrics", params={"start_date": "2024-01-01"})

    assert response.status_code == 404
    assert response.json() == {"error": "No data found for the given filters."}


@pytest.mark.parametrize("path", ["/api/measurements", "/api/measurements/metrics"])
@pytest.mark.parametrize(
    ("params", "message"),
    [
        ({"field": "field9"}, "Invalid field. Allowed: field1, field2, field3"),
        ({"start_date": "2024-13-01"}, "Invalid date format. Use YYYY-MM-DD."),
        ({"end_date": "2024-02-30"}, "Invalid date format. Use YYYY-MM-DD."),
        ({"start_date": "2024-05-02", "end_date": "2024-05-01"}, "start_date must be <= end_date."),
    ],
)
def test_validation_errors_return_bad_request(api_client, path: str, params, message: str) -> None:
    response = api_client.get(path, params=params)

    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_non_integer_limit_returns_bad_request(api_client) -> None:
    response = api_client.get("/api/measurements", params={"limit": "lots"})

    assert response.status_code == 400
    body = response.json()
    assert set(body) == {"error"}
    assert "limit" in body["error"]


class FailingStore:
    name = "failing"

    def find_series(self, query, limit):
        raise StoreError("server selection timed out")

    def summarize(self, query):
        raise StoreError("server selection timed out")

    def close(self) -> None:
        pass


@pytest.mark.parametrize("path", ["/api/measurements", "/api/measurements/metrics"])
def test_store_failure_returns_server_error_with_details(monkeypatch, path: str) -> None:
    _install_service(monkeypatch, MeasurementService(store=FailingStore()))

    with TestClient(create_app()) as client:
        response = client.get(path)

    assert response.status_code == 500
    assert response.json() == {"error": "Server error", "details": "server selection timed out"}


def test_repeated_queries_are_identical(api_client, collection) -> None:
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    _seed(collection, [Measurement(timestamp=moment, field1=1.0), Measurement(timestamp=moment, field1=2.0)])

    first = api_client.get("/api/measurements")
    second = api_client.get("/api/measurements")

    assert first.content == second.content


def test_health_and_root(api_client) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_dashboard_renders_field_choices(api_client) -> None:
    response = api_client.get("/ui")

    assert response.status_code == 200
    assert 'value="field1" selected' in response.text
    assert "field3" in response.text
    assert "/static/dashboard.js" in response.text


class BrokenStore:
    name = "broken"

    def find_series(self, query, limit):
        raise RuntimeError("cursor decoding blew up")

    def summarize(self, query):
        raise RuntimeError("cursor decoding blew up")

    def close(self) -> None:
        pass


@pytest.mark.parametrize("path", ["/api/measurements", "/api/measurements/metrics"])
def test_unexpected_failure_returns_json_server_error(monkeypatch, path: str) -> None:
    _install_service(monkeypatch, MeasurementService(store=BrokenStore()))

    with TestClient(create_app(), raise_server_exceptions=False) as client:
        response = client.get(path)

    assert response.status_code == 500
    assert response.headers["content-type"] == "application/json"
    assert response.json() == {"error": "Server error", "details": "cursor decoding blew up"}


class DocumentsOnlyCollection:
    name = "measurements"

    def __init__(self, documents) -> None:
        self.documents = documents

    def create_index(self, keys) -> str:
        return "timestamp_1"

    def find(self, match, projection):
        return self

    def sort(self, key, direction):
        return self

    def limit(self, value):
        return self

    def __iter__(self):
        return iter(self.documents)


def test_mongo_document_without_timestamp_returns_json_server_error(monkeypatch) -> None:
    store = MongoMeasurementStore(DocumentsOnlyCollection([{"field1": 3}]))
    _install_service(monkeypatch, MeasurementService(store=store))

    with TestClient(create_app()) as client:
        response = client.get("/api/measurements")

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Server error"
    assert "timestamp" in body["details"]


def test_metrics_keep_integer_extremes(api_client, collection) -> None:
    _seed(collection, [Measurement(timestamp=datetime(2024, 1, 1, 12, tzinfo=timezone.utc), field2=42)])

    response = api_client.get("/api/measurements/metrics", params={"field": "field2"})

    assert response.status_code == 200
    assert '"min":42,' in response.text
    assert '"max":42,' in response.text
    body = response.json()
    assert isinstance(body["min"], int)
    assert isinstance(body["max"], int)


def test_metrics_keep_fractional_extremes(api_client, collection) -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    _seed(
        collection,
        [
            Measurement(timestamp=base, field1=1.5),
            Measurement(timestamp=base + timedelta(hours=1), field1=2),
        ],
    )

    body = api_client.get("/api/measurements/metrics").json()

    assert body["min"] == 1.5
    assert isinstance(body["max"], int)
    assert body["avg"] == 1.75
