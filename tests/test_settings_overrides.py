from __future__ import annotations

from typing import Iterable

import pytest

from datastore.mock_measurements import MockMeasurementCollection
from services import measurements
from services.measurements import build_default_service, build_default_store
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def fresh_caches() -> Iterable[None]:
    caches = (get_settings, build_default_service)
    _clear_caches(caches)
    yield
    _clear_caches(caches)


def test_defaults_apply_without_environment(monkeypatch) -> None:
    for name in (
        "MONGO_URI",
        "MONGO_DB_NAME",
        "MONGO_COLLECTION",
        "MONGO_TIMEOUT_MS",
        "MOCK_MEASUREMENTS_PATH",
        "API_HOST",
        "API_PORT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.mongo_uri is None
    assert settings.mongo_db_name == "sensors"
    assert settings.mongo_collection == "measurements"
    assert settings.mongo_timeout_ms == 5000
    assert settings.mock_measurements_path == "./tmp/measurements.json"
    assert settings.api_host == "0.0.0.0"
    assert settings.api_port == 8000
    assert settings.log_level == "INFO"


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    data_path = tmp_path / "measurements.json"
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.setenv("MONGO_COLLECTION", "readings")
    monkeypatch.setenv("MOCK_MEASUREMENTS_PATH", str(data_path))
    monkeypatch.setenv("API_PORT", "9100")
    monkeypatch.setenv("MONGO_TIMEOUT_MS", "-1")
    monkeypatch.setenv("LOG_LEVEL", " debug ")

    settings = get_settings()
    service = build_default_service()

    assert settings.api_port == 9100
    assert settings.mongo_timeout_ms == 5000
    assert settings.log_level == "DEBUG"
    assert isinstance(service.store, MockMeasurementCollection)
    assert service.store.name == "readings"
    assert service.store.persistence_path == data_path
    assert build_default_service() is service


def test_mongo_uri_selects_mongo_store(monkeypatch) -> None:
    calls = []

    def fake_connect(uri, db_name, collection_name, timeout_ms):
        calls.append((uri, db_name, collection_name, timeout_ms))
        return "mongo-store"

    monkeypatch.setenv("MONGO_URI", "mongodb://db.example:27017")
    monkeypatch.setenv("MONGO_DB_NAME", "plant")
    monkeypatch.setenv("MONGO_TIMEOUT_MS", "250")
    monkeypatch.delenv("MONGO_COLLECTION", raising=False)
    monkeypatch.setattr(measurements, "connect_mongo_store", fake_connect)

    store = build_default_store()

    assert store == "mongo-store"
    assert calls == [("mongodb://db.example:27017", "plant", "measurements", 250)]
