from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the measurement API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_series(
        self,
        field: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = _query_params(field, start_date, end_date)
        if limit is not None:
            params["limit"] = str(limit)
        payload = self._get("/api/measurements", params)
        if not isinstance(payload, list):
            raise typer.BadParameter("Unexpected response payload when fetching measurements.")
        return payload

    def get_metrics(
        self,
        field: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = self._get("/api/measurements/metrics", _query_params(field, start_date, end_date))
        if not isinstance(payload, dict):
            raise typer.BadParameter("Unexpected response payload when fetching metrics.")
        return payload

    def _get(self, path: str, params: Dict[str, str]) -> Any:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        message: str | None = None
        try:
            data = exc.response.json()
            message = data.get("error")
            if data.get("details"):
                message = f"{message} ({data['details']})"
        except Exception:  # noqa: BLE001 - best effort parsing
            message = exc.response.text.strip()
        typer.secho(
            f"Request failed with status {exc.response.status_code}: {message or 'no detail provided.'}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)


def _query_params(
    field: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if field:
        params["field"] = field
    if start_date:
        params["start_date"] = start_date
    if end_date:
        params["end_date"] = end_date
    return params
