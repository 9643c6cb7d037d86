from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_metrics, render_series
from models.records import DEFAULT_FIELD


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Query the measurement API from the command line.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

_FIELD_OPTION = typer.Option(
    None, "--field", "-f", help="Field to query: field1, field2 or field3 (default field1)."
)
_START_OPTION = typer.Option(None, "--start-date", "-s", help="Inclusive start day, YYYY-MM-DD.")
_END_OPTION = typer.Option(None, "--end-date", "-e", help="Inclusive end day, YYYY-MM-DD.")


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Measurement API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP response.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("series")
def series_command(
    ctx: typer.Context,
    field: Optional[str] = _FIELD_OPTION,
    start_date: Optional[str] = _START_OPTION,
    end_date: Optional[str] = _END_OPTION,
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", help="Maximum rows to fetch (server default 500, capped at 5000)."
    ),
) -> None:
    """Print the time-ordered values of a field."""
    state = _get_state(ctx)
    rows = state.client.get_series(field, start_date, end_date, limit)
    render_series(field or DEFAULT_FIELD.value, rows)


@app.command("metrics")
def metrics_command(
    ctx: typer.Context,
    field: Optional[str] = _FIELD_OPTION,
    start_date: Optional[str] = _START_OPTION,
    end_date: Optional[str] = _END_OPTION,
) -> None:
    """Print average, min, max, standard deviation and count for a field."""
    state = _get_state(ctx)
    payload = state.client.get_metrics(field, start_date, end_date)
    render_metrics(field or DEFAULT_FIELD.value, payload)
