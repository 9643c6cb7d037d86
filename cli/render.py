from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_series(field: str, rows: List[Dict[str, Any]]) -> None:
    echo_heading(f"Series ({field})")
    if not rows:
        typer.echo("No measurements matched.")
        return
    for row in rows:
        typer.echo(f"{row.get('timestamp')}  {row.get(field)}")
    typer.echo()
    typer.echo(f"{len(rows)} row(s)")


def render_metrics(field: str, payload: Dict[str, Any]) -> None:
    echo_heading(f"Metrics ({field})")
    echo_key_values(
        [
            ("avg", payload.get("avg")),
            ("min", payload.get("min")),
            ("max", payload.get("max")),
            ("stdDev", payload.get("stdDev")),
            ("count", payload.get("count")),
        ]
    )
