from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from models.records import DEFAULT_FIELD, MeasurementField
from services.query import DEFAULT_LIMIT, MAX_LIMIT


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

_CHART_TYPES = ("line", "bar")

router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "fields": [member.value for member in MeasurementField],
            "default_field": DEFAULT_FIELD.value,
            "chart_types": _CHART_TYPES,
            "default_limit": DEFAULT_LIMIT,
            "max_limit": MAX_LIMIT,
        },
    )
