"""FastAPI application that receives span events and reports on them."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from .config import load_projects_config
from .db import (
    DuplicateEventError,
    browser_durations_by_title,
    count_events,
    database_connection,
    insert_event,
)
from .models import EVENT_TYPE, ActiveSpanEvent, parse_timestamp
from .paths import get_db_path
from .projects import classify_projects, drill_down_rows
from .reporting import (
    drill_down_payload,
    render_drill_down_markdown,
    render_stats_markdown,
    stats_payload,
)

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 1 << 20


def validate_event(event: ActiveSpanEvent) -> None:
    """Raise ``ValueError`` when ``event`` is not storable."""
    if not event.type:
        raise ValueError("type is required")
    if not event.source:
        raise ValueError("source is required")
    if not event.event_id:
        raise ValueError("event_id is required")
    if event.schema_version == 0:
        raise ValueError("schema_version is required")
    if not event.start_ts or not event.end_ts:
        raise ValueError("start_ts and end_ts are required")
    for field_name in ("start_ts", "end_ts"):
        try:
            parse_timestamp(getattr(event, field_name))
        except ValueError as exc:
            raise ValueError(f"{field_name} must be RFC3339") from exc

    if event.type != EVENT_TYPE:
        raise ValueError("unknown type")
    if not event.url:
        raise ValueError(f"url is required for {EVENT_TYPE}")
    if not event.title:
        raise ValueError(f"title is required for {EVENT_TYPE}")


def parse_event(body: bytes) -> ActiveSpanEvent:
    try:
        event = ActiveSpanEvent.model_validate_json(body)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = f"{location}: {first['msg']}" if location else first["msg"]
        raise ValueError(message) from exc
    validate_event(event)
    return event


def _store_event(db_path: Path, event: ActiveSpanEvent, payload: str) -> None:
    with database_connection(db_path) as conn:
        insert_event(conn, event, payload)


def create_app(
    *,
    db_path: Optional[Path] = None,
    projects_path: Optional[Path] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())

    app = FastAPI(title="Devlog Browser Sink", version="0.1.0")
    app.state.db_path = resolved_db_path
    app.state.projects_path = projects_path

    @app.post("/events")
    async def ingest(request: Request) -> Dict[str, Any]:
        body = await request.body()
        if len(body) > MAX_BODY_BYTES:
            raise HTTPException(status_code=413, detail="body too large")
        try:
            event = parse_event(body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        try:
            await run_in_threadpool(
                _store_event, request.app.state.db_path, event, body.decode("utf-8")
            )
        except DuplicateEventError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        logger.info("Stored %s %s (%s)", event.type, event.event_id, event.url)
        return {"status": "ok", "event_id": event.event_id}

    @app.get("/stats")
    def stats(
        request: Request,
        day: Optional[str] = Query(
            default=None,
            alias="date",
            description="Local date in YYYY-MM-DD format.",
        ),
        mode: str = Query(default="md", description="'md' or 'json'."),
        project: Optional[str] = Query(
            default=None, description="Project name to drill down into."
        ),
    ) -> Any:
        target = _parse_date(day)
        if mode not in ("md", "json"):
            raise HTTPException(status_code=400, detail="mode must be 'json' or 'md'")

        with database_connection(request.app.state.db_path) as conn:
            browser = browser_durations_by_title(conn, target)

        try:
            config = load_projects_config(request.app.state.projects_path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load projects config: %s", exc)
            raise HTTPException(
                status_code=500, detail="failed to load projects config"
            ) from exc

        if project:
            try:
                rows, total, exists = drill_down_rows(browser, config, project)
            except ValueError as exc:
                raise HTTPException(status_code=400, detail="invalid projects config") from exc
            if not exists or not rows:
                raise HTTPException(status_code=404, detail="not found")
            if mode == "md":
                return _markdown(render_drill_down_markdown(project, total, rows))
            return drill_down_payload(project, total, rows)

        try:
            totals, others = classify_projects(browser, config)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="invalid projects config") from exc
        if mode == "md":
            return _markdown(render_stats_markdown(totals, others))
        return stats_payload(target, browser, totals, others)

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            total = count_events(conn)
        return {
            "database_path": str(request.app.state.db_path),
            "event_count": total,
        }

    return app


def _parse_date(value: Optional[str]) -> date:
    if not value:
        raise HTTPException(
            status_code=400, detail="date is required (YYYY-MM-DD, local time)"
        )
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail="date must be YYYY-MM-DD (local time)"
        ) from exc


def _markdown(body: str) -> PlainTextResponse:
    return PlainTextResponse(body, media_type="text/markdown; charset=utf-8")
