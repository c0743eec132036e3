# Copyright (c) Syntropy Systems
"""reval dashboard - FastAPI server with Jinja2 templates and a JSON API."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Optional, Protocol, cast

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

import reval
from reval.config import get_db_path, require_reval_dir
from reval.db import (
    delete_eval,
    get_connection,
    get_eval,
    get_evals,
    get_executions,
    update_eval,
)
from reval.models.db import EvalRecord, ExecutionRecord
from reval.report import VariantSummary, format_accuracy, format_ms, summarize, variant_label

if TYPE_CHECKING:
    import sqlite3

# Setup paths
DASHBOARD_DIR = Path(__file__).parent
TEMPLATES_DIR = DASHBOARD_DIR / "templates"
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR

app = FastAPI(title="reval dashboard", docs_url=None, redoc_url=None)
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def get_db() -> sqlite3.Connection:
    """Get a database connection."""
    reval_dir = require_reval_dir()
    db_path = get_db_path(reval_dir)
    return get_connection(db_path)


class EvalUpdate(BaseModel):
    """Fields that can be changed on a saved eval."""

    name: Optional[str] = None
    notes: Optional[str] = None


class EvalDetail(BaseModel):
    """An eval with its executions and per-variant summary."""

    eval: EvalRecord
    summary: list[VariantSummary]
    executions: list[ExecutionRecord]


def format_time_ago(timestamp: str | None) -> str:
    """Format timestamp as time ago."""
    if not timestamp:
        return "-"
    try:
        ts = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        now = datetime.now(timezone.utc)
        seconds = int((now - ts).total_seconds())

        if seconds < SECONDS_PER_MINUTE:
            return f"{seconds}s ago"
        if seconds < SECONDS_PER_HOUR:
            return f"{seconds // SECONDS_PER_MINUTE}m ago"
        if seconds < SECONDS_PER_DAY:
            return f"{seconds // SECONDS_PER_HOUR}h ago"
        return f"{seconds // SECONDS_PER_DAY}d ago"
    except ValueError:
        return "-"


def to_json_text(value: object) -> str:
    """Compact JSON for table cells; strings are shown as-is."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


class _TemplateEnv(Protocol):
    filters: dict[str, object]
    globals: dict[str, object]


# Add custom filters to Jinja2
templates_env = cast("_TemplateEnv", templates.env)
templates_env.filters["format_ms"] = format_ms
templates_env.filters["format_accuracy"] = format_accuracy
templates_env.filters["format_time_ago"] = format_time_ago
templates_env.filters["variant_label"] = variant_label
templates_env.filters["json_text"] = to_json_text

# Add global template variables
templates_env.globals["version"] = reval.__version__


def _require_eval(conn: sqlite3.Connection, eval_id: str) -> EvalRecord:
    record = get_eval(conn, eval_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Eval {eval_id} not found")
    return record


def _eval_detail(conn: sqlite3.Connection, eval_id: str) -> EvalDetail:
    record = _require_eval(conn, eval_id)
    executions = get_executions(conn, eval_id)
    return EvalDetail(eval=record, summary=summarize(executions), executions=executions)


# HTML pages

@app.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    limit: Annotated[int, Query(le=500)] = 100,
) -> HTMLResponse:
    """Render the eval list."""
    conn = get_db()
    try:
        evals = get_evals(conn, limit=limit)
        return templates.TemplateResponse(request, "index.html", {"evals": evals})
    finally:
        conn.close()


@app.get("/eval/{eval_id}", response_class=HTMLResponse)
async def eval_page(request: Request, eval_id: str) -> HTMLResponse:
    """Render an eval's summary and executions."""
    conn = get_db()
    try:
        detail = _eval_detail(conn, eval_id)
        return templates.TemplateResponse(
            request,
            "eval.html",
            {
                "eval": detail.eval,
                "summary": detail.summary,
                "executions": detail.executions,
            },
        )
    finally:
        conn.close()


# JSON API

@app.get("/api/evals", response_model=list[EvalRecord])
async def list_evals(limit: Annotated[int, Query(le=500)] = 100) -> list[EvalRecord]:
    conn = get_db()
    try:
        return get_evals(conn, limit=limit)
    finally:
        conn.close()


@app.get("/api/evals/{eval_id}", response_model=EvalDetail)
async def read_eval(eval_id: str) -> EvalDetail:
    conn = get_db()
    try:
        return _eval_detail(conn, eval_id)
    finally:
        conn.close()


@app.patch("/api/evals/{eval_id}", response_model=EvalRecord)
async def patch_eval(eval_id: str, request: EvalUpdate) -> EvalRecord:
    """Rename an eval or replace its notes."""
    conn = get_db()
    try:
        _ = _require_eval(conn, eval_id)
        update_eval(conn, eval_id, name=request.name, notes=request.notes)
        return _require_eval(conn, eval_id)
    finally:
        conn.close()


@app.delete("/api/evals/{eval_id}")
async def remove_eval(eval_id: str) -> dict[str, str]:
    """Delete an eval and its executions."""
    conn = get_db()
    try:
        _ = _require_eval(conn, eval_id)
        delete_eval(conn, eval_id)
        return {"message": f"Eval {eval_id} deleted"}
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Create and return the FastAPI app."""
    return app
