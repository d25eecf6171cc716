"""
Adagio HTTP API: FastAPI surface over the engine.

Every endpoint is a thin call into the Engine; the engine, its scheduler
jobs and these handlers share one event loop.
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .engine import Engine, PendingLog
from .errors import (
    AdagioError,
    InvalidInputError,
    LogEntryNotFoundError,
    NothingPendingError,
    SessionNotFoundError,
)
from .insights import TimeFilter, format_time
from .log import logger, recent_logs
from .models import iso_to_ms


# ============ Request / Response Models ============

class AccountRequest(BaseModel):
    account_id: Optional[str] = None
    is_premium: bool = False


class VisibilityRequest(BaseModel):
    visible: bool


class SessionCreateRequest(BaseModel):
    project_label: str


class StartTimeRequest(BaseModel):
    start_time: str = Field(..., description="ISO-8601 timestamp of the new work interval start")


class TaskRequest(BaseModel):
    text: str


class ConfirmRequest(BaseModel):
    summary: Optional[str] = None


class ManualEntryRequest(BaseModel):
    start_time: str
    end_time: str
    project_label: Optional[str] = None
    summary: Optional[str] = None
    allow_short: bool = False


class EntryUpdateRequest(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    project_label: Optional[str] = None
    summary: Optional[str] = None


class SettingsUpdateRequest(BaseModel):
    work_minutes: Optional[int] = None
    short_break_minutes: Optional[int] = None
    long_break_minutes: Optional[int] = None
    sessions_per_set: Optional[int] = None


class LogRecord(BaseModel):
    """Single server log record."""
    timestamp: str
    level: str
    logger: str
    message: str


class LogsResponse(BaseModel):
    logs: List[LogRecord]
    count: int


def _parse_time(value: Optional[str], field: str) -> Optional[int]:
    if value is None:
        return None
    ms = iso_to_ms(value)
    if ms is None:
        raise InvalidInputError(f"{field} is not a valid ISO-8601 timestamp")
    return ms


def _close_result(result) -> dict:
    if isinstance(result, PendingLog):
        return {"entry": None, "pending": result.to_dict()}
    return {"entry": result.to_dict() if result else None, "pending": None}


def _session_view(session) -> dict:
    data = session.to_dict()
    data["display"] = format_time(session.seconds)
    return data


def create_app(engine: Engine, scheduler=None) -> FastAPI:
    """Build the app. The lifespan loads local state and runs the scheduler."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine.load()
        if scheduler is not None and not scheduler.running:
            scheduler.start()
            logger.info("Scheduler started")
        yield
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        engine.sync.local.close()

    app = FastAPI(
        title="Adagio",
        description="Focus timer engine with local-first storage and synced history",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AdagioError)
    async def adagio_error_handler(request: Request, exc: AdagioError):
        if isinstance(exc, (SessionNotFoundError, LogEntryNotFoundError)):
            status = 404
        elif isinstance(exc, NothingPendingError):
            status = 409
        elif isinstance(exc, InvalidInputError):
            status = 400
        else:
            logger.error(f"Unhandled engine error on {request.url.path}: {exc}")
            status = 500
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    # ============ State & Account ============

    @app.get("/api/state")
    async def get_state():
        return engine.state()

    @app.post("/api/account")
    async def set_account(request: AccountRequest):
        engine.set_account(request.account_id, request.is_premium)
        return engine.state()["account"]

    @app.post("/api/visibility")
    async def visibility(request: VisibilityRequest):
        engine.on_visibility_change(request.visible)
        return {"sessions": [_session_view(s) for s in engine.sessions]}

    # ============ Sessions ============

    @app.get("/api/sessions")
    async def list_sessions():
        return {"sessions": [_session_view(s) for s in engine.sessions]}

    @app.post("/api/sessions", status_code=201)
    async def add_session(request: SessionCreateRequest):
        session = engine.add_session(request.project_label)
        return _session_view(session)

    @app.post("/api/sessions/{session_id}/start")
    async def start_session(session_id: str):
        return _session_view(engine.start(session_id))

    @app.post("/api/sessions/{session_id}/pause")
    async def pause_session(session_id: str):
        return _session_view(engine.pause(session_id))

    @app.post("/api/sessions/{session_id}/reset")
    async def reset_session(session_id: str):
        return _session_view(engine.reset_session(session_id))

    @app.post("/api/sessions/{session_id}/end")
    async def end_work_interval(session_id: str):
        return _close_result(engine.end_work_interval(session_id))

    @app.post("/api/sessions/{session_id}/skip")
    async def skip_interval(session_id: str):
        return _close_result(engine.skip_interval(session_id))

    @app.delete("/api/sessions/{session_id}")
    async def remove_session(session_id: str):
        return _close_result(engine.remove(session_id))

    @app.patch("/api/sessions/{session_id}/start-time")
    async def edit_start_time(session_id: str, request: StartTimeRequest):
        start_ms = _parse_time(request.start_time, "start_time")
        return _session_view(engine.edit_start_time(session_id, start_ms))

    @app.get("/api/sessions/{session_id}/summary")
    async def suggest_summary(session_id: str, description: Optional[str] = None):
        return {"summary": await engine.summarize_session(session_id, description)}

    # ============ Tasks ============

    @app.post("/api/sessions/{session_id}/tasks", status_code=201)
    async def add_task(session_id: str, request: TaskRequest):
        return engine.add_task(session_id, request.text).to_dict()

    @app.post("/api/sessions/{session_id}/tasks/{task_id}/toggle")
    async def toggle_task(session_id: str, task_id: str):
        return engine.toggle_task(session_id, task_id).to_dict()

    @app.delete("/api/sessions/{session_id}/tasks/{task_id}")
    async def delete_task(session_id: str, task_id: str):
        engine.delete_task(session_id, task_id)
        return {"deleted": task_id}

    # ============ Confirmation ============

    @app.get("/api/pending")
    async def get_pending():
        pending = engine.pending
        return {"pending": pending.to_dict() if pending else None}

    @app.post("/api/pending/confirm")
    async def confirm_pending(request: ConfirmRequest):
        return engine.confirm_pending(request.summary).to_dict()

    @app.post("/api/pending/discard")
    async def discard_pending():
        engine.discard_pending()
        return {"discarded": True}

    @app.post("/api/pending/cancel")
    async def cancel_pending():
        return _session_view(engine.cancel_pending())

    # ============ Log ============

    @app.get("/api/log")
    async def get_log():
        return {
            "entries": [e.to_dict() for e in engine.log],
            "exceedsFreeLimit": engine.exceeds_free_limit,
        }

    @app.post("/api/log", status_code=201)
    async def add_manual_entry(request: ManualEntryRequest):
        entry = engine.add_manual_entry(
            _parse_time(request.start_time, "start_time"),
            _parse_time(request.end_time, "end_time"),
            project_label=request.project_label,
            summary=request.summary,
            allow_short=request.allow_short,
        )
        return entry.to_dict()

    @app.patch("/api/log/{entry_id}")
    async def update_log_entry(entry_id: str, request: EntryUpdateRequest):
        entry = engine.update_log_entry(
            entry_id,
            start_ms=_parse_time(request.start_time, "start_time"),
            end_ms=_parse_time(request.end_time, "end_time"),
            project_label=request.project_label,
            summary=request.summary,
        )
        return entry.to_dict()

    @app.delete("/api/log/{entry_id}")
    async def delete_log_entry(entry_id: str):
        entry = engine.delete_log_entry(entry_id)
        return {"deleted": entry.to_dict(), "undoSeconds": engine.undo.grace_seconds}

    @app.post("/api/log/undo")
    async def undo_delete():
        entry = engine.undo_delete()
        if entry is None:
            raise HTTPException(status_code=409, detail="Nothing to undo")
        return entry.to_dict()

    # ============ Settings & Recent Projects ============

    @app.get("/api/settings")
    async def get_settings():
        return engine.settings.to_dict()

    @app.patch("/api/settings")
    async def update_settings(request: SettingsUpdateRequest):
        changes = request.model_dump(exclude_none=True)
        return engine.update_settings(**changes).to_dict()

    @app.get("/api/recent")
    async def get_recent():
        return {"recentProjects": engine.recent_projects}

    @app.delete("/api/recent/{label}")
    async def remove_recent(label: str):
        if not engine.remove_recent_project(label):
            raise HTTPException(status_code=404, detail=f"'{label}' is not a recent project")
        return {"recentProjects": engine.recent_projects}

    @app.post("/api/wipe")
    async def wipe_all():
        engine.wipe_all()
        return {"wiped": True}

    # ============ Insights & Generated Text ============

    @app.get("/api/insights")
    async def get_insights(
        period: TimeFilter = TimeFilter.TODAY,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ):
        entries = engine.entries_for_period(period, start, end)
        return {
            "period": period.value,
            "stats": engine.insights(period, start, end).to_dict(),
            "projects": [t.to_dict() for t in engine.project_totals(period, start, end)],
            "entries": [e.to_dict() for e in entries],
        }

    @app.get("/api/summaries/period")
    async def summarize_period(
        period: TimeFilter = TimeFilter.TODAY,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ):
        return {"periodSummary": await engine.summarize_period(period, start, end)}

    @app.get("/api/quote")
    async def motivational_quote():
        return (await engine.motivational_quote()).to_dict()

    # ============ Server Logs ============

    @app.get("/api/logs/recent", response_model=LogsResponse)
    async def get_recent_logs(limit: int = 50):
        """Recent engine logs from the circular buffer (max 100)."""
        logs = recent_logs(min(limit, 100))
        return {"logs": logs, "count": len(logs)}

    return app
