"""FastAPI application exposing the tracker session to a host editor and dashboard."""

from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, AsyncIterator, Dict, Literal, Optional, Union

from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .classifier import ProjectClassifier, null_classifier
from .config import CollectorSettings
from .db import StateStore
from .models import (
    ActivitySignal,
    DocumentChanged,
    EditorFocusChanged,
    SelectionChanged,
    TerminalActivated,
    WindowFocusGained,
    WorkspaceFolder,
    WorkspaceFoldersChanged,
)
from .paths import get_db_path
from .session import TrackerSession

logger = logging.getLogger(__name__)


class SessionRunner:
    """Run the tracker session's tick loop in a background thread."""

    def __init__(self, session: TrackerSession) -> None:
        self._session = session
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            if self._session.closed:
                logger.warning("Tracker session is closed; not starting the loop.")
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._session.run_until_stopped,
                args=(stop_event,),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("Tracker background thread started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Tracker background thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class FolderPayload(_Payload):
    name: str
    path: str


class DocumentChangedPayload(_Payload):
    type: Literal["document_changed"]
    document_path: Optional[str] = None
    language_id: Optional[str] = None

    def to_signal(self) -> ActivitySignal:
        return DocumentChanged(_optional_path(self.document_path), self.language_id)


class SelectionChangedPayload(_Payload):
    type: Literal["selection_changed"]

    def to_signal(self) -> ActivitySignal:
        return SelectionChanged()


class EditorFocusChangedPayload(_Payload):
    type: Literal["editor_focus_changed"]
    document_path: Optional[str] = None
    language_id: Optional[str] = None

    def to_signal(self) -> ActivitySignal:
        return EditorFocusChanged(_optional_path(self.document_path), self.language_id)


class WindowFocusGainedPayload(_Payload):
    type: Literal["window_focus_gained"]

    def to_signal(self) -> ActivitySignal:
        return WindowFocusGained()


class TerminalActivatedPayload(_Payload):
    type: Literal["terminal_activated"]

    def to_signal(self) -> ActivitySignal:
        return TerminalActivated()


class WorkspaceFoldersChangedPayload(_Payload):
    type: Literal["workspace_folders_changed"]
    folders: list[FolderPayload] = Field(default_factory=list)

    def to_signal(self) -> ActivitySignal:
        return WorkspaceFoldersChanged(
            tuple(WorkspaceFolder(folder.name, Path(folder.path)) for folder in self.folders)
        )


SignalPayload = Annotated[
    Union[
        DocumentChangedPayload,
        SelectionChangedPayload,
        EditorFocusChangedPayload,
        WindowFocusGainedPayload,
        TerminalActivatedPayload,
        WorkspaceFoldersChangedPayload,
    ],
    Field(discriminator="type"),
]

_SIGNAL_ADAPTER: TypeAdapter[Any] = TypeAdapter(SignalPayload)


class DeletionRequest(_Payload):
    project: str
    date: str


class ResetRequest(_Payload):
    confirm: bool = False


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[CollectorSettings] = None,
    classifier: ProjectClassifier = null_classifier,
    session: Optional[TrackerSession] = None,
) -> FastAPI:
    """Instantiate the FastAPI application around a tracker session."""
    resolved_settings = settings or (session.settings if session else CollectorSettings())
    if session is None:
        store = StateStore(Path(db_path or get_db_path()))
        session = TrackerSession(store, resolved_settings, classifier=classifier)
    runner = SessionRunner(session)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        runner.start()
        try:
            yield
        finally:
            runner.stop()
            session.close()

    app = FastAPI(title="CodeTime", version="0.3.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session = session
    app.state.session_runner = runner

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        current = request.app.state.session
        payload = current.status.to_dict()
        payload.update(
            {
                "collector_running": request.app.state.session_runner.is_running(),
                "database_path": str(current.store.path),
                "tick_seconds": resolved_settings.tick_interval.total_seconds(),
                "idle_seconds": resolved_settings.idle_threshold.total_seconds(),
            }
        )
        return payload

    @app.get("/api/snapshot")
    def snapshot(request: Request) -> Dict[str, Any]:
        return request.app.state.session.snapshot().to_dict()

    @app.get("/api/summary")
    def summary(
        request: Request, days: int = Query(7, ge=1, le=366)
    ) -> Dict[str, Any]:
        return request.app.state.session.range_report(days).to_dict()

    @app.post("/api/signals")
    def post_signal(
        request: Request, payload: Dict[str, Any] = Body(...)
    ) -> Dict[str, Any]:
        try:
            parsed = _SIGNAL_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        return request.app.state.session.handle_signal(parsed.to_signal()).to_dict()

    @app.post("/api/history/delete")
    def delete_history(payload: DeletionRequest, request: Request) -> Dict[str, Any]:
        project = payload.project.strip()
        if not project:
            raise HTTPException(status_code=400, detail="project is required")
        date_key = _parse_date_key(payload.date)
        return request.app.state.session.delete_entry(project, date_key).to_dict()

    @app.post("/api/reset")
    def reset(payload: ResetRequest, request: Request) -> Dict[str, Any]:
        if not payload.confirm:
            raise HTTPException(status_code=400, detail="reset requires confirm=true")
        return request.app.state.session.reset_all().to_dict()

    return app


def _parse_date_key(value: str) -> str:
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
    return parsed.strftime("%Y-%m-%d")


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None
