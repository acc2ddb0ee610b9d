"""Idle/active detection and the "what is being worked on" context."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from .models import (
    ActivitySignal,
    DocumentChanged,
    EditorFocusChanged,
    Project,
    SelectionChanged,
    TerminalActivated,
    WindowFocusGained,
    WorkspaceFolder,
    WorkspaceFoldersChanged,
)

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "unknown"


def resolve_project(
    folders: Sequence[WorkspaceFolder],
    document_path: Optional[Path] = None,
) -> Optional[Project]:
    """Pick the project a document belongs to.

    The deepest folder containing the document wins; a document outside every
    folder is attributed to the first folder. Without folders there is no
    project.
    """
    if not folders:
        return None
    if document_path is not None:
        containing = [folder for folder in folders if folder.contains(Path(document_path))]
        if containing:
            folder = max(containing, key=lambda item: len(item.path.parts))
            return Project(id=folder.name, name=folder.name, root=folder.path)
    fallback = folders[0]
    return Project(id=fallback.name, name=fallback.name, root=fallback.path)


class ActivityTracker:
    """Tracks the last activity timestamp and the current project/language."""

    def __init__(self, now_ms: int, folders: Sequence[WorkspaceFolder] = ()) -> None:
        self.last_activity_at = now_ms
        self.workspace_folders: tuple[WorkspaceFolder, ...] = tuple(folders)
        self.current_project: Optional[Project] = resolve_project(self.workspace_folders)
        self.current_language: str = DEFAULT_LANGUAGE
        self._last_document: Optional[Path] = None

    @property
    def workspace_open(self) -> bool:
        return bool(self.workspace_folders)

    @property
    def current_project_id(self) -> Optional[str]:
        return self.current_project.id if self.current_project else None

    def record_activity(self, now_ms: int) -> None:
        self.last_activity_at = now_ms

    def update_context(self, project: Optional[Project], language: Optional[str]) -> None:
        self.current_project = project
        if language:
            self.current_language = language

    def is_active(self, now_ms: int, threshold_ms: int) -> bool:
        if not self.workspace_open:
            return False
        return now_ms - self.last_activity_at <= threshold_ms

    def handle(self, signal: ActivitySignal, now_ms: int) -> bool:
        """Apply an inbound signal. Returns whether the current project changed."""
        previous = self.current_project_id

        if isinstance(signal, (DocumentChanged, EditorFocusChanged)):
            document = signal.document_path
            self._last_document = Path(document) if document is not None else None
            project = resolve_project(self.workspace_folders, self._last_document)
            self.update_context(project, signal.language_id)
            self.record_activity(now_ms)
        elif isinstance(signal, (SelectionChanged, WindowFocusGained, TerminalActivated)):
            self.record_activity(now_ms)
        elif isinstance(signal, WorkspaceFoldersChanged):
            self.workspace_folders = tuple(signal.folders)
            project = resolve_project(self.workspace_folders, self._last_document)
            self.update_context(project, None)
            logger.info(
                "Workspace folders changed: %s",
                ", ".join(folder.name for folder in self.workspace_folders) or "(none)",
            )
        else:
            raise TypeError(f"Unsupported activity signal: {signal!r}")

        return self.current_project_id != previous
