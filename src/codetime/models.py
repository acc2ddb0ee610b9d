"""Domain models for tracked coding activity."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class WorkspaceFolder:
    """An open workspace folder; its name doubles as the project key."""

    name: str
    path: Path

    def contains(self, document_path: Path) -> bool:
        try:
            document_path.relative_to(self.path)
        except ValueError:
            return False
        return True


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    root: Optional[Path] = None


@dataclass(frozen=True, slots=True)
class HistoryRow:
    """One flattened (project, date) total for display."""

    project: str
    date: str
    ms: float

    def to_dict(self) -> dict[str, object]:
        return {"project": self.project, "date": self.date, "ms": self.ms}


# Inbound activity signals. The tracker only understands these variants.


@dataclass(frozen=True, slots=True)
class DocumentChanged:
    document_path: Optional[Path] = None
    language_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SelectionChanged:
    pass


@dataclass(frozen=True, slots=True)
class EditorFocusChanged:
    document_path: Optional[Path] = None
    language_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WindowFocusGained:
    pass


@dataclass(frozen=True, slots=True)
class TerminalActivated:
    pass


@dataclass(frozen=True, slots=True)
class WorkspaceFoldersChanged:
    folders: tuple[WorkspaceFolder, ...] = ()


ActivitySignal = Union[
    DocumentChanged,
    SelectionChanged,
    EditorFocusChanged,
    WindowFocusGained,
    TerminalActivated,
    WorkspaceFoldersChanged,
]
