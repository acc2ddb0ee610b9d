"""Framework classification capability.

Framework discovery itself lives outside the tracker: anything that maps a
project root to a set of labels can be injected into the session. The
implementations here cover the host-supplied and the "nothing detected" cases.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping, Protocol

from .normalization import UNKNOWN_LABEL


class ProjectClassifier(Protocol):
    def __call__(self, root_path: Path) -> set[str]:
        ...


def null_classifier(root_path: Path) -> set[str]:
    return set()


class StaticClassifier:
    """Return labels from a fixed mapping keyed by folder name or root path."""

    def __init__(self, labels: Mapping[str, Iterable[str]]) -> None:
        self._labels = {key: frozenset(values) for key, values in labels.items()}

    def __call__(self, root_path: Path) -> set[str]:
        root = Path(root_path)
        found = self._labels.get(str(root)) or self._labels.get(root.name)
        return set(found) if found else set()


def framework_labels(classifier: ProjectClassifier, root_path: Path) -> list[str]:
    """Classify a root, falling back to ``["Unknown"]`` when nothing is detected."""
    labels = sorted(label for label in classifier(root_path) if label)
    return labels or [UNKNOWN_LABEL]
