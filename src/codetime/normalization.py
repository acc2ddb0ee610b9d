"""Utilities to normalize editor language identifiers into display labels."""

from __future__ import annotations

import re
from typing import Optional

UNKNOWN_LABEL = "Unknown"

_LANGUAGE_LABELS: dict[str, str] = {
    "typescript": "TypeScript",
    "typescriptreact": "TypeScript",
    "javascript": "JavaScript",
    "javascriptreact": "JavaScript",
    "python": "Python",
    "go": "Go",
    "rust": "Rust",
    "c": "C",
    "cpp": "C++",
    "csharp": "C#",
    "java": "Java",
    "php": "PHP",
    "ruby": "Ruby",
    "swift": "Swift",
    "kotlin": "Kotlin",
    "dart": "Dart",
    "shellscript": "Shell",
    "shell": "Shell",
    "bash": "Shell",
    "zsh": "Shell",
    "json": "JSON",
    "yaml": "YAML",
    "yml": "YAML",
    "html": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "less": "LESS",
    "markdown": "Markdown",
    "md": "Markdown",
    "sql": "SQL",
    "dockerfile": "Dockerfile",
}

_WORD_START_PATTERN = re.compile(r"\b\w")


def normalize_language_label(language_id: Optional[str]) -> str:
    """Map a raw language identifier (``typescriptreact``) to a label (``TypeScript``)."""
    if not language_id:
        return UNKNOWN_LABEL
    known = _LANGUAGE_LABELS.get(language_id.lower())
    if known:
        return known
    return _WORD_START_PATTERN.sub(lambda match: match.group(0).upper(), language_id)
