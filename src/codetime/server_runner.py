"""Serve the tracker session over HTTP for an editor extension and its dashboard."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .classifier import ProjectClassifier, null_classifier
from .config import CollectorSettings
from .paths import get_db_path
from .webapp import create_app


def run_dashboard(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    db_path: Optional[Path] = None,
    settings: Optional[CollectorSettings] = None,
    classifier: ProjectClassifier = null_classifier,
    log_level: str = "info",
) -> None:
    """Open the ledger database and serve the tracker API with uvicorn.

    The session ticks on a background thread for as long as the server runs
    and flushes its working total to the ledger on shutdown.
    """
    app = create_app(
        db_path=db_path or get_db_path(),
        settings=settings or CollectorSettings(),
        classifier=classifier,
    )

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
