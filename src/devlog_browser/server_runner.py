"""Helpers to launch the local event sink."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import SinkSettings
from .paths import get_db_path
from .webapp import create_app

logger = logging.getLogger(__name__)


def run_sink(
    *,
    settings: Optional[SinkSettings] = None,
    db_path: Optional[Path] = None,
    log_level: str = "info",
) -> None:
    """Serve the FastAPI sink until interrupted."""
    settings = settings or SinkSettings()
    app = create_app(
        db_path=db_path or get_db_path(),
        projects_path=settings.projects_path,
    )
    logger.info(
        "Sink listening on %s:%s, writing to %s",
        settings.host,
        settings.port,
        app.state.db_path,
    )
    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=log_level)
