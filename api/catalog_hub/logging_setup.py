# -*- coding: utf-8 -*-
from __future__ import annotations
import logging, logging.handlers
from pathlib import Path

LOG_FILE_NAME = "catalog_hub.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# loggers that do not propagate to root under uvicorn
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")


def _has_file_handler(lg: logging.Logger) -> bool:
    return any(
        str(getattr(h, "baseFilename", "")).endswith(LOG_FILE_NAME) for h in lg.handlers
    )


def setup_logging(settings) -> Path:
    """
    Rotating file log at LOG_DIR/catalog_hub.log (5 MB x 3), plus stderr when
    LOG_CONSOLE is set. Safe to call more than once.
    """
    log_dir = Path(settings.LOG_DIR).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    fmt = logging.Formatter(LOG_FORMAT)

    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
    )
    handler.setFormatter(fmt)
    handler.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    if not _has_file_handler(root):
        root.addHandler(handler)
        if getattr(settings, "LOG_CONSOLE", False):
            console = logging.StreamHandler()
            console.setFormatter(fmt)
            root.addHandler(console)

    for name in SERVER_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        if not _has_file_handler(lg):
            lg.addHandler(handler)

    return log_path
