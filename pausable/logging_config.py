"""Process-level logging for the interpreter worker and the HTTP API.

Library code only asks for named loggers (``pausable.*``, ``pausable_api.*``;
workflow code logs through ``workflow.logger``, which writes under
``temporalio.workflow``). The entry points attach handlers to the package
roots they host, so every module below a root shares one file and console
output:

    worker: pausable, temporalio  -> LOG_DIR/worker.log
    api:    pausable_api          -> LOG_DIR/api.log
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List

# Log directory, configurable via LOG_DIR env var for Docker
LOG_DIR = Path(os.getenv("LOG_DIR", str(Path(__file__).parent.parent / "logs")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

FILE_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
CONSOLE_FORMAT = "%(asctime)s [%(name)s] %(message)s"

WORKER_LOGGERS = ("pausable", "temporalio")
API_LOGGERS = ("pausable_api",)

# Package roots that already carry handlers
_configured_roots: set[str] = set()


def _handlers(filename: str) -> List[logging.Handler]:
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    fh = logging.FileHandler(LOG_DIR / filename, encoding="utf-8")
    fh.setFormatter(logging.Formatter(FILE_FORMAT))

    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return [fh, sh]


def configure_logging(roots: Iterable[str], filename: str) -> None:
    """Attach file and console handlers to each package root once.

    Roots configured earlier in the process keep their handlers; a root is
    never wired to two files.
    """
    pending = [root for root in roots if root not in _configured_roots]
    if not pending:
        return

    handlers = _handlers(filename)
    for root in pending:
        logger = logging.getLogger(root)
        logger.setLevel(LOG_LEVEL)
        logger.propagate = False  # Prevent duplicate logs via the root logger
        for handler in handlers:
            logger.addHandler(handler)
        _configured_roots.add(root)


def get_worker_logger() -> logging.Logger:
    """Logger for the Temporal worker; also routes interpreter and SDK logs."""
    configure_logging(WORKER_LOGGERS, "worker.log")
    return logging.getLogger("pausable.worker")


def get_api_logger() -> logging.Logger:
    """Logger for API requests."""
    configure_logging(API_LOGGERS, "api.log")
    return logging.getLogger("pausable_api.routes")
