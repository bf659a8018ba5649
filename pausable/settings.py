"""Interpreter runtime settings: tunable parameters for remote calls and waits.

All values read from environment variables with sensible defaults.
Infrastructure config (Temporal address, service URLs) stays in
pausable/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


# =====================================================================
# Remote steps (definition fetch, block execution)
# =====================================================================

STEP_START_TO_CLOSE_SECONDS = _float("STEP_START_TO_CLOSE_SECONDS", 120.0)
STEP_MAX_ATTEMPTS = _int("STEP_MAX_ATTEMPTS", 3)
STEP_INITIAL_INTERVAL_SECONDS = _float("STEP_INITIAL_INTERVAL_SECONDS", 1.0)
STEP_BACKOFF_COEFFICIENT = _float("STEP_BACKOFF_COEFFICIENT", 2.0)


# =====================================================================
# Lifecycle notifications (webhooks)
# =====================================================================

# "started" gates the first block, so it gets a longer budget
STARTED_START_TO_CLOSE_SECONDS = _float("STARTED_START_TO_CLOSE_SECONDS", 30.0)
STARTED_MAX_ATTEMPTS = _int("STARTED_MAX_ATTEMPTS", 3)

NOTIFY_START_TO_CLOSE_SECONDS = _float("NOTIFY_START_TO_CLOSE_SECONDS", 10.0)
NOTIFY_MAX_ATTEMPTS = _int("NOTIFY_MAX_ATTEMPTS", 3)


# =====================================================================
# Pause / resume
# =====================================================================

# How long a paused instance waits for a resume before failing
PAUSE_TIMEOUT_DAYS = _float("PAUSE_TIMEOUT_DAYS", 15.0)

# Polling interval of the in-process durable wait (seconds)
LOCAL_WAIT_POLL_INTERVAL = _float("LOCAL_WAIT_POLL_INTERVAL", 0.05)


# =====================================================================
# HTTP Clients (Worker → definition / block / webhook services)
# =====================================================================

HTTP_TIMEOUT = _float("HTTP_TIMEOUT", 30.0)
HTTP_MAX_CONNECTIONS = _int("HTTP_MAX_CONNECTIONS", 10)
HTTP_MAX_KEEPALIVE = _int("HTTP_MAX_KEEPALIVE", 5)
