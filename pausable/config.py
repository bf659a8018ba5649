"""Interpreter configuration constants: single source of truth for all env vars."""

import os

# Temporal
TEMPORAL_ADDRESS = os.getenv("TEMPORAL_ADDRESS", "localhost:7233")
TASK_QUEUE = os.getenv("TEMPORAL_TASK_QUEUE", "pausable-interpreter")

# Remote step executors (Worker → definition / block services)
# Use 127.0.0.1 instead of localhost to avoid IPv6 timeout issues
DEFINITION_SERVICE_URL = os.getenv("DEFINITION_SERVICE_URL", "http://127.0.0.1:8100")
BLOCK_SERVICE_URL = os.getenv("BLOCK_SERVICE_URL", "http://127.0.0.1:8100")

# Lifecycle webhook: empty disables webhook delivery
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")

# CORS for the HTTP API (comma-separated)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
