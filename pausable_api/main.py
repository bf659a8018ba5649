"""FastAPI Application Entry Point.

Configures the app, lifespan, CORS, and includes the interpreter routes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pausable.config import CORS_ORIGINS as _CORS_ORIGINS

from .routes.interpreters import router as interpreters_router
from .temporal_adapter import close_temporal_client, init_temporal_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage Temporal client lifecycle."""
    await init_temporal_client()
    yield
    await close_temporal_client()


app = FastAPI(title="Pausable Interpreter API", version="1.0.0", lifespan=lifespan)

CORS_ORIGINS = [o.strip() for o in _CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(interpreters_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "ok"}
