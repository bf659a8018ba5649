"""Root conftest for interpreter and API tests.

Provides:
- Remote step mocks (definition, block, webhook) and a LocalAdapter over them
  with fast retry policies
- wait_until helper for observing a running instance
- FastAPI test client with a mocked Temporal client
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pausable.adapter import CallPolicy
from pausable.local import LocalAdapter
from pausable.models import ResumeResponse, WorkflowDefinition

FAST_POLICY = CallPolicy(
    start_to_close_timeout=timedelta(seconds=1),
    maximum_attempts=2,
    initial_interval=timedelta(milliseconds=1),
)


# ---------------------------------------------------------------------------
# Local host engine
# ---------------------------------------------------------------------------

@pytest.fixture
def definition() -> WorkflowDefinition:
    return WorkflowDefinition(definition={"id": "wf-1"}, blocks=[1, 2, 3], pauses=[2])


@pytest.fixture
def steps(definition: WorkflowDefinition) -> MagicMock:
    """Remote step mocks; block outputs are 'out-<block>'."""
    steps = MagicMock()
    steps.fetch_definition = AsyncMock(return_value=definition)
    steps.execute_block = AsyncMock(side_effect=lambda block: f"out-{block}")
    steps.webhook = AsyncMock(return_value=None)
    return steps


@pytest.fixture
def adapter(steps: MagicMock) -> LocalAdapter:
    return LocalAdapter(
        steps.fetch_definition,
        steps.execute_block,
        steps.webhook,
        step_policy=FAST_POLICY,
        started_policy=FAST_POLICY,
        notify_policy=FAST_POLICY,
        poll_interval=0.005,
    )


@pytest.fixture
def wait_until() -> Callable:
    """Poll a predicate on the running loop until it holds (or fail)."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached within timeout")
            await asyncio.sleep(0.005)

    return _wait_until


# ---------------------------------------------------------------------------
# Temporal mock
# ---------------------------------------------------------------------------

@pytest.fixture
def workflow_handle() -> MagicMock:
    handle = MagicMock()
    handle.query = AsyncMock(return_value=False)
    handle.execute_update = AsyncMock(return_value=ResumeResponse("resumed"))
    handle.describe = AsyncMock()
    handle.result = AsyncMock()
    handle.cancel = AsyncMock()
    return handle


@pytest.fixture
def mock_temporal_client(workflow_handle: MagicMock):
    """Mock Temporal client for route tests."""
    client = AsyncMock()
    client.start_workflow = AsyncMock(return_value=MagicMock(id="test-wf-id"))
    client.get_workflow_handle = MagicMock(return_value=workflow_handle)
    return client


# ---------------------------------------------------------------------------
# FastAPI test client, patches Temporal at module level
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(mock_temporal_client) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI routes."""
    with patch(
        "pausable_api.temporal_adapter.get_client",
        AsyncMock(return_value=mock_temporal_client),
    ):
        from pausable_api.main import app

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
