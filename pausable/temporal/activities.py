"""Temporal Activities for remote interpreter steps.

These run in the Temporal Worker process and call the definition service,
the block service and the lifecycle webhook over HTTP. Errors are raised
so that Temporal retries them per the caller's RetryPolicy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from temporalio import activity
from temporalio.exceptions import ApplicationError

from ..config import BLOCK_SERVICE_URL, DEFINITION_SERVICE_URL, WEBHOOK_URL
from ..models import (
    ExecutionEndedInput,
    ExecutionPausedInput,
    ExecutionResumedInput,
    ExecutionStartedInput,
    WorkflowDefinition,
)
from ..settings import HTTP_MAX_CONNECTIONS, HTTP_MAX_KEEPALIVE, HTTP_TIMEOUT

logger = logging.getLogger("pausable.temporal.activities")

# Shared httpx client with connection pooling, one per worker process.
_http_client: Optional[httpx.AsyncClient] = None


async def _get_http_client() -> httpx.AsyncClient:
    """Get or create the shared httpx client."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=HTTP_TIMEOUT,
            limits=httpx.Limits(
                max_connections=HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=HTTP_MAX_KEEPALIVE,
            ),
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared httpx client (worker shutdown)."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


@activity.defn(name="interpreter.definition")
async def get_definition_activity(instance_id: str) -> WorkflowDefinition:
    """Fetch the block definition of an instance.

    Expects a JSON body with keys:
        - definition: Opaque definition document
        - blocks: Ordered block ids
        - pauses: Block ids that pause the run
    """
    client = await _get_http_client()
    url = f"{DEFINITION_SERVICE_URL}/api/definitions/{instance_id}"
    resp = await client.get(url)
    if resp.status_code == 404:
        raise ApplicationError(
            f"No definition found for instance '{instance_id}'",
            type="DefinitionNotFound",
            non_retryable=True,
        )
    resp.raise_for_status()

    body = resp.json()
    definition = WorkflowDefinition(
        definition=body.get("definition") or {},
        blocks=[int(b) for b in body.get("blocks", [])],
        pauses=[int(b) for b in body.get("pauses", [])],
    )
    logger.info(
        f"Instance {instance_id}: definition with {len(definition.blocks)} blocks "
        f"(attempt {activity.info().attempt})"
    )
    return definition


@activity.defn(name="interpreter.block")
async def execute_block_activity(block: int) -> Any:
    """Execute one block on the block service and return its result."""
    client = await _get_http_client()
    resp = await client.post(f"{BLOCK_SERVICE_URL}/api/blocks/{block}/execute")
    resp.raise_for_status()
    logger.info(f"Block {block}: executed (attempt {activity.info().attempt})")
    return resp.json().get("result")


async def _post_webhook(event_type: str, body: Dict[str, Any]) -> None:
    """POST a lifecycle event to the webhook. Skipped when no URL is configured."""
    if not WEBHOOK_URL:
        logger.debug(f"No WEBHOOK_URL, skipping event: {event_type}")
        return

    client = await _get_http_client()
    resp = await client.post(WEBHOOK_URL, json={"event": event_type, **body})
    resp.raise_for_status()
    logger.info(f"Webhook {event_type} for {body.get('instance_id')}: {resp.status_code}")


@activity.defn(name="interpreter.webhook.execution.started")
async def execution_started_activity(input: ExecutionStartedInput) -> None:
    await _post_webhook("execution.started", {
        "instance_id": input.instance_id,
        "timestamp": input.started_at,
    })


@activity.defn(name="interpreter.webhook.execution.paused")
async def execution_paused_activity(input: ExecutionPausedInput) -> None:
    await _post_webhook("execution.paused", {
        "instance_id": input.instance_id,
        "timestamp": input.paused_at,
        "payload": input.payload,
    })


@activity.defn(name="interpreter.webhook.execution.resumed")
async def execution_resumed_activity(input: ExecutionResumedInput) -> None:
    await _post_webhook("execution.resumed", {
        "instance_id": input.instance_id,
        "timestamp": input.resumed_at,
        "payload": input.payload,
    })


@activity.defn(name="interpreter.webhook.execution.ended")
async def execution_ended_activity(input: ExecutionEndedInput) -> None:
    await _post_webhook("execution.ended", {
        "instance_id": input.instance_id,
        "timestamp": input.ended_at,
        "result": input.result,
        "error": input.error.to_dict() if input.error else None,
    })


ALL_ACTIVITIES = [
    get_definition_activity,
    execute_block_activity,
    execution_started_activity,
    execution_paused_activity,
    execution_resumed_activity,
    execution_ended_activity,
]
