import asyncio

from temporalio.client import Client
from temporalio.worker import Worker

from ..config import TASK_QUEUE, TEMPORAL_ADDRESS
from ..logging_config import get_worker_logger
from .activities import ALL_ACTIVITIES, close_http_client
from .interceptor import LifecycleInterceptor
from .workflows import PausableWorkflow

logger = get_worker_logger()


def build_worker(client: Client, task_queue: str = TASK_QUEUE) -> Worker:
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[PausableWorkflow],
        activities=ALL_ACTIVITIES,
        interceptors=[LifecycleInterceptor()],
    )


async def main() -> None:
    client = await Client.connect(TEMPORAL_ADDRESS)
    logger.info(f"Worker connected to {TEMPORAL_ADDRESS}, task queue {TASK_QUEUE}")
    try:
        await build_worker(client).run()
    finally:
        await close_http_client()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
