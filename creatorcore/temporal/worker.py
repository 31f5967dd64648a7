from __future__ import annotations

import asyncio
import concurrent.futures

from temporalio.worker import Worker

from creatorcore.config import settings
from creatorcore.temporal.activities.genre_activities import run_genre_classification_activity
from creatorcore.temporal.client import get_temporal_client
from creatorcore.temporal.workflows.genre_classification import GenreClassificationWorkflow


async def main() -> None:
    client = await get_temporal_client()
    with concurrent.futures.ThreadPoolExecutor(max_workers=4) as activity_executor:
        worker = Worker(
            client,
            task_queue=settings.TEMPORAL_TASK_QUEUE,
            workflows=[GenreClassificationWorkflow],
            activities=[run_genre_classification_activity],
            activity_executor=activity_executor,
        )
        await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
