from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from creatorcore.temporal.activities.genre_activities import run_genre_classification_activity


@workflow.defn
class GenreClassificationWorkflow:
    @workflow.run
    async def run(self) -> Dict[str, Any]:
        # A second concurrent batch is rejected by the run tracker, so retrying is safe.
        return await workflow.execute_activity(
            run_genre_classification_activity,
            {},
            start_to_close_timeout=timedelta(minutes=30),
            retry_policy=RetryPolicy(maximum_attempts=3, initial_interval=timedelta(minutes=1)),
        )
