"""
Executor task handler.

Consumes executor task messages (SQS-triggered function event) and runs
each job through the Long-Running Executor. Ledger outages are reported as
batch item failures so the platform redelivers just those tasks.

Dependencies: jobcore.core.executor, jobcore.application.components
System role: Execution trigger for the async job core
"""

import asyncio
import json
import logging
from typing import Any, Dict

from pydantic import ValidationError

from jobcore.application.components import get_component_cache
from jobcore.core.exceptions import StorageUnavailable
from jobcore.models.job import JobTask
from jobcore.observability.correlation import clear_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)


async def _process(records: list[Dict[str, Any]]) -> tuple[list[dict], list[dict]]:
    executor = get_component_cache().executor
    results: list[dict] = []
    failures: list[dict] = []

    try:
        for record in records:
            message_id = record.get("messageId")
            try:
                task = JobTask.model_validate_json(record.get("body") or "")
            except ValidationError as e:
                # Redelivery cannot fix a malformed task
                logger.error("%s:handler - Invalid task message: %s", __name__, e)
                results.append({"messageId": message_id, "status": "invalid"})
                continue

            set_correlation_id(str(task.job_id))
            try:
                outcome = await executor.run(task.job_id)
                results.append(
                    {"messageId": message_id, "job_id": str(task.job_id), "status": outcome.value}
                )
            except StorageUnavailable as e:
                logger.error(
                    "%s:handler - StorageUnavailable: %s",
                    __name__,
                    e,
                    extra={"job_id": str(task.job_id)},
                )
                failures.append({"itemIdentifier": message_id})
            finally:
                clear_correlation_id()
    finally:
        await get_component_cache().dispose_engines()

    return results, failures


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Function handler for executor task events.

    Args:
        event: SQS event with Records array of JobTask messages
        context: Function context object

    Returns:
        Dict with statusCode, body and batchItemFailures
    """
    records = event.get("Records", [])
    logger.info("%s:handler - Received task event", __name__, extra={"record_count": len(records)})

    results, failures = asyncio.run(_process(records))

    logger.info(
        "%s:handler - Processing complete",
        __name__,
        extra={"processed": len(results), "failed": len(failures)},
    )
    return {
        "statusCode": 200 if not failures else 206,
        "body": json.dumps({"processed": len(results), "failed": len(failures), "results": results}),
        "batchItemFailures": failures,
    }
