"""
Stale job sweep handler.

Scheduled entry point for the reaper.

Dependencies: jobcore.core.reaper, jobcore.application.components
System role: Periodic recovery trigger
"""

import asyncio
import json
import logging
from typing import Any, Dict

from jobcore.application.components import get_component_cache
from jobcore.core.reaper import ReaperReport

logger = logging.getLogger(__name__)


async def _sweep() -> ReaperReport:
    cache = get_component_cache()
    try:
        return await cache.reaper().sweep()
    finally:
        # In-process redispatches must finish on this loop
        await cache.drain()
        await cache.dispose_engines()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Function handler for scheduled sweeps.

    Args:
        event: Schedule event (ignored)
        context: Function context object

    Returns:
        Dict with statusCode and the sweep report
    """
    report = asyncio.run(_sweep())
    return {
        "statusCode": 200,
        "body": json.dumps(
            {
                "failed": [str(job_id) for job_id in report.failed],
                "redispatched": [str(job_id) for job_id in report.redispatched],
                "errors": report.errors,
            }
        ),
    }
