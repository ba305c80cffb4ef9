"""Scheduled task definitions for background jobs.

Each task is an async function executed by the JobScheduler. Tasks never
raise: failures are collected into the returned summary and logged.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from learning_sessions.shared.config import get_settings

logger = logging.getLogger(__name__)


async def run_buffer_cleanup(max_age_hours: float | None = None) -> dict[str, Any]:
    """Discard pending progress evidence for sessions that were never flushed.

    Finished sessions past the cleanup age are evicted from the session store
    as part of the same sweep. Without a progress tracker only the eviction
    runs.

    Returns:
        Summary of cleanup results.
    """
    logger.info("Starting progress buffer cleanup task")
    start_time = datetime.now(timezone.utc)
    results: dict[str, Any] = {
        'started_at': start_time.isoformat(),
        'sessions_cleaned': 0,
        'sessions_evicted': 0,
        'errors': [],
    }

    try:
        from learning_sessions.shared.service_registry import get_service_registry

        registry = get_service_registry()
        sessions = registry.get_session_service()
        if max_age_hours is None:
            max_age_hours = get_settings().buffer_cleanup_max_age_hours
        finished_before = len(sessions.store.finished_sessions())

        if registry.progress_tracking_configured:
            integration = registry.get_progress_integration_service()
            results['sessions_cleaned'] = integration.cleanup_abandoned_sessions(max_age_hours)
        else:
            sessions.purge_finished_sessions(max_age_hours)
        results['sessions_evicted'] = finished_before - len(sessions.store.finished_sessions())
    except Exception as e:
        error_msg = f"Progress buffer cleanup failed: {e}"
        logger.exception(error_msg)
        results['errors'].append(error_msg)

    results['completed_at'] = datetime.now(timezone.utc).isoformat()
    logger.info(
        f"Progress buffer cleanup finished: {results['sessions_cleaned']} sessions cleaned, "
        f"{results['sessions_evicted']} evicted",
        extra={
            'sessions_cleaned': results['sessions_cleaned'],
            'sessions_evicted': results['sessions_evicted'],
        },
    )
    return results
