"""Celery task definitions.

These tasks are thin wrappers that call into the service layer.
The actual business logic lives in the services module.
"""

import logging

from changewatch.config import get_settings
from changewatch.services.pipeline import run_changes_job
from changewatch.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(soft_time_limit=6 * 3600, time_limit=6 * 3600 + 60)
def run_daily_changes() -> dict:
    """Scheduled task: compute diffs for all active sources, then classify them.

    Runs once a day via Celery Beat. Failures are contained per source and
    per change inside the services; anything else fails the run.
    """
    try:
        return run_changes_job(get_settings())
    except Exception as e:
        logger.error(f"run_daily_changes failed: {e}")
        return {"error": str(e)}
