"""Celery application configuration."""

import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from changewatch.config import get_settings
from changewatch.log_config import configure_logging

settings = get_settings()


@setup_logging.connect
def configure_worker_logging(**kwargs):
    handler = configure_logging(settings.log_level, settings.log_format)

    celery_logger = logging.getLogger("celery")
    celery_logger.handlers.clear()
    celery_logger.addHandler(handler)
    celery_logger.setLevel(settings.log_level)
    celery_logger.propagate = False


celery_app = Celery(
    "changewatch",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["changewatch.workers.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # One job at a time: the pipeline is sequential and rate governed
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
    worker_hijack_root_logger=False,
    worker_redirect_stdouts=True,
    worker_redirect_stdouts_level="INFO",
    # Result backend
    result_expires=86400,
    beat_schedule={
        "run-daily-changes": {
            "task": "changewatch.workers.tasks.run_daily_changes",
            "schedule": crontab(hour=settings.daily_run_hour, minute=settings.daily_run_minute),
        },
    },
)
