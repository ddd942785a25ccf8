"""Celery application configuration (bucket sync worker and beat)"""
from __future__ import annotations

import os
from core.logging_config import get_logger
from celery import Celery
from kombu import Queue

from core.config import settings
from .beat import CELERY_BEAT_SCHEDULE


# Task packages registered with the worker
CELERY_IMPORTS = (
    "infrastructure.tasks.tasks",
)


celery_app = Celery("texter_storage")

celery_app.conf.update(
    # Broker/backend come from REDIS__URL, with the Celery env vars as fallback
    broker_url=settings.redis.url or os.getenv("CELERY_BROKER_URL"),
    result_backend=settings.redis.url or os.getenv("CELERY_RESULT_BACKEND"),
    # JSON keeps payloads interoperable and avoids arbitrary code execution.
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Acknowledge after the run so a lost worker re-queues the sync
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    # Auto-expire stale results to keep the backend tidy.
    result_expires=3600,
    # Avoid the worker grabbing more than it can process, aiding fairness.
    worker_prefetch_multiplier=1,
    # A full bucket sync downloads every changed image; bound it
    task_soft_time_limit=settings.s3.sync_interval_seconds or 3600,
    task_time_limit=(settings.s3.sync_interval_seconds or 3600) + 300,
    task_default_queue="default",
    # Bucket sync is background work and runs on the low queue
    task_queues=(
        Queue("high"),
        Queue("default"),
        Queue("low"),
    ),
    task_routes={
        "storage.s3.*": {"queue": "low"},
    },
    beat_schedule=CELERY_BEAT_SCHEDULE,
)

celery_app.conf.imports = CELERY_IMPORTS

environment = getattr(settings, "ENVIRONMENT", "production") or "production"
if environment.lower() in {"development", "dev", "test", "testing"}:
    celery_app.conf.task_always_eager = True


logger = get_logger(__name__)


@celery_app.on_after_configure.connect
def _log_configuration(sender, **kwargs):
    logger.info("celery_configured", broker=sender.conf.broker_url, result_backend=sender.conf.result_backend)
