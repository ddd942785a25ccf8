"""Celery beat schedule configuration.

The bucket sync entry is present only when ``S3__SYNC_INTERVAL_SECONDS`` > 0.
"""
from __future__ import annotations

from core.config import settings


def build_beat_schedule(interval_seconds: int) -> dict:
    if interval_seconds <= 0:
        return {}
    return {
        "s3-bucket-sync": {
            "task": "storage.s3.sync",
            "schedule": float(interval_seconds),
            "options": {"queue": "low"},
        },
    }


CELERY_BEAT_SCHEDULE = build_beat_schedule(settings.s3.sync_interval_seconds)
