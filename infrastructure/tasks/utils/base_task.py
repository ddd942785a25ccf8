"""Common base task for Celery jobs"""
from __future__ import annotations

from celery import Task
from core.logging_config import get_logger

logger = get_logger(__name__)


class BaseTask(Task):
    """Structured success/failure logging for every task run."""

    def on_failure(self, exc, task_id, args, kwargs, einfo):  # type: ignore[override]
        logger.error(
            "celery_task_failure",
            task_id=task_id,
            task_name=self.name,
            kwargs=kwargs,
            exc=str(exc),
            exc_type=type(exc).__name__,
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_success(self, retval, task_id, args, kwargs):  # type: ignore[override]
        summary = retval if isinstance(retval, dict) else {}
        logger.info(
            "celery_task_success",
            task_id=task_id,
            task_name=self.name,
            skipped=summary.get("skipped"),
            errors=len(summary.get("errors") or []),
        )
        super().on_success(retval, task_id, args, kwargs)
