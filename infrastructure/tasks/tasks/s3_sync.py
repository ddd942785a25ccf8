"""Periodic bucket → cache reconciliation."""
from __future__ import annotations

import asyncio
from functools import partial
from typing import Optional

from celery import shared_task
from sqlalchemy.ext.asyncio import async_sessionmaker

from application.services.s3_image_service import S3ImageService
from core.config import settings
from core.logging_config import get_logger
from infrastructure.adapters.storage_port import S3StoragePortAdapter
from infrastructure.database import build_engine
from infrastructure.external.storage import build_storage_config, create_storage_client
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork
from ..utils.base_task import BaseTask

logger = get_logger(__name__)


async def run_bucket_sync(
    *,
    prune_missing: bool,
    max_pages: Optional[int] = None,
    database_url: Optional[str] = None,
) -> dict:
    # Each asyncio.run gets its own engine; pooled connections are loop-bound
    engine = build_engine(database_url or settings.database.url)
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    try:
        async with create_storage_client(build_storage_config()) as client:
            service = S3ImageService(
                uow_factory=partial(SQLAlchemyUnitOfWork, session_factory),
                storage=S3StoragePortAdapter(client),
            )
            result = await service.sync_from_bucket(prune_missing=prune_missing, max_pages=max_pages)
    finally:
        await engine.dispose()
    return result.model_dump()


@shared_task(name="storage.s3.sync", bind=True, base=BaseTask)
def sync_bucket(self, prune_missing: Optional[bool] = None, max_pages: Optional[int] = None) -> dict:
    """Scheduled sync; skipped while S3 storage is disabled or incomplete."""
    config = build_storage_config()
    if not config.enabled:
        logger.info("s3_sync_skipped", reason="disabled")
        return {"skipped": "disabled"}
    if not config.is_complete:
        logger.warning("s3_sync_skipped", reason="incomplete", missing=config.missing_fields())
        return {"skipped": "incomplete"}

    prune = settings.s3.sync_prune_missing if prune_missing is None else prune_missing
    result = asyncio.run(run_bucket_sync(prune_missing=prune, max_pages=max_pages))
    logger.info(
        "s3_sync_completed",
        added=result["added_count"],
        updated=result["updated_count"],
        removed=result["removed_count"],
        errors=len(result["errors"]),
    )
    return result
