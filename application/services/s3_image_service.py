"""Application layer orchestration for the S3 image cache (application/services)."""
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from application.dto import (
    GALLERY_ID_PREFIX,
    GalleryImageDTO,
    ImageDTO,
    ImageListQueryDTO,
    StorageStatusDTO,
    SyncResultDTO,
)
from application.ports.storage import ConnectionStatus, RemoteObject, StoragePort, UploadOutcome
from application.utils.image_metadata import extract_image_metadata
from application.utils.storage import (
    build_upload_filename,
    is_image_key,
    key_basename,
    key_extension,
    title_from_key,
)
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    DomainValidationException,
    ImageNotFoundException,
    StorageDisabledException,
    UnsupportedMimeTypeException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.s3_image import ORDERABLE_FIELDS, ImageQuery, ImageRecord

logger = get_logger(__name__)

SYNC_PAGE_SIZE = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class S3ImageService:
    """Bucket-backed image workflows bridging API, tasks and domain layers."""

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork], storage: StoragePort | None = None):
        self._uow_factory = uow_factory
        self._storage = storage

    @property
    def storage(self) -> StoragePort:
        if self._storage is None:
            raise RuntimeError("Storage port not configured for S3ImageService")
        return self._storage

    # ------------------------------------------------------------------
    # DTO helpers
    # ------------------------------------------------------------------
    def _url(self, key: str) -> Optional[str]:
        return self._storage.public_url(key) if self._storage is not None else None

    def _to_dto(self, image: ImageRecord) -> ImageDTO:
        dto = ImageDTO.model_validate(image)
        dto.url = self._url(image.s3_key)
        return dto

    def to_gallery(self, image: ImageDTO) -> GalleryImageDTO:
        url = image.url or self.storage.public_url(image.s3_key)
        return GalleryImageDTO(
            id=f"{GALLERY_ID_PREFIX}{image.id}",
            s3_key=image.s3_key,
            public_url=url,
            thumbnail_url=url,
            title=image.title,
            description=image.description,
            alt_text=image.alt_text,
            mime_type=image.mime_type,
            width=image.width,
            height=image.height,
            filesize=image.filesize,
            upload_date=image.upload_date,
            modified_date=image.modified_date,
            hash=image.hash,
            used_in_posts=image.used_in_posts,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_images(self, filters: Optional[ImageListQueryDTO] = None) -> list[ImageDTO]:
        filters = filters or ImageListQueryDTO()
        if filters.order_by not in ORDERABLE_FIELDS:
            raise DomainValidationException(
                f"Invalid order_by: {filters.order_by}",
                field="order_by",
                details={"allowed": list(ORDERABLE_FIELDS)},
            )
        query = ImageQuery(
            order_by=filters.order_by,
            descending=filters.order == "desc",
            limit=filters.limit,
            offset=filters.offset,
            modified_after=filters.modified_after,
            min_size=filters.min_size,
        )
        async with self._uow_factory(readonly=True) as uow:
            images = await uow.s3_image_repository.list(query)
        return [self._to_dto(image) for image in images]

    async def get_image_by_id(self, image_id: int) -> ImageDTO:
        async with self._uow_factory(readonly=True) as uow:
            image = await uow.s3_image_repository.get_by_id(image_id)
        if image is None:
            raise ImageNotFoundException(image_id)
        return self._to_dto(image)

    async def count_images(self) -> int:
        async with self._uow_factory(readonly=True) as uow:
            return await uow.s3_image_repository.count()

    async def status(self) -> StorageStatusDTO:
        info = self.storage.info()
        return StorageStatusDTO(
            enabled=info.enabled,
            configured=info.configured,
            preferred=info.preferred,
            bucket=info.bucket,
            endpoint=info.endpoint,
            path_prefix=info.path_prefix,
            missing=info.missing,
            image_count=await self.count_images(),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def update_image(self, image_id: int, changes: dict[str, Any]) -> ImageDTO:
        async with self._uow_factory() as uow:
            image = await uow.s3_image_repository.get_by_id(image_id)
            if image is None:
                raise ImageNotFoundException(image_id)
            image.apply_changes(changes)
            image = await uow.s3_image_repository.update(image)
        logger.info("Image updated", image_id=image_id, fields=sorted(changes))
        return self._to_dto(image)

    async def delete_image(self, image_id: int) -> None:
        """Delete the bucket object first; the record goes only after that succeeds."""
        async with self._uow_factory(readonly=True) as uow:
            image = await uow.s3_image_repository.get_by_id(image_id)
        if image is None:
            raise ImageNotFoundException(image_id)

        await self.storage.delete(image.s3_key)

        async with self._uow_factory() as uow:
            await uow.s3_image_repository.delete(image_id)
        logger.info("Image deleted", image_id=image_id, key=image.s3_key)

    async def save_image(
        self,
        upload: UploadOutcome,
        *,
        width: int = 0,
        height: int = 0,
        mime_type: Optional[str] = None,
        title: str = "",
        description: str = "",
        alt_text: str = "",
        hash: Optional[str] = None,
    ) -> ImageDTO:
        """Insert the record for an object that was just uploaded."""
        now = _utcnow()
        image = ImageRecord(
            id=None,
            s3_key=upload.key,
            filename=key_basename(upload.key),
            mime_type=mime_type or upload.content_type,
            width=width,
            height=height,
            filesize=upload.size,
            title=title,
            description=description,
            alt_text=alt_text,
            upload_date=now,
            modified_date=now,
            hash=hash or hashlib.md5(upload.key.encode("utf-8")).hexdigest(),
            hash_source="upload",
            last_synced=now,
        )
        async with self._uow_factory() as uow:
            image = await uow.s3_image_repository.create(image)
        return self._to_dto(image)

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        title: str = "",
    ) -> ImageDTO:
        """Upload a new gallery image to the bucket and cache its metadata.

        When the record cannot be written the uploaded object is removed
        again and the database error is re-raised.
        """
        info = self.storage.info()
        if not info.enabled:
            raise StorageDisabledException()
        if not mime_type.startswith("image/"):
            raise UnsupportedMimeTypeException(mime_type)

        title = title or title_from_key(filename)
        target = build_upload_filename(title, key_extension(filename) or "jpg")
        meta = await extract_image_metadata(data, filename)

        upload = await self.storage.upload(data, target, mime_type)
        try:
            return await self.save_image(
                upload,
                width=meta.width,
                height=meta.height,
                mime_type=mime_type,
                title=title,
                alt_text=title,
                hash=hashlib.md5(data).hexdigest(),
            )
        except BusinessException:
            logger.warning("Image record not saved, removing uploaded object", key=upload.key)
            try:
                await self.storage.delete(upload.key)
            except BusinessException as cleanup_exc:
                logger.error("Orphaned upload left in bucket", key=upload.key, error=cleanup_exc.message)
            raise

    async def test_connection(self) -> ConnectionStatus:
        return await self.storage.test_connection()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------
    async def _sync_object(self, obj: RemoteObject, result: SyncResultDTO) -> None:
        async with self._uow_factory(readonly=True) as uow:
            existing = await uow.s3_image_repository.get_by_key(obj.key)

        if existing is not None and not existing.needs_refresh(obj.etag):
            # Upload hash already equals the bucket ETag; only record that
            if existing.hash_source != "etag":
                existing.confirm_etag()
                async with self._uow_factory() as uow:
                    await uow.s3_image_repository.update(existing)
            return

        data = await self.storage.download(obj.key)
        meta = await extract_image_metadata(data, obj.key)
        filesize = obj.size or len(data)

        if existing is not None:
            existing.refresh_from_object(
                filesize=filesize,
                width=meta.width,
                height=meta.height,
                mime_type=meta.mime_type,
                etag=obj.etag,
            )
            async with self._uow_factory() as uow:
                await uow.s3_image_repository.update(existing)
            result.updated_count += 1
            return

        now = _utcnow()
        async with self._uow_factory() as uow:
            await uow.s3_image_repository.create(ImageRecord(
                id=None,
                s3_key=obj.key,
                filename=key_basename(obj.key),
                mime_type=meta.mime_type,
                width=meta.width,
                height=meta.height,
                filesize=filesize,
                title=title_from_key(obj.key),
                upload_date=obj.last_modified or now,
                modified_date=now,
                hash=obj.etag,
                hash_source="etag",
                last_synced=now,
            ))
        result.added_count += 1

    async def sync_from_bucket(
        self,
        *,
        prune_missing: bool = False,
        continuation_token: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> SyncResultDTO:
        """Reconcile the local cache with the bucket listing.

        Per-object failures are collected in ``errors``; a listing failure
        ends the pass. Pruning needs a complete listing that started from
        the first page.
        """
        result = SyncResultDTO()
        seen: set[str] = set()
        token = continuation_token
        pages = 0
        complete = False

        while True:
            try:
                page = await self.storage.list_page("", SYNC_PAGE_SIZE, token)
            except BusinessException as exc:
                logger.error("Bucket listing failed", error=exc.message, pages=pages)
                result.errors.append(f"List failed: {exc.message}")
                break
            pages += 1

            for obj in page.objects:
                if not is_image_key(obj.key):
                    continue
                seen.add(obj.key)
                try:
                    await self._sync_object(obj, result)
                except BusinessException as exc:
                    logger.warning("Object sync failed", key=obj.key, error=exc.message)
                    result.errors.append(f"{obj.key}: {exc.message}")

            if not page.is_truncated:
                complete = True
                break
            if not page.next_token:
                result.errors.append("List truncated without continuation token")
                break
            token = page.next_token
            if max_pages is not None and pages >= max_pages:
                result.next_continuation_token = token
                break

        if prune_missing and complete and continuation_token is None:
            # Only records under the listed prefix can be judged missing
            prefix = self.storage.info().path_prefix.strip().strip("/")
            try:
                async with self._uow_factory() as uow:
                    stale = await uow.s3_image_repository.all_keys(prefix) - seen
                    removed = await uow.s3_image_repository.delete_by_keys(stale)
                result.removed_count = removed
            except BusinessException as exc:
                logger.error("Prune failed", error=exc.message)
                result.errors.append(f"Prune failed: {exc.message}")

        logger.info(
            "Bucket sync finished",
            added=result.added_count,
            updated=result.updated_count,
            removed=result.removed_count,
            errors=len(result.errors),
            pages=pages,
        )
        return result
