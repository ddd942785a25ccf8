"""SQLAlchemy-backed repository for cached S3 images."""
from __future__ import annotations

from datetime import timezone
from typing import Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import (
    DatabaseException,
    ImageAlreadyExistsException,
    ImageNotFoundException,
)
from domain.s3_image import ImageQuery, ImageRecord, S3ImageRepository
from infrastructure.models.s3_image import S3ImageModel

# Sortable columns exposed to callers
ORDERABLE_COLUMNS = {
    "upload_date": S3ImageModel.upload_date,
    "modified_date": S3ImageModel.modified_date,
    "filename": S3ImageModel.filename,
    "title": S3ImageModel.title,
    "filesize": S3ImageModel.filesize,
    "id": S3ImageModel.id,
}


def _as_utc(dt):
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class SQLAlchemyS3ImageRepository(S3ImageRepository):
    """Persist image records using SQLAlchemy ORM.

    Driver and connection failures surface as ``DatabaseException``;
    unique-key violations as ``ImageAlreadyExistsException``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: S3ImageModel) -> ImageRecord:
        return ImageRecord(
            id=model.id,
            s3_key=model.s3_key,
            filename=model.filename,
            mime_type=model.mime_type,
            width=model.width or 0,
            height=model.height or 0,
            filesize=model.filesize or 0,
            title=model.title or "",
            description=model.description or "",
            alt_text=model.alt_text or "",
            upload_date=model.upload_date,
            modified_date=model.modified_date,
            hash=model.hash or "",
            hash_source=model.hash_source,
            used_in_posts=model.used_in_posts or 0,
            last_synced=model.last_synced,
        )

    def _copy_fields(self, model: S3ImageModel, image: ImageRecord) -> None:
        model.s3_key = image.s3_key
        model.filename = image.filename
        model.mime_type = image.mime_type
        model.width = image.width
        model.height = image.height
        model.filesize = image.filesize
        model.title = image.title
        model.description = image.description
        model.alt_text = image.alt_text
        model.hash = image.hash
        model.hash_source = image.hash_source
        model.used_in_posts = image.used_in_posts
        model.last_synced = _as_utc(image.last_synced)
        if image.upload_date is not None:
            model.upload_date = _as_utc(image.upload_date)
        if image.modified_date is not None:
            model.modified_date = _as_utc(image.modified_date)

    async def _execute(self, stmt, action: str):
        try:
            return await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise DatabaseException(f"Failed to {action}", details={"error": str(exc)}) from exc

    async def _flush(self, image: ImageRecord) -> None:
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ImageAlreadyExistsException(image.s3_key) from exc
        except SQLAlchemyError as exc:
            raise DatabaseException(f"Failed to save image {image.s3_key}", details={"error": str(exc)}) from exc

    async def _get_model(self, image_id: int) -> Optional[S3ImageModel]:
        result = await self._execute(
            select(S3ImageModel).where(S3ImageModel.id == image_id),
            "load image",
        )
        return result.scalar_one_or_none()

    async def create(self, image: ImageRecord) -> ImageRecord:
        model = S3ImageModel()
        self._copy_fields(model, image)
        self.session.add(model)
        await self._flush(image)
        await self.session.refresh(model)
        return self._to_entity(model)

    async def update(self, image: ImageRecord) -> ImageRecord:
        model = await self._get_model(image.id)
        if model is None:
            raise ImageNotFoundException(image.id)
        self._copy_fields(model, image)
        await self._flush(image)
        await self.session.refresh(model)
        return self._to_entity(model)

    async def delete(self, image_id: int) -> None:
        model = await self._get_model(image_id)
        if model is None:
            raise ImageNotFoundException(image_id)
        try:
            await self.session.delete(model)
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise DatabaseException(f"Failed to delete image {image_id}", details={"error": str(exc)}) from exc

    async def delete_by_keys(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        if not keys:
            return 0
        result = await self._execute(
            delete(S3ImageModel).where(S3ImageModel.s3_key.in_(keys)),
            "delete images",
        )
        return int(result.rowcount or 0)

    async def get_by_id(self, image_id: int) -> Optional[ImageRecord]:
        model = await self._get_model(image_id)
        return self._to_entity(model) if model else None

    async def get_by_key(self, key: str) -> Optional[ImageRecord]:
        result = await self._execute(
            select(S3ImageModel).where(S3ImageModel.s3_key == key),
            "load image",
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list(self, query: ImageQuery) -> list[ImageRecord]:
        column = ORDERABLE_COLUMNS[query.order_by]
        stmt = select(S3ImageModel)
        if query.modified_after is not None:
            stmt = stmt.where(S3ImageModel.modified_date > _as_utc(query.modified_after))
        if query.min_size is not None:
            stmt = stmt.where(
                S3ImageModel.width >= query.min_size,
                S3ImageModel.height >= query.min_size,
            )
        if query.descending:
            stmt = stmt.order_by(column.desc(), S3ImageModel.id.desc())
        else:
            stmt = stmt.order_by(column.asc(), S3ImageModel.id.asc())
        stmt = stmt.offset(query.offset).limit(query.limit)
        result = await self._execute(stmt, "list images")
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count(self) -> int:
        result = await self._execute(select(func.count()).select_from(S3ImageModel), "count images")
        return int(result.scalar() or 0)

    async def all_keys(self, prefix: str = "") -> set[str]:
        stmt = select(S3ImageModel.s3_key)
        if prefix:
            stmt = stmt.where(S3ImageModel.s3_key.startswith(f"{prefix}/", autoescape=True))
        result = await self._execute(stmt, "list image keys")
        return set(result.scalars().all())
