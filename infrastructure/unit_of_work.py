"""SQLAlchemy Unit of Work 实现"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import DatabaseException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.s3_image_repository import SQLAlchemyS3ImageRepository


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """一个 UoW 对应一个 AsyncSession；外部传入的 session 不在退出时关闭

    提交/回滚阶段的数据库错误统一转换为 DatabaseException。
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._owns_session = session is None
        self.session: Optional[AsyncSession] = session

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self.s3_image_repository = SQLAlchemyS3ImageRepository(self.session)
        # 只读模式依赖 autobegin，不显式开启事务
        if not self._readonly and not self.session.in_transaction():
            try:
                await self.session.begin()
            except SQLAlchemyError as exc:
                await self._close()
                raise DatabaseException("Failed to begin transaction", details={"error": str(exc)}) from exc
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            await self._close()

    async def _close(self) -> None:
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None
        self.s3_image_repository = None

    async def commit(self) -> None:
        if not self._readonly and self.session and self.session.in_transaction():
            try:
                await self.session.commit()
            except SQLAlchemyError as exc:
                await self.rollback()
                raise DatabaseException("Failed to commit transaction", details={"error": str(exc)}) from exc
        self._committed = True

    async def rollback(self) -> None:
        if self.session and self.session.in_transaction():
            try:
                await self.session.rollback()
            except SQLAlchemyError as exc:
                raise DatabaseException("Failed to roll back transaction", details={"error": str(exc)}) from exc
        self._committed = False
