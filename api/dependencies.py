"""
API依赖项 - API Key 校验与服务装配
"""
import hmac
from typing import AsyncIterator, Callable, Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader

from application.ports.storage import StoragePort
from application.services.s3_image_service import S3ImageService
from core.config import settings
from core.exceptions import UnauthorizedException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.adapters.storage_port import S3StoragePortAdapter
from infrastructure.external.storage import (
    S3StorageClient,
    StorageConfig,
    build_storage_config,
    create_storage_client,
)
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

api_key_header = APIKeyHeader(
    name="X-API-Key",
    scheme_name="APIKey",
    description="Shared API key configured via API_KEY",
    auto_error=False,
)


async def require_api_key(api_key: Optional[str] = Depends(api_key_header)) -> str:
    """常量时间比较 X-API-Key 与配置值"""
    expected = settings.API_KEY or ""
    if not api_key or not hmac.compare_digest(api_key.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedException()
    return api_key


def get_storage_config() -> StorageConfig:
    # 每个请求读取一次配置快照
    return build_storage_config()


async def get_storage_client(
    config: StorageConfig = Depends(get_storage_config),
) -> AsyncIterator[S3StorageClient]:
    async with create_storage_client(config) as client:
        yield client


async def get_storage_port(client: S3StorageClient = Depends(get_storage_client)) -> StoragePort:
    return S3StoragePortAdapter(client)


def get_uow_factory() -> Callable[..., AbstractUnitOfWork]:
    return SQLAlchemyUnitOfWork


async def get_s3_image_service(
    storage: StoragePort = Depends(get_storage_port),
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
) -> S3ImageService:
    return S3ImageService(uow_factory=uow_factory, storage=storage)
