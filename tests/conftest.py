"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os
from functools import partial

# Mandatory API key and an in-memory database for settings validation
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from application.services.s3_image_service import S3ImageService  # noqa: E402
from infrastructure.adapters.storage_port import S3StoragePortAdapter  # noqa: E402
from infrastructure.external.storage import S3StorageClient, StorageConfig  # noqa: E402
from infrastructure.models import Base  # noqa: E402
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork  # noqa: E402

from tests.support import BUCKET, FIXED_NOW, FakeBucket  # noqa: E402


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(
        endpoint="https://account.r2.example.com",
        bucket=BUCKET,
        access_key="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        public_url="https://cdn.example.com/",
        enabled=True,
        preferred_storage="s3",
    )


@pytest.fixture
def fake_bucket() -> FakeBucket:
    return FakeBucket()


@pytest_asyncio.fixture
async def s3_client(storage_config, fake_bucket):
    http = httpx.AsyncClient(transport=fake_bucket.transport())
    client = S3StorageClient(storage_config, http_client=http, clock=lambda: FIXED_NOW)
    yield client
    await http.aclose()


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def uow_factory(session_factory):
    return partial(SQLAlchemyUnitOfWork, session_factory)


@pytest.fixture
def image_service(uow_factory, s3_client) -> S3ImageService:
    return S3ImageService(uow_factory=uow_factory, storage=S3StoragePortAdapter(s3_client))
