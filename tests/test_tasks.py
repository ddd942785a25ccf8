import httpx
import pytest
from sqlalchemy import select

from infrastructure.database import build_engine
from infrastructure.external.storage import S3StorageClient, StorageConfig
from infrastructure.models import Base, S3ImageModel
from infrastructure.tasks.config.beat import build_beat_schedule
from infrastructure.tasks.tasks import s3_sync

from tests.support import make_png


def test_beat_schedule_disabled_for_non_positive_interval():
    assert build_beat_schedule(0) == {}
    assert build_beat_schedule(-5) == {}


def test_beat_schedule_routes_sync_to_low_queue():
    schedule = build_beat_schedule(900)
    entry = schedule["s3-bucket-sync"]
    assert entry["task"] == "storage.s3.sync"
    assert entry["schedule"] == 900.0
    assert entry["options"] == {"queue": "low"}


def test_sync_task_skips_when_disabled(monkeypatch):
    monkeypatch.setattr(s3_sync, "build_storage_config", lambda: StorageConfig(enabled=False))
    assert s3_sync.sync_bucket.apply().get() == {"skipped": "disabled"}


def test_sync_task_skips_incomplete_configuration(monkeypatch):
    monkeypatch.setattr(
        s3_sync,
        "build_storage_config",
        lambda: StorageConfig(enabled=True, endpoint="https://s3.example.com"),
    )
    assert s3_sync.sync_bucket.apply().get() == {"skipped": "incomplete"}


@pytest.mark.asyncio
async def test_run_bucket_sync_writes_through_its_own_engine(tmp_path, monkeypatch, storage_config, fake_bucket):
    url = f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}"
    engine = build_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    fake_bucket.put("a.png", make_png(6, 4))
    fake_bucket.put("readme.md", b"# hi", "text/markdown")
    http = httpx.AsyncClient(transport=fake_bucket.transport())
    monkeypatch.setattr(s3_sync, "build_storage_config", lambda: storage_config)
    monkeypatch.setattr(
        s3_sync,
        "create_storage_client",
        lambda config: S3StorageClient(config, http_client=http),
    )

    try:
        result = await s3_sync.run_bucket_sync(prune_missing=False, database_url=url)
        async with engine.connect() as conn:
            rows = (await conn.execute(select(S3ImageModel.s3_key, S3ImageModel.width))).all()
    finally:
        await http.aclose()
        await engine.dispose()

    assert result["added_count"] == 1
    assert result["errors"] == []
    assert [tuple(row) for row in rows] == [("a.png", 6)]
