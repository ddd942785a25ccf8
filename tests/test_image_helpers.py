import pytest

from application.dto import parse_gallery_id
from application.utils.image_metadata import extract_image_metadata
from application.utils.storage import (
    build_upload_filename,
    guess_content_type,
    is_image_key,
    title_from_key,
)
from domain.common.exceptions import DomainValidationException
from domain.s3_image import ImageRecord

from tests.support import make_png


@pytest.mark.parametrize(
    "title, ext, expected",
    [
        ("Beach Day!", "jpg", "beach-day-1700000000.jpg"),
        ("Café  au   lait", ".PNG", "cafe-au-lait-1700000000.png"),
        ("", "webp", "image-1700000000.webp"),
        ("!!!", "", "image-1700000000.jpg"),
    ],
)
def test_build_upload_filename(title, ext, expected):
    assert build_upload_filename(title, ext, timestamp=1700000000) == expected


def test_image_key_detection_and_titles():
    assert is_image_key("a/b/photo.JPEG")
    assert is_image_key("logo.svg")
    assert not is_image_key("notes.txt")
    assert not is_image_key("folder/")
    assert title_from_key("blog/2024/sunset.final.png") == "sunset.final"


def test_guess_content_type_covers_modern_formats():
    assert guess_content_type("a.webp") == "image/webp"
    assert guess_content_type("a.avif") == "image/avif"
    assert guess_content_type("a.png") == "image/png"
    assert guess_content_type("a.unknownext") == "application/octet-stream"


def test_parse_gallery_id():
    assert parse_gallery_id("s3-12") == 12
    assert parse_gallery_id("s3-") is None
    assert parse_gallery_id("wp-12") is None


@pytest.mark.asyncio
async def test_extract_image_metadata_reads_dimensions():
    meta = await extract_image_metadata(make_png(17, 9), "x.png")
    assert (meta.width, meta.height, meta.mime_type) == (17, 9, "image/png")


@pytest.mark.asyncio
async def test_extract_image_metadata_falls_back_for_unreadable_payload():
    meta = await extract_image_metadata(b"not an image", "broken.webp")
    assert (meta.width, meta.height, meta.mime_type) == (0, 0, "image/webp")


def test_record_rejects_unknown_hash_source():
    with pytest.raises(DomainValidationException):
        ImageRecord(id=None, s3_key="a.png", filename="a.png", hash_source="md5")


def test_apply_changes_validates_fields():
    record = ImageRecord(id=1, s3_key="a.png", filename="a.png")

    with pytest.raises(DomainValidationException):
        record.apply_changes({})
    with pytest.raises(DomainValidationException):
        record.apply_changes({"filesize": 10})

    record.apply_changes({"alt_text": None, "used_in_posts": "4"})
    assert record.alt_text == ""
    assert record.used_in_posts == 4
    assert record.modified_date is not None


def test_refresh_from_object_switches_hash_source():
    record = ImageRecord(id=1, s3_key="a.png", filename="a.png", hash="abc")
    assert record.needs_refresh("def")
    assert not record.needs_refresh("abc")

    record.refresh_from_object(filesize=10, width=3, height=2, mime_type="image/png", etag="def")

    assert record.hash == "def"
    assert record.hash_source == "etag"
