import pytest

from infrastructure.external.storage import ParseError
from infrastructure.external.storage.listing import parse_list_objects

NAMESPACED = b"""<?xml version="1.0" encoding="UTF-8"?>
<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
  <Name>media</Name>
  <IsTruncated>true</IsTruncated>
  <NextContinuationToken>1ueGcxLPRx1Tr/XYExHnhbYLgveDs2J/wm36Hy4vbOwM=</NextContinuationToken>
  <Contents>
    <Key>uploads/cat.jpg</Key>
    <LastModified>2024-05-01T12:30:45.000Z</LastModified>
    <ETag>"9b2cf535f27731c974343645a3985328"</ETag>
    <Size>1024</Size>
  </Contents>
  <Contents>
    <Key>uploads/notes.txt</Key>
    <LastModified>2024-05-02T08:00:00.000Z</LastModified>
    <ETag>"abc"</ETag>
    <Size>12</Size>
  </Contents>
</ListBucketResult>"""

PLAIN = NAMESPACED.replace(b' xmlns="http://s3.amazonaws.com/doc/2006-03-01/"', b"")


@pytest.mark.parametrize("body", [NAMESPACED, PLAIN], ids=["namespaced", "plain"])
def test_parse_list_objects_with_and_without_namespace(body):
    result = parse_list_objects(body)

    assert result.is_truncated is True
    assert result.next_continuation_token == "1ueGcxLPRx1Tr/XYExHnhbYLgveDs2J/wm36Hy4vbOwM="
    assert [o.key for o in result.objects] == ["uploads/cat.jpg", "uploads/notes.txt"]
    first = result.objects[0]
    assert first.size == 1024
    assert first.etag == "9b2cf535f27731c974343645a3985328"
    assert first.last_modified.isoformat() == "2024-05-01T12:30:45+00:00"


def test_parse_empty_final_page():
    result = parse_list_objects(
        b"<ListBucketResult><Name>media</Name><IsTruncated>false</IsTruncated></ListBucketResult>"
    )
    assert result.objects == []
    assert result.is_truncated is False
    assert result.next_continuation_token is None


def test_malformed_body_raises_parse_error():
    with pytest.raises(ParseError):
        parse_list_objects(b"<ListBucketResult><Contents>")


def test_unexpected_root_raises_parse_error():
    with pytest.raises(ParseError):
        parse_list_objects(b"<Error><Code>AccessDenied</Code></Error>")
