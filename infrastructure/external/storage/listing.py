"""ListObjectsV2 response parsing."""
from datetime import datetime
from typing import Optional, Union
from xml.etree import ElementTree

from .exceptions import ParseError
from .models import BucketObject, ListObjectsResult


def _local(tag: str) -> str:
    # "{namespace}Contents" -> "Contents"
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ElementTree.Element, name: str) -> Optional[str]:
    for child in element:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_list_objects(body: Union[bytes, str]) -> ListObjectsResult:
    """Parse a ``ListBucketResult`` document, namespaced or not."""
    try:
        root = ElementTree.fromstring(body)
    except ElementTree.ParseError as exc:
        raise ParseError(f"Failed to parse list response: {exc}") from exc

    if _local(root.tag) != "ListBucketResult":
        raise ParseError(f"Unexpected list response root <{_local(root.tag)}>")

    objects: list[BucketObject] = []
    for child in root:
        if _local(child.tag) != "Contents":
            continue
        key = _child_text(child, "Key")
        if not key:
            continue
        size_text = _child_text(child, "Size") or "0"
        try:
            size = int(size_text)
        except ValueError:
            size = 0
        objects.append(BucketObject(
            key=key,
            size=size,
            last_modified=_parse_timestamp(_child_text(child, "LastModified")),
            etag=(_child_text(child, "ETag") or "").strip('"'),
        ))

    truncated = (_child_text(root, "IsTruncated") or "false").lower() == "true"
    token = _child_text(root, "NextContinuationToken") or None

    return ListObjectsResult(
        objects=objects,
        is_truncated=truncated,
        next_continuation_token=token,
    )
