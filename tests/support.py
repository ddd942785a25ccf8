"""Shared test helpers: an in-memory path-style bucket and image fixtures."""
import hashlib
import io
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote

import httpx
from PIL import Image

BUCKET = "media"
FIXED_NOW = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)


def make_png(width: int = 40, height: int = 30) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


class FakeBucket:
    """Minimal path-style S3 endpoint backed by a dict, for httpx.MockTransport."""

    def __init__(self, bucket: str = BUCKET, page_size: Optional[int] = None, namespaced: bool = True):
        self.bucket = bucket
        self.objects: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        # (method, key) -> status override; key "" targets the bucket listing
        self.failures: dict[tuple[str, str], int] = {}
        self.page_size = page_size
        self.namespaced = namespaced

    def put(self, key: str, data: bytes, content_type: str = "image/png",
            last_modified: datetime = FIXED_NOW) -> str:
        etag = hashlib.md5(data).hexdigest()
        self.objects[key] = {
            "data": data,
            "content_type": content_type,
            "etag": etag,
            "last_modified": last_modified,
        }
        return etag

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _key(self, request: httpx.Request) -> str:
        path = unquote(request.url.raw_path.decode("ascii").split("?", 1)[0])
        prefix = f"/{self.bucket}"
        assert path.startswith(prefix), path
        return path[len(prefix):].lstrip("/")

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = self._key(request)
        method = request.method

        status = self.failures.get((method, key))
        if status is not None:
            return httpx.Response(status, text=f"<Error><Code>Injected</Code><Key>{key}</Key></Error>")

        if method == "PUT":
            self.put(key, request.content, request.headers.get("content-type", "application/octet-stream"))
            return httpx.Response(200, headers={"ETag": f'"{self.objects[key]["etag"]}"'})
        if method == "DELETE":
            self.objects.pop(key, None)
            return httpx.Response(204)
        if method == "HEAD":
            obj = self.objects.get(key)
            if obj is None:
                return httpx.Response(404)
            return httpx.Response(200, headers={
                "Content-Type": obj["content_type"],
                "Content-Length": str(len(obj["data"])),
                "ETag": f'"{obj["etag"]}"',
                "Last-Modified": "Wed, 01 May 2024 12:30:45 GMT",
            })
        if method == "GET" and key:
            obj = self.objects.get(key)
            if obj is None:
                return httpx.Response(404, text="<Error><Code>NoSuchKey</Code></Error>")
            return httpx.Response(200, content=obj["data"], headers={"Content-Type": obj["content_type"]})
        if method == "GET":
            return self._list(request)
        return httpx.Response(405)

    def _list(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        assert params.get("list-type") == "2"
        prefix = params.get("prefix", "")
        max_keys = int(params.get("max-keys", "1000"))
        if self.page_size is not None:
            max_keys = min(max_keys, self.page_size)
        start = int(params.get("continuation-token", "0"))

        keys = sorted(k for k in self.objects if k.startswith(prefix))
        page = keys[start:start + max_keys]
        truncated = start + max_keys < len(keys)

        contents = "".join(
            "<Contents><Key>{key}</Key><LastModified>{lm}</LastModified>"
            "<ETag>&quot;{etag}&quot;</ETag><Size>{size}</Size>"
            "<StorageClass>STANDARD</StorageClass></Contents>".format(
                key=k,
                lm=self.objects[k]["last_modified"].strftime("%Y-%m-%dT%H:%M:%S.000Z"),
                etag=self.objects[k]["etag"],
                size=len(self.objects[k]["data"]),
            )
            for k in page
        )
        token = f"<NextContinuationToken>{start + max_keys}</NextContinuationToken>" if truncated else ""
        xmlns = ' xmlns="http://s3.amazonaws.com/doc/2006-03-01/"' if self.namespaced else ""
        body = (
            f'<?xml version="1.0" encoding="UTF-8"?>'
            f"<ListBucketResult{xmlns}><Name>{self.bucket}</Name><Prefix>{prefix}</Prefix>"
            f"<KeyCount>{len(page)}</KeyCount><MaxKeys>{max_keys}</MaxKeys>"
            f"<IsTruncated>{'true' if truncated else 'false'}</IsTruncated>{token}{contents}"
            f"</ListBucketResult>"
        )
        return httpx.Response(200, content=body.encode("utf-8"), headers={"Content-Type": "application/xml"})
