"""AWS Signature Version 4 request signing for S3-compatible endpoints."""
import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional
from urllib.parse import quote, urlsplit

from .config import StorageConfig

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str = SERVICE) -> bytes:
    """kSigning = HMAC chain over date, region, service and the terminator."""
    k_date = _hmac(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def canonical_uri(bucket: str, key: str = "") -> str:
    """``/bucket`` or ``/bucket/key``, RFC 3986 encoded with ``/`` kept."""
    path = f"/{bucket}"
    if key:
        path += f"/{key}"
    return quote(path, safe="/~")


def canonical_query(query: Optional[Mapping[str, object]]) -> str:
    if not query:
        return ""
    pairs = sorted((str(k), str(v)) for k, v in query.items())
    return "&".join(f"{quote(k, safe='~')}={quote(v, safe='~')}" for k, v in pairs)


def _normalize_value(value: object) -> str:
    # Trim and collapse inner whitespace runs
    return " ".join(str(value).split())


@dataclass
class SignedRequest:
    """Everything needed to put a signed request on the wire."""
    url: str
    headers: dict[str, str]
    amz_date: str
    content_sha256: str
    canonical_request: str = field(repr=False, default="")


class SigV4Signer:
    """Signs requests against ``{endpoint}/{bucket}/{key}`` (path-style).

    The clock is injected once at construction so tests can pin the
    timestamp; every ``sign`` call reads it afresh.
    """

    def __init__(self, config: StorageConfig, clock: Callable[[], datetime] = utc_now):
        self.config = config
        self.clock = clock
        parsed = urlsplit(config.endpoint)
        self.scheme = parsed.scheme or "https"
        # netloc keeps a non-default port
        self.host = parsed.netloc or parsed.path.split("/")[0]

    def sign(
        self,
        method: str,
        key: str = "",
        body: Optional[bytes] = None,
        headers: Optional[Mapping[str, object]] = None,
        query: Optional[Mapping[str, object]] = None,
    ) -> SignedRequest:
        now = self.clock().astimezone(timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        date_stamp = now.strftime("%Y%m%d")
        payload_hash = sha256_hex(body or b"")

        send_headers: dict[str, str] = {k.lower(): _normalize_value(v) for k, v in (headers or {}).items()}
        send_headers["host"] = self.host
        send_headers["x-amz-date"] = amz_date
        send_headers["x-amz-content-sha256"] = payload_hash

        uri = canonical_uri(self.config.bucket, key)
        query_string = canonical_query(query)

        names = sorted(send_headers)
        canonical_headers = "".join(f"{name}:{send_headers[name]}\n" for name in names)
        signed_headers = ";".join(names)

        canonical_request = "\n".join([
            method.upper(),
            uri,
            query_string,
            canonical_headers,
            signed_headers,
            payload_hash,
        ])

        region = self.config.region or "auto"
        scope = f"{date_stamp}/{region}/{SERVICE}/aws4_request"
        string_to_sign = "\n".join([
            ALGORITHM,
            amz_date,
            scope,
            sha256_hex(canonical_request.encode("utf-8")),
        ])
        signing_key = derive_signing_key(self.config.secret_key, date_stamp, region)
        signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

        send_headers["authorization"] = (
            f"{ALGORITHM} Credential={self.config.access_key}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

        url = f"{self.scheme}://{self.host}{uri}"
        if query_string:
            url += f"?{query_string}"

        return SignedRequest(
            url=url,
            headers=send_headers,
            amz_date=amz_date,
            content_sha256=payload_hash,
            canonical_request=canonical_request,
        )
