import hashlib
import hmac

import pytest

from infrastructure.external.storage import SigV4Signer, StorageConfig
from infrastructure.external.storage.signing import (
    canonical_query,
    canonical_uri,
    derive_signing_key,
)

from tests.support import FIXED_NOW


def _config(**overrides) -> StorageConfig:
    values = dict(
        endpoint="https://account.r2.example.com",
        bucket="media",
        access_key="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    )
    values.update(overrides)
    return StorageConfig(**values)


def test_signing_key_matches_published_derivation():
    # Published SigV4 key-derivation example (20120215 / us-east-1 / iam)
    key = derive_signing_key("wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY", "20120215", "us-east-1", "iam")
    assert key.hex() == "f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d"


def test_canonical_uri_encodes_segments_and_keeps_slashes():
    assert canonical_uri("media") == "/media"
    assert canonical_uri("media", "photos/my image+1.jpg") == "/media/photos/my%20image%2B1.jpg"
    assert canonical_uri("media", "a~b_c-d.e") == "/media/a~b_c-d.e"


def test_canonical_query_is_sorted_and_rfc3986_encoded():
    query = {"prefix": "a b/c", "max-keys": 1000, "list-type": "2"}
    assert canonical_query(query) == "list-type=2&max-keys=1000&prefix=a%20b%2Fc"
    assert canonical_query(None) == ""


def test_sign_sets_required_headers_and_authorization():
    signer = SigV4Signer(_config(), clock=lambda: FIXED_NOW)
    signed = signer.sign("PUT", "photo.jpg", b"hello", {"Content-Type": "image/jpeg"})

    assert signed.amz_date == "20240501T123045Z"
    assert signed.content_sha256 == hashlib.sha256(b"hello").hexdigest()
    assert signed.headers["host"] == "account.r2.example.com"
    assert signed.headers["x-amz-date"] == signed.amz_date
    assert signed.headers["x-amz-content-sha256"] == signed.content_sha256
    assert signed.url == "https://account.r2.example.com/media/photo.jpg"

    auth = signed.headers["authorization"]
    assert auth.startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20240501/auto/s3/aws4_request, ")
    assert "SignedHeaders=content-type;host;x-amz-content-sha256;x-amz-date, " in auth


def test_signature_is_hmac_of_string_to_sign():
    signer = SigV4Signer(_config(region="eu-west-1"), clock=lambda: FIXED_NOW)
    signed = signer.sign("GET", "", query={"list-type": "2", "max-keys": 1})

    string_to_sign = "\n".join([
        "AWS4-HMAC-SHA256",
        "20240501T123045Z",
        "20240501/eu-west-1/s3/aws4_request",
        hashlib.sha256(signed.canonical_request.encode()).hexdigest(),
    ])
    key = derive_signing_key("wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY", "20240501", "eu-west-1")
    expected = hmac.new(key, string_to_sign.encode(), hashlib.sha256).hexdigest()
    assert signed.headers["authorization"].endswith(f"Signature={expected}")


def test_canonical_request_layout():
    signer = SigV4Signer(_config(), clock=lambda: FIXED_NOW)
    signed = signer.sign("get", "", query={"max-keys": 1, "list-type": "2"})
    lines = signed.canonical_request.split("\n")

    assert lines[0] == "GET"
    assert lines[1] == "/media"
    assert lines[2] == "list-type=2&max-keys=1"
    assert lines[3] == "host:account.r2.example.com"
    assert lines[-2] == "host;x-amz-content-sha256;x-amz-date"
    # Empty body hashes to the SHA-256 of b""
    assert lines[-1] == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_sign_is_deterministic_for_fixed_clock():
    signer = SigV4Signer(_config(), clock=lambda: FIXED_NOW)
    first = signer.sign("DELETE", "a/b.png")
    second = signer.sign("DELETE", "a/b.png")
    assert first.headers == second.headers


def test_header_values_are_trimmed_and_collapsed():
    signer = SigV4Signer(_config(), clock=lambda: FIXED_NOW)
    signed = signer.sign("GET", "x.png", headers={"X-Amz-Meta-Note": "  a   b  "})
    assert "x-amz-meta-note:a b\n" in signed.canonical_request
    assert signed.headers["x-amz-meta-note"] == "a b"


def test_host_keeps_non_default_port():
    signer = SigV4Signer(_config(endpoint="http://localhost:9000"), clock=lambda: FIXED_NOW)
    signed = signer.sign("GET", "x.png")
    assert signed.headers["host"] == "localhost:9000"
    assert signed.url == "http://localhost:9000/media/x.png"


def test_clock_is_read_on_every_call():
    ticks = iter(["2024-01-01T00:00:00+00:00", "2024-01-02T00:00:00+00:00"])
    from datetime import datetime

    signer = SigV4Signer(_config(), clock=lambda: datetime.fromisoformat(next(ticks)))
    assert signer.sign("GET", "a.png").amz_date == "20240101T000000Z"
    assert signer.sign("GET", "a.png").amz_date == "20240102T000000Z"


def test_one_byte_body_change_changes_hash_and_signature():
    signer = SigV4Signer(_config(), clock=lambda: FIXED_NOW)
    first = signer.sign("PUT", "a.png", b"image-bytes-0")
    second = signer.sign("PUT", "a.png", b"image-bytes-1")

    assert first.content_sha256 != second.content_sha256
    assert first.headers["authorization"] != second.headers["authorization"]
    signature = first.headers["authorization"].rsplit("Signature=", 1)[1]
    assert signature != second.headers["authorization"].rsplit("Signature=", 1)[1]


def test_signature_matches_botocore_sigv4():
    pytest.importorskip("botocore")
    from botocore.auth import SigV4Auth
    from botocore.awsrequest import AWSRequest
    from botocore.credentials import Credentials

    signer = SigV4Signer(_config(region="us-east-1"), clock=lambda: FIXED_NOW)
    signed = signer.sign(
        "PUT",
        "photos/cat.jpg",
        b"hello",
        headers={"Content-Type": "image/jpeg"},
        query={"x-id": "PutObject"},
    )

    request = AWSRequest(
        method="PUT",
        url=signed.url,
        data=b"hello",
        headers={k: v for k, v in signed.headers.items() if k != "authorization"},
    )
    request.context["timestamp"] = signed.amz_date
    auth = SigV4Auth(
        Credentials("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"),
        "s3",
        "us-east-1",
    )
    canonical = auth.canonical_request(request)
    expected = auth.signature(auth.string_to_sign(request, canonical), request)

    assert canonical == signed.canonical_request
    assert signed.headers["authorization"] == (
        "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20240501/us-east-1/s3/aws4_request, "
        "SignedHeaders=content-type;host;x-amz-content-sha256;x-amz-date, "
        f"Signature={expected}"
    )
