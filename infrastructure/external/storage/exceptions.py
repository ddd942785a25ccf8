"""Storage service exceptions."""
from typing import Optional


class StorageError(Exception):
    """Base storage exception."""
    pass


class ConfigurationIncompleteError(StorageError):
    """Endpoint, bucket or credentials are missing."""

    def __init__(self, missing: Optional[list[str]] = None):
        self.missing = list(missing or [])
        detail = ", ".join(self.missing) if self.missing else "required fields"
        super().__init__(f"S3 configuration is incomplete: missing {detail}")


class TransportError(StorageError):
    """The request never produced an HTTP response (DNS, TLS, timeout)."""
    pass


class HttpStatusError(StorageError):
    """The bucket answered with a status the operation does not accept."""

    def __init__(self, status: int, body: str = "", operation: str = "request"):
        self.status = status
        self.body = body
        self.operation = operation
        super().__init__(f"S3 {operation} failed with HTTP {status}")


class UploadFailedError(HttpStatusError):
    """PUT answered with something other than 200/201."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(status, body, operation="upload")


class DeleteFailedError(HttpStatusError):
    """DELETE answered with something other than 200/204."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(status, body, operation="delete")


class NotFoundError(HttpStatusError):
    """HEAD/GET answered with something other than 200."""

    def __init__(self, status: int, body: str = "", operation: str = "get"):
        super().__init__(status, body, operation=operation)


class ParseError(StorageError):
    """A listing response body is not a readable ListBucketResult."""
    pass
