"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class ImageNotFoundException(BusinessException):
    def __init__(self, image_id: Optional[int] = None, *, key: Optional[str] = None):
        details = {}
        if image_id is not None:
            details["image_id"] = image_id
        if key is not None:
            details["s3_key"] = key
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="Image not found",
            error_type="ImageNotFound",
            details=details or None,
        )


class ImageAlreadyExistsException(BusinessException):
    def __init__(self, key: str):
        super().__init__(
            code=BusinessCode.CONFLICT,
            message=f"Image with key {key} already exists",
            error_type="ImageAlreadyExists",
            details={"s3_key": key},
            field="s3_key",
        )


class DatabaseException(BusinessException):
    def __init__(self, message: str = "Database operation failed", *, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.DATABASE_ERROR,
            message=message,
            error_type="DatabaseError",
            details=details,
        )


class UnsupportedMimeTypeException(BusinessException):
    def __init__(self, mime_type: str):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message="Unsupported MIME type",
            error_type="UnsupportedMimeType",
            details={"mime_type": mime_type},
            field="mime_type",
        )


class StorageOperationException(BusinessException):
    """Wraps a storage-layer failure so the API can map it to 502/503."""

    _CODES = {
        "ConfigurationIncompleteError": BusinessCode.STORAGE_NOT_CONFIGURED,
        "TransportError": BusinessCode.STORAGE_UNREACHABLE,
    }

    def __init__(self, error: Exception, *, operation: str = "request"):
        details: dict = {"operation": operation}
        status = getattr(error, "status", None)
        if status is not None:
            details["status"] = status
        missing = getattr(error, "missing", None)
        if missing:
            details["missing"] = missing
        code = self._CODES.get(type(error).__name__)
        if code is None:
            code = BusinessCode.STORAGE_REJECTED if status is not None else BusinessCode.STORAGE_ERROR
        super().__init__(
            code=code,
            message=str(error),
            error_type=type(error).__name__,
            details=details,
        )
        self.cause = error


class StorageDisabledException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.STORAGE_DISABLED,
            message="S3 storage is disabled",
            error_type="StorageDisabled",
        )
