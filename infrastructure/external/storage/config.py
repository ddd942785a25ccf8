"""Storage configuration models."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class PreferredStorage(str, Enum):
    """Where the gallery stores new uploads."""
    GALLERY = "gallery"
    S3 = "s3"


class StorageConfig(BaseModel):
    """Immutable snapshot of the S3-compatible storage settings.

    Built once per request (or task run) and handed to the signer, the
    client and the image service; nothing mutates it afterwards.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    endpoint: str = ""
    bucket: str = ""
    access_key: str = ""
    secret_key: str = ""
    region: str = "auto"
    public_url: str = ""
    path_prefix: str = ""
    enabled: bool = False
    preferred_storage: PreferredStorage = PreferredStorage.GALLERY
    timeout: float = 60.0

    @field_validator("endpoint", "bucket", "access_key", "secret_key", mode="before")
    @classmethod
    def _strip(cls, v):
        return (v or "").strip()

    @field_validator("region", mode="before")
    @classmethod
    def _default_region(cls, v):
        return (v or "").strip() or "auto"

    @field_validator("public_url", mode="before")
    @classmethod
    def _strip_public_url(cls, v):
        return (v or "").strip().rstrip("/")

    @field_validator("path_prefix", mode="before")
    @classmethod
    def _strip_prefix(cls, v):
        return (v or "").strip().strip("/")

    def missing_fields(self) -> list[str]:
        """Names of required settings that are empty."""
        required = {
            "endpoint": self.endpoint,
            "bucket": self.bucket,
            "access_key": self.access_key,
            "secret_key": self.secret_key,
        }
        return [name for name, value in required.items() if not value]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    @property
    def is_preferred_storage(self) -> bool:
        """S3 receives new gallery uploads only when enabled and preferred."""
        return self.enabled and self.preferred_storage == PreferredStorage.S3.value
