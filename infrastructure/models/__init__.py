"""Infrastructure models package exports."""
from .base import Base, metadata
from .s3_image import S3ImageModel

__all__ = [
    "Base",
    "metadata",
    "S3ImageModel",
]
