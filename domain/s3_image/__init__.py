"""S3 image domain exports."""
from .entity import EDITABLE_FIELDS, ImageRecord
from .repository import ORDERABLE_FIELDS, ImageQuery, S3ImageRepository

__all__ = ["EDITABLE_FIELDS", "ORDERABLE_FIELDS", "ImageRecord", "ImageQuery", "S3ImageRepository"]
