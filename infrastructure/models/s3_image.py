"""S3 image database model definitions."""
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.sql import func

from .base import Base


class S3ImageModel(Base):
    """ORM mapping for s3_images table."""

    __tablename__ = "s3_images"
    __table_args__ = (
        Index("ix_s3_images_upload_date", "upload_date"),
        Index("ix_s3_images_modified_date", "modified_date"),
        {
            "comment": "S3 图片元数据缓存表，记录桶中图片的尺寸与哈希",
        },
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="主键ID",
    )
    s3_key = Column(
        String(512),
        nullable=False,
        unique=True,
        comment="对象存储中的Key（含路径前缀）",
    )
    filename = Column(
        String(255),
        nullable=False,
        comment="Key 的最后一段",
    )
    mime_type = Column(
        String(100),
        nullable=False,
        default="image/jpeg",
        server_default=text("'image/jpeg'"),
        comment="MIME类型",
    )
    width = Column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="宽度（像素），未知为0",
    )
    height = Column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="高度（像素），未知为0",
    )
    filesize = Column(
        BigInteger,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="文件大小（字节）",
    )
    title = Column(
        String(255),
        nullable=False,
        default="",
        server_default=text("''"),
        comment="标题",
    )
    description = Column(
        Text,
        nullable=False,
        default="",
        comment="描述",
    )
    alt_text = Column(
        String(500),
        nullable=False,
        default="",
        server_default=text("''"),
        comment="替代文本",
    )
    upload_date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        comment="上传时间（同步时取远端 LastModified）",
    )
    modified_date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
        comment="更新时间",
    )
    hash = Column(
        String(64),
        nullable=False,
        default="",
        server_default=text("''"),
        comment="ETag 或上传内容 MD5",
    )
    hash_source = Column(
        String(16),
        nullable=False,
        default="upload",
        server_default=text("'upload'"),
        comment="hash 来源：etag/upload",
    )
    used_in_posts = Column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="引用该图片的文章数",
    )
    last_synced = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="最近一次同步时间",
    )

    def __repr__(self) -> str:
        return "<S3ImageModel(id={id}, s3_key='{key}', hash_source='{src}')>".format(
            id=self.id,
            key=self.s3_key,
            src=self.hash_source,
        )
