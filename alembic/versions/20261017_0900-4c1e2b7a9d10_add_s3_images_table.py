"""add_s3_images_table

Revision ID: 4c1e2b7a9d10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4c1e2b7a9d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        's3_images',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='主键ID'),
        sa.Column('s3_key', sa.String(length=512), nullable=False, comment='对象存储中的Key（含路径前缀）'),
        sa.Column('filename', sa.String(length=255), nullable=False, comment='Key 的最后一段'),
        sa.Column('mime_type', sa.String(length=100), nullable=False, server_default='image/jpeg', comment='MIME类型'),
        sa.Column('width', sa.Integer(), nullable=False, server_default='0', comment='宽度（像素），未知为0'),
        sa.Column('height', sa.Integer(), nullable=False, server_default='0', comment='高度（像素），未知为0'),
        sa.Column('filesize', sa.BigInteger(), nullable=False, server_default='0', comment='文件大小（字节）'),
        sa.Column('title', sa.String(length=255), nullable=False, server_default='', comment='标题'),
        sa.Column('description', sa.Text(), nullable=False, comment='描述'),
        sa.Column('alt_text', sa.String(length=500), nullable=False, server_default='', comment='替代文本'),
        sa.Column('upload_date', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='上传时间（同步时取远端 LastModified）'),
        sa.Column('modified_date', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.Column('hash', sa.String(length=64), nullable=False, server_default='', comment='ETag 或上传内容 MD5'),
        sa.Column('hash_source', sa.String(length=16), nullable=False, server_default='upload', comment='hash 来源：etag/upload'),
        sa.Column('used_in_posts', sa.Integer(), nullable=False, server_default='0', comment='引用该图片的文章数'),
        sa.Column('last_synced', sa.DateTime(timezone=True), nullable=True, comment='最近一次同步时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('s3_key', name='uq_s3_images_s3_key'),
        comment='S3 图片元数据缓存表，记录桶中图片的尺寸与哈希'
    )
    op.create_index('ix_s3_images_upload_date', 's3_images', ['upload_date'], unique=False)
    op.create_index('ix_s3_images_modified_date', 's3_images', ['modified_date'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_s3_images_modified_date', table_name='s3_images')
    op.drop_index('ix_s3_images_upload_date', table_name='s3_images')
    op.drop_table('s3_images')
