"""S3 图片存储相关路由。"""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, Union

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile

from api.dependencies import get_s3_image_service, require_api_key
from application.dto import (
    ConnectionTestDTO,
    GalleryImageDTO,
    ImageDTO,
    ImageListQueryDTO,
    ImageUpdateDTO,
    StorageStatusDTO,
    SyncRequestDTO,
    SyncResultDTO,
    parse_gallery_id,
)
from application.services.s3_image_service import S3ImageService
from application.utils.storage import guess_content_type
from core.config import settings
from core.response import (
    OffsetPage,
    Response as ApiResponse,
    offset_page_response,
    success_response,
)
from domain.common.exceptions import DomainValidationException

router = APIRouter(
    prefix="/storage/s3",
    tags=["S3 图片存储"],
    dependencies=[Depends(require_api_key)],
)


def _parse_image_id(raw: str) -> int:
    """接受数字ID或画廊格式的 ``s3-{id}``"""
    if raw.isdigit():
        return int(raw)
    image_id = parse_gallery_id(raw)
    if image_id is None:
        raise DomainValidationException(f"Invalid image id: {raw}", field="image_id")
    return image_id


@router.get(
    "/images",
    summary="图片列表",
    response_model=ApiResponse[OffsetPage[Union[GalleryImageDTO, ImageDTO]]],
)
async def list_images(
    order_by: str = Query("upload_date"),
    order: Literal["asc", "desc", "ASC", "DESC"] = Query("desc"),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    modified_after: Optional[datetime] = Query(None),
    min_size: Optional[int] = Query(None, ge=0),
    view: Literal["record", "gallery"] = Query("record", description="gallery 返回画廊格式（id 带 s3- 前缀）"),
    service: S3ImageService = Depends(get_s3_image_service),
):
    filters = ImageListQueryDTO(
        order_by=order_by,
        order=order,
        limit=limit,
        offset=offset,
        modified_after=modified_after,
        min_size=min_size,
    )
    images = await service.get_images(filters)
    total = await service.count_images()
    items = [service.to_gallery(image) for image in images] if view == "gallery" else images
    return offset_page_response(items=items, total=total, limit=limit, offset=offset)


@router.get(
    "/images/{image_id}",
    summary="图片详情",
    response_model=ApiResponse[ImageDTO],
)
async def get_image(
    image_id: str,
    service: S3ImageService = Depends(get_s3_image_service),
):
    image = await service.get_image_by_id(_parse_image_id(image_id))
    return success_response(data=image)


@router.post(
    "/images",
    summary="上传图片到 S3",
    response_model=ApiResponse[GalleryImageDTO],
    status_code=201,
)
async def upload_image(
    file: UploadFile = File(..., description="图片文件"),
    title: str = Form("", description="标题，同时作为 alt 文本"),
    service: S3ImageService = Depends(get_s3_image_service),
):
    filename = file.filename or "upload.jpg"
    mime_type = file.content_type or guess_content_type(filename)
    data = await file.read()
    image = await service.upload_image(data, filename, mime_type, title)
    return success_response(data=service.to_gallery(image), message="图片上传成功")


@router.patch(
    "/images/{image_id}",
    summary="更新图片元数据",
    response_model=ApiResponse[ImageDTO],
)
async def update_image(
    image_id: str,
    payload: ImageUpdateDTO,
    service: S3ImageService = Depends(get_s3_image_service),
):
    image = await service.update_image(_parse_image_id(image_id), payload.changes())
    return success_response(data=image, message="图片已更新")


@router.delete(
    "/images/{image_id}",
    summary="删除图片（先删桶内对象，再删本地记录）",
    response_model=ApiResponse[dict],
)
async def delete_image(
    image_id: str,
    service: S3ImageService = Depends(get_s3_image_service),
):
    parsed = _parse_image_id(image_id)
    await service.delete_image(parsed)
    return success_response(data={"id": parsed, "deleted": True}, message="图片已删除")


@router.post(
    "/test-connection",
    summary="测试 S3 连接",
    response_model=ApiResponse[ConnectionTestDTO],
)
async def test_connection(service: S3ImageService = Depends(get_s3_image_service)):
    result = await service.test_connection()
    return success_response(data=ConnectionTestDTO(success=result.success, message=result.message))


@router.post(
    "/sync",
    summary="从桶同步图片元数据",
    response_model=ApiResponse[SyncResultDTO],
)
async def sync_bucket(
    payload: Optional[SyncRequestDTO] = Body(default=None),
    service: S3ImageService = Depends(get_s3_image_service),
):
    payload = payload or SyncRequestDTO()
    prune = settings.s3.sync_prune_missing if payload.prune_missing is None else payload.prune_missing
    result = await service.sync_from_bucket(
        prune_missing=prune,
        continuation_token=payload.continuation_token,
        max_pages=payload.max_pages,
    )
    return success_response(data=result, message="同步完成")


@router.get(
    "/status",
    summary="S3 存储状态",
    response_model=ApiResponse[StorageStatusDTO],
)
async def storage_status(service: S3ImageService = Depends(get_s3_image_service)):
    return success_response(data=await service.status())
