"""Photo upload and AI description endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from civicconnect.api.deps import get_object_store, get_pipeline
from civicconnect.core.audit import audit_log, AuditAction
from civicconnect.core.auth import authenticate_request
from civicconnect.core.exceptions import ValidationException
from civicconnect.core.rbac import AuthContext
from civicconnect.schemas.media import DescribeRequest, DescribeResponse, UploadResponse
from civicconnect.services.ingestion import IngestionPipeline
from civicconnect.services.storage import ObjectStore

logger = logging.getLogger("api.media")
router = APIRouter()


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    context: AuthContext = Depends(authenticate_request),
    store: ObjectStore = Depends(get_object_store),
) -> UploadResponse:
    """
    Store a photo and return the URL to put in a report's ``images``.

    Multipart field name is ``image``; JPEG, PNG, WebP and GIF only.
    """
    if image is None:
        raise ValidationException("No file uploaded", field="image")

    data = await image.read()
    url = await store.upload(data, image.content_type, image.filename)

    audit_log.log(
        AuditAction.IMAGE_UPLOAD,
        request_id=context.request_id,
        actor_id=context.user_id,
        details={"size": len(data), "content_type": image.content_type},
    )
    return UploadResponse(image_url=url)


@router.post("/ai/describe", response_model=DescribeResponse)
async def describe_image(
    body: DescribeRequest,
    context: AuthContext = Depends(authenticate_request),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> DescribeResponse:
    """
    Suggest a description, category and severity for an uploaded photo.

    Nothing is stored; the client reviews the suggestion and submits the report.
    """
    result = await pipeline.describe(body.image_url)

    audit_log.log(
        AuditAction.AI_CLASSIFY,
        request_id=context.request_id,
        actor_id=context.user_id,
        details={"category": result.category.value, "severity": result.severity.value},
    )
    return result
