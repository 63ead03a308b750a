"""
BeeBark Backend — Post Route Handlers
=======================================

What:  The /api/post endpoints: create (multipart, optional image), the feed,
       like toggling and commenting.
How:   Thin handlers over PostService. Creation reads the uploaded image into
       memory (bounded by MAX_UPLOAD_SIZE in MediaService) before handing it on.

Request Flow (create):
    1. multipart/form-data with `description` and optional `image`
    2. image → MediaService (validate → stage → Cloudinary) → URL
    3. post row stored with the URL, 201 with the full post
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user_id
from app.schemas.common import ErrorResponse
from app.schemas.post import CommentCreate, PostResponse
from app.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/post", tags=["Posts"])

_NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}


@router.post(
    "",
    status_code=201,
    response_model=PostResponse,
    responses={
        400: {"description": "Invalid image type or size", "model": ErrorResponse},
        500: {"description": "Image upload failed", "model": ErrorResponse},
    },
    summary="Create a post",
)
async def create_post(
    description: str = Form("", description="Post text"),
    image: Optional[UploadFile] = File(None, description="Optional image (PNG, JPG, GIF, WEBP)"),
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    # Browsers send an empty part when no file was picked
    if image is None or not image.filename:
        return await post_service.create(db, author_id=current_user_id, description=description)

    try:
        content = await image.read()
        logger.info("Post image received: %s (%d bytes)", image.filename, len(content))
        return await post_service.create(
            db,
            author_id=current_user_id,
            description=description,
            image_filename=image.filename,
            image_content=content,
            image_size=image.size,
        )
    finally:
        await image.close()


@router.get("", response_model=List[PostResponse], summary="The feed, newest first")
async def list_posts(
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    return await post_service.list(db)


@router.put(
    "/{post_id}/like",
    response_model=PostResponse,
    responses=_NOT_FOUND,
    summary="Like or unlike a post",
    description="Toggles the caller in the post's like set and broadcasts likeUpdated.",
)
async def toggle_like(
    post_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.toggle_like(db, post_id, current_user_id)


@router.put(
    "/{post_id}/comment",
    response_model=PostResponse,
    responses=_NOT_FOUND,
    summary="Comment on a post",
    description="Appends a comment and broadcasts the post's full comment list (commentAdded).",
)
async def add_comment(
    post_id: UUID,
    body: CommentCreate,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.add_comment(db, post_id, current_user_id, body.content)
