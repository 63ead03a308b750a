"""
BeeBark Backend — Post Engagement Service
===========================================

What:  Creates posts, lists the feed, toggles likes and appends comments.
How:   Direct queries on the caller's session. Likes and comments write a
       notification for the post's author unless the author is the actor,
       commit, then broadcast the new like set / comment list to every
       connected socket.
Who:   Called by the /api/post routes.

Broadcast scope:
    likeUpdated and commentAdded go to all clients, not just the author's
    connections. The feed is global, so every open feed shows the change.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import DatabaseError, NotFoundError
from app.models.notification import NotificationType
from app.models.post import Post, PostComment, PostLike
from app.schemas.post import CommentResponse, PostResponse
from app.schemas.user import PublicUser
from app.services.fanout import (
    COMMENT_ADDED_EVENT,
    LIKE_UPDATED_EVENT,
    FanoutChannel,
    fanout_channel,
)
from app.services.media_service import MediaService, media_service
from app.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)


def _post_query():
    """Post with everything a PostResponse projects, loaded eagerly."""
    return select(Post).options(
        selectinload(Post.author),
        selectinload(Post.likes),
        selectinload(Post.comments).selectinload(PostComment.user),
    )


def to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        author=PublicUser.model_validate(post.author),
        description=post.description,
        image=post.image,
        like=post.like_user_ids,
        comment=[CommentResponse.model_validate(c) for c in post.comments],
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


class PostService:
    """Feed and engagement operations; broadcasts after every committed change."""

    def __init__(
        self,
        fanout: FanoutChannel = fanout_channel,
        notifications: NotificationService = notification_service,
        media: MediaService = media_service,
    ):
        self.fanout = fanout
        self.notifications = notifications
        self.media = media

    async def _load(self, db: AsyncSession, post_id: UUID) -> Post:
        result = await db.execute(
            _post_query()
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(
                resource="post", resource_id=str(post_id), message="Post not found"
            )
        return post

    async def create(
        self,
        db: AsyncSession,
        author_id: UUID,
        description: str,
        image_filename: Optional[str] = None,
        image_content: Optional[bytes] = None,
        image_size: Optional[int] = None,
    ) -> PostResponse:
        """
        Store a new post, uploading its image first when one is given.

        Raises:
            MediaValidationError: image rejected before upload (400)
            MediaUploadError:     media host upload failed (500); nothing stored
        """
        image_url = None
        if image_content is not None:
            image_url = await self.media.upload_image(
                filename=image_filename or "upload.jpg",
                content=image_content,
                content_length=image_size,
            )

        post = Post(author_id=author_id, description=description, image=image_url)
        db.add(post)
        await db.flush()
        logger.info("Post %s created by %s (image=%s)", post.id, author_id, bool(image_url))

        return to_response(await self._load(db, post.id))

    async def list(self, db: AsyncSession) -> List[PostResponse]:
        """Every post, newest first."""
        try:
            result = await db.execute(_post_query().order_by(Post.created_at.desc()))
            posts = result.scalars().all()
        except Exception as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            )
        return [to_response(post) for post in posts]

    async def toggle_like(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> PostResponse:
        """
        Like the post, or unlike it if `user_id` already likes it.

        Only a new like by someone other than the author creates a
        notification; unliking never does.
        """
        post = await self._load(db, post_id)

        existing = next((like for like in post.likes if like.user_id == user_id), None)
        if existing is not None:
            post.likes.remove(existing)
            logger.info("Post %s unliked by %s", post_id, user_id)
        else:
            author_id = post.author_id
            post.likes.append(PostLike(user_id=user_id))
            try:
                await db.flush()
            except IntegrityError:
                # A concurrent like by the same user landed first; keep theirs
                await db.rollback()
                logger.info("Post %s already liked by %s; concurrent like ignored", post_id, user_id)
                return await self._broadcast_likes(db, post_id)

            logger.info("Post %s liked by %s", post_id, user_id)
            if author_id != user_id:
                await self.notifications.create(
                    db,
                    receiver_id=author_id,
                    notification_type=NotificationType.LIKE,
                    related_user_id=user_id,
                    related_post_id=post_id,
                )

        await db.flush()
        await db.commit()
        return await self._broadcast_likes(db, post_id)

    async def _broadcast_likes(self, db: AsyncSession, post_id: UUID) -> PostResponse:
        response = to_response(await self._load(db, post_id))
        await self.fanout.broadcast(
            LIKE_UPDATED_EVENT,
            {"postId": str(post_id), "likes": [str(uid) for uid in response.like]},
        )
        return response

    async def add_comment(
        self, db: AsyncSession, post_id: UUID, user_id: UUID, content: str
    ) -> PostResponse:
        """Append a comment; notifies the author unless they wrote it."""
        post = await self._load(db, post_id)

        post.comments.append(PostComment(user_id=user_id, content=content))
        if post.author_id != user_id:
            await self.notifications.create(
                db,
                receiver_id=post.author_id,
                notification_type=NotificationType.COMMENT,
                related_user_id=user_id,
                related_post_id=post.id,
            )

        await db.flush()
        await db.commit()
        logger.info("Comment added to post %s by %s", post_id, user_id)

        response = to_response(await self._load(db, post_id))
        await self.fanout.broadcast(
            COMMENT_ADDED_EVENT,
            {
                "postId": str(post_id),
                "comments": [c.model_dump(mode="json") for c in response.comment],
            },
        )
        return response


# ── Singleton Instance ────────────────────────────────────────────────────
post_service = PostService()
