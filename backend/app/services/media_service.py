"""
BeeBark Backend — Media Upload Service
========================================

What:  Validates a post image, stages it on disk, uploads it to Cloudinary and
       returns the hosted URL.
Why:   Post images are served by the media host, not by this backend; the
       post row stores the returned reference verbatim.
How:   extension check → size check → libmagic header check → aiofiles write
       to the staging dir → cloudinary.uploader.upload (wrapped in tenacity
       retries, run in a worker thread since the SDK is blocking) → staged
       file removed in all cases.
Who:   Called by PostService.create when the request carries a file.

Failure:
    Any upload failure after the retries surfaces as MediaUploadError and the
    post is not created.
"""

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import cloudinary
import cloudinary.uploader
import magic
from tenacity import (
    before_sleep_log,
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import settings
from app.exceptions import MediaUploadError, MediaValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
ALLOWED_MIME_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}


class MediaService:
    """
    Upload pipeline for post images.

    Staging directory:
        public/
        └── 3f2c...-9a.jpg   (UUID name, removed right after the upload)
    """

    def __init__(self, staging_dir: Optional[str] = None):
        """
        Args:
            staging_dir: Override the staging directory (used in tests).
        """
        self.staging_dir = Path(staging_dir or settings.upload_tmp_dir).resolve()
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        self._configured = False

    def _configure(self) -> None:
        if self._configured:
            return
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )
        self._configured = True

    def _validate_extension(self, filename: str) -> str:
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise MediaValidationError(
                message=(
                    f"File type '{ext or 'unknown'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext},
            )
        return ext

    def _validate_size(self, content: bytes, content_length: Optional[int]) -> None:
        """Content-Length is checked first; some clients misreport it, so the real size is checked too."""
        max_mb = settings.max_upload_size / (1024 * 1024)
        if not content:
            raise MediaValidationError(message="Uploaded image is empty", field="image")

        size = max(content_length or 0, len(content))
        if size > settings.max_upload_size:
            raise MediaValidationError(
                message=f"Image is too large. Maximum size is {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "size": size},
            )

    def _validate_content(self, content: bytes) -> str:
        """
        Detect the real type from the file header with libmagic.

        A renamed non-image passes the extension check but not this one.
        """
        try:
            mime_type = magic.from_buffer(content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise MediaUploadError(
                message="Could not verify image type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise MediaValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a valid image."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    async def _stage(self, content: bytes, extension: str) -> Path:
        path = self.staging_dir / f"{uuid.uuid4()}{extension}"
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to stage upload at %s: %s", path, str(e))
            raise MediaUploadError(
                message="Failed to save uploaded image. Please try again.",
                context={"os_error": str(e)},
            )
        return path

    async def _cleanup(self, path: Path) -> None:
        # A staged file that cannot be removed is logged, not surfaced: the
        # user's request has already succeeded or failed on its own terms.
        try:
            if path.exists():
                os.remove(path)
        except OSError as e:
            logger.warning("Failed to remove staged upload %s: %s", path.name, str(e))

    @retry(
        stop=stop_after_attempt(settings.media_retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.media_retry_min_wait,
            max=settings.media_retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _upload_to_host(self, path: Path) -> Dict[str, Any]:
        self._configure()
        return await asyncio.to_thread(
            cloudinary.uploader.upload,
            str(path),
            folder=settings.cloudinary_folder,
            resource_type="image",
        )

    async def upload_image(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Validate, stage and upload an image.

        Returns:
            The media host's secure URL for the image.

        Raises:
            MediaValidationError: bad extension or content, empty or oversized file (400)
            MediaUploadError: staging or upload failed (500)
        """
        ext = self._validate_extension(filename)
        self._validate_size(content, content_length)
        self._validate_content(content)

        staged = await self._stage(content, ext)
        try:
            result = await self._upload_to_host(staged)
        except Exception as e:
            logger.error("Media upload failed for %s: %s", filename, str(e))
            raise MediaUploadError(context={"error_type": type(e).__name__})
        finally:
            await self._cleanup(staged)

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise MediaUploadError(
                message="Media host did not return an image URL.",
                context={"result_keys": sorted(result)},
            )

        logger.info("Image uploaded: %s (%d bytes)", result.get("public_id", url), len(content))
        return url


# ── Singleton Instance ────────────────────────────────────────────────────
media_service = MediaService()
