"""
Image uploads to blob storage: profile pictures, compressed user images and
re-hosted remote images.
"""

from __future__ import annotations

import logging
import posixpath
import time
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

from fanslink.constants import PROFILE_PICTURE_PATH, USER_IMAGE_PATH
from fanslink.db import DbClient
from fanslink.errors import InvalidImageError
from fanslink.media import fetch_utils, image_utils
from fanslink.storage import StorageClient

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "image"


def _safe_filename(filename: Optional[str]) -> str:
    name = posixpath.basename((filename or "").replace("\\", "/")).strip()
    return name or DEFAULT_FILENAME


def filename_from_url(url: str) -> str:
    """Last path segment of `url`, used to name re-hosted images."""
    return _safe_filename(unquote(urlparse(url).path.rsplit("/", 1)[-1]))


def _now_ms() -> int:
    return int(time.time() * 1000)


class ImageService:
    def __init__(
        self,
        db: DbClient,
        storage: StorageClient,
        *,
        max_size_mb: float = image_utils.DEFAULT_MAX_SIZE_MB,
        max_dimension: int = image_utils.DEFAULT_MAX_DIMENSION,
        fetch_timeout: float = fetch_utils.REQUEST_TIMEOUT,
        clock: Callable[[], int] = _now_ms,
    ):
        self.db = db
        self.storage = storage
        self.max_size_mb = max_size_mb
        self.max_dimension = max_dimension
        self.fetch_timeout = fetch_timeout
        self.clock = clock

    def _user_image_path(self, uid: str, filename: str) -> str:
        return USER_IMAGE_PATH.format(
            uid=uid, timestamp=self.clock(), filename=_safe_filename(filename)
        )

    def update_profile_picture(
        self, uid: str, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        """
        Uploads a profile picture and stores its URL on the user record.

        The path is keyed by the original filename, so re-uploading a file
        with the same name replaces the previous object.
        """
        if not image_utils.detect_image_format(data):
            raise InvalidImageError("File is not a valid image")
        path = PROFILE_PICTURE_PATH.format(uid=uid, filename=_safe_filename(filename))
        url = self.storage.upload_bytes(path, data, content_type)
        try:
            self.db.set_user(uid, {"photoUrl": url}, merge=True)
        except Exception:
            # The blob stays behind without a reference.
            logger.exception("Error saving profile picture URL for %s", uid)
            raise
        return url

    def upload_image(self, uid: str, filename: str, data: bytes) -> str:
        try:
            compressed, content_type = image_utils.compress_image(
                data, max_size_mb=self.max_size_mb, max_dimension=self.max_dimension
            )
            return self.storage.upload_bytes(
                self._user_image_path(uid, filename), compressed, content_type
            )
        except Exception:
            logger.exception("Error uploading image for %s", uid)
            raise

    def import_remote_image(self, uid: str, image_url: str) -> str:
        """Re-hosts an external image under the user's image folder."""
        try:
            data, content_type = fetch_utils.fetch_image_bytes(
                image_url, timeout=self.fetch_timeout
            )
            return self.storage.upload_bytes(
                self._user_image_path(uid, filename_from_url(image_url)),
                data,
                content_type,
            )
        except Exception:
            logger.exception("Error downloading or uploading image %s", image_url)
            raise
