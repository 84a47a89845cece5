import os
from pathlib import PurePosixPath
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from core.config import settings
from core.exceptions import ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


MEDIA_EXTENSIONS = {
    "image": {"jpg", "jpeg", "png", "gif", "webp", "bmp", "svg", "avif", "heic", "tiff", "ico"},
    "video": {
        "mp4", "mov", "webm", "mkv", "avi", "m4v", "ogv", "flv", "m3u8",
        "mpeg", "mpg", "3gp", "3g2", "wmv", "ts", "mts", "m2ts",
    },
}


def extract_public_id(url: str, kind: str) -> str:
    """
    Derive the storage object id from a delivery URL: the last path segment
    without its extension, e.g.
    https://res.cloudinary.com/demo/image/upload/v1712/abc123.png -> "abc123".

    Raises:
        ValidationError: unknown kind, or an extension that kind never produces
    """
    if kind not in MEDIA_EXTENSIONS:
        raise ValidationError(f"Unsupported media kind '{kind}', expected 'image' or 'video'")

    segment = PurePosixPath(urlparse(url or "").path).name
    public_id, dot, extension = segment.rpartition(".")

    if not dot or not public_id:
        raise ValidationError(f"Cannot derive a media id from URL '{url}': missing file extension")

    if extension.lower() not in MEDIA_EXTENSIONS[kind]:
        raise ValidationError(
            f"Unrecognized {kind} extension '.{extension}' in URL '{url}'"
        )

    return public_id


class MediaService:
    """
    Adapter around Cloudinary: turns staged local files into durable URLs and
    removes remote objects again.
    """

    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True
        )

    def upload(self, local_path: str | None) -> dict | None:
        """
        Upload a staged file. The local file is removed whatever the outcome.

        Returns:
            {"url": ..., "duration": ...} (duration is None for images),
            or None when there was nothing to upload or the upload failed
        """
        if not local_path:
            return None

        try:
            result = cloudinary.uploader.upload(local_path, resource_type="auto")
        except (CloudinaryError, OSError) as e:
            logger.error(
                f"Media upload failed: {str(e)}",
                extra={"local_path": local_path, "error_type": type(e).__name__},
                exc_info=True
            )
            return None
        finally:
            _remove_local_file(local_path)

        url = result.get("secure_url") or result.get("url")
        if not url:
            logger.error("Media upload returned no URL", extra={"local_path": local_path})
            return None

        logger.info("Media uploaded", extra={"url": url, "resource_type": result.get("resource_type")})
        return {"url": url, "duration": result.get("duration")}

    def delete(self, url: str, kind: str) -> None:
        """
        Best-effort removal of a remote object. Storage failures are logged,
        never raised; a URL whose extension does not fit kind is rejected.
        """
        public_id = extract_public_id(url, kind)

        try:
            result = cloudinary.uploader.destroy(public_id, resource_type=kind)
        except CloudinaryError as e:
            logger.error(
                f"Media delete failed: {str(e)}",
                extra={"url": url, "public_id": public_id, "resource_type": kind},
                exc_info=True
            )
            return

        if result.get("result") != "ok":
            logger.warning(
                "Media delete was not acknowledged",
                extra={"url": url, "public_id": public_id, "result": result.get("result")}
            )
            return

        logger.info("Media deleted", extra={"public_id": public_id, "resource_type": kind})


def _remove_local_file(local_path: str):
    try:
        os.remove(local_path)
    except FileNotFoundError:
        pass


def discard_media(media: MediaService, url: str, kind: str) -> None:
    """
    Cleanup of a remote object after the database change it belonged to was
    committed. A URL the object id cannot be derived from is logged and
    skipped; the committed change stands.
    """
    try:
        media.delete(url, kind)
    except ValidationError as e:
        logger.warning(
            f"Media cleanup skipped: {e.message}",
            extra={"url": url, "resource_type": kind}
        )
