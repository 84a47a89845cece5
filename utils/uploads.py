import shutil
import uuid
from pathlib import Path

from fastapi import UploadFile

from core.config import settings
from utils.logger import get_logger

logger = get_logger(__name__)


def save_upload(upload: UploadFile | None) -> str | None:
    """
    Stage a multipart file on local disk so the media adapter can push it to
    object storage. The adapter removes the file once the upload is done.

    Returns:
        Local path of the staged file, or None when no file was sent
    """
    if upload is None or not upload.filename:
        return None

    temp_dir = Path(settings.UPLOAD_TEMP_DIR)
    temp_dir.mkdir(parents=True, exist_ok=True)

    # Prefix keeps two clients uploading "video.mp4" at once from clobbering each other
    local_path = temp_dir / f"{uuid.uuid4().hex}_{Path(upload.filename).name}"

    with local_path.open("wb") as buffer:
        shutil.copyfileobj(upload.file, buffer)

    logger.debug(
        "Upload staged",
        extra={"upload_filename": upload.filename, "local_path": str(local_path)}
    )
    return str(local_path)


def discard_staged(*local_paths: str | None):
    """Remove staged files the media adapter never consumed (request failed early)."""
    for local_path in local_paths:
        if not local_path:
            continue
        try:
            Path(local_path).unlink()
        except FileNotFoundError:
            pass
