"""
File Storage Service
Uploaded images and reference documents served under /images
"""
from pathlib import Path
from typing import Optional, Tuple
import re
import shutil
import uuid

from fastapi import UploadFile

from gims.core.config import settings
from gims.core.exceptions import ValidationError, NotFoundError
from gims.core.logging import get_logger

logger = get_logger("request_records")

PUBLIC_PREFIX = "/images/"

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
}

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileStorageService:
    """Stores uploads below ``UPLOAD_DIR/<folder>/``"""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root or settings.UPLOAD_DIR).resolve()

    def save_upload(self, file: UploadFile, folder: str = "request",
                    custom_name: Optional[str] = None) -> str:
        """Write the upload and return its public ``/images/...`` path"""
        if file is None or not file.filename:
            raise ValidationError("No file provided")

        folder = (folder or "request").strip("/")
        if not all(_SAFE_NAME.match(part) for part in folder.split("/")) or ".." in folder:
            raise ValidationError("Invalid folder name")

        extension = Path(file.filename).suffix.lower()
        if custom_name:
            if not _SAFE_NAME.match(custom_name):
                raise ValidationError("Invalid file name")
            filename = f"{custom_name}{extension}"
        else:
            filename = f"{uuid.uuid4()}{extension}"

        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / filename

        with open(target, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)

        if target.stat().st_size > settings.MAX_UPLOAD_SIZE:
            target.unlink()
            raise ValidationError("File too large")

        logger.info(f"Stored upload {file.filename} as {folder}/{filename}")
        return f"{PUBLIC_PREFIX}{folder}/{filename}"

    def resolve(self, relative_path: str) -> Tuple[Path, str]:
        """Absolute path and content type of a stored file"""
        candidate = (self.root / relative_path.lstrip("/")).resolve()
        if self.root not in candidate.parents or not candidate.is_file():
            raise NotFoundError("Not found")
        return candidate, MIME_TYPES.get(candidate.suffix.lower(), "application/octet-stream")

    def delete_public_path(self, public_path: Optional[str]) -> bool:
        """
        Remove a previously stored file given its public path

        Failures are logged and reported as False, never raised.
        """
        if not public_path or not public_path.startswith(PUBLIC_PREFIX):
            return False
        try:
            path, _ = self.resolve(public_path[len(PUBLIC_PREFIX):])
            path.unlink()
            logger.info(f"Deleted superseded file {public_path}")
            return True
        except NotFoundError:
            logger.warning(f"Superseded file {public_path} not found")
        except OSError as e:
            logger.error(f"Failed to delete superseded file {public_path}: {e}")
        return False
