"""
Image upload storage on the local filesystem.

Files are written under fresh UUID names and served back through the
application's static uploads mount.
"""
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from fastapi import UploadFile

from tripboard.domain.errors import ValidationError

logger = logging.getLogger(__name__)


IMAGE_MIME_TO_EXT = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


@dataclass(frozen=True)
class StoredUpload:
    """A file written by the store."""
    filename: str
    path: Path
    url: str


class UploadStore:
    """
    Writes validated image uploads into a directory.

    Callers check authorization before saving and call cleanup() when the
    database write that references the files fails.
    """

    def __init__(self, directory: Path | str, url_prefix: str, max_file_size: int):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_file_size = max_file_size

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def validate(self, files: Sequence[UploadFile]) -> None:
        """Reject anything that is not an image before touching the disk."""
        for upload in files:
            content_type = (upload.content_type or "").lower()
            if not content_type.startswith("image/"):
                raise ValidationError("Only image uploads are allowed.")
            if upload.size is not None and upload.size > self.max_file_size:
                raise ValidationError(self._too_large_message())

    def _too_large_message(self) -> str:
        return f"Each image must be {self.max_file_size // (1024 * 1024)}MB or smaller."

    def _filename_for(self, upload: UploadFile) -> str:
        extension = Path(upload.filename or "").suffix.lower()
        if not extension:
            extension = IMAGE_MIME_TO_EXT.get((upload.content_type or "").lower(), ".jpg")
        return f"{uuid.uuid4()}{extension}"

    async def save(self, files: Sequence[UploadFile]) -> List[StoredUpload]:
        """
        Validate and write every file.

        Either all files are written or none remain on disk.
        """
        self.validate(files)
        self.ensure_directory()

        stored: List[StoredUpload] = []
        try:
            for upload in files:
                content = await upload.read(self.max_file_size + 1)
                if len(content) > self.max_file_size:
                    raise ValidationError(self._too_large_message())

                filename = self._filename_for(upload)
                path = self.directory / filename
                path.write_bytes(content)
                stored.append(StoredUpload(filename=filename, path=path, url=f"{self.url_prefix}/{filename}"))
        except Exception:
            self.cleanup(stored)
            raise

        logger.debug(f"Stored {len(stored)} upload(s) in {self.directory}")
        return stored

    def cleanup(self, stored: Sequence[StoredUpload]) -> None:
        """Remove written files; failures are logged and ignored."""
        for item in stored:
            try:
                item.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove upload {item.path}: {e}")
