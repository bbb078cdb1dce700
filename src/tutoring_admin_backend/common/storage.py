'''
Flat on-disk storage for uploaded materials.

Files land in settings.UPLOAD_DIR under a generated name and are served
back from the /uploads static mount.
'''
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from .config import settings
from .exceptions import ValidationError
from .logger import log

UPLOAD_URL_PREFIX = "/uploads/"

ALLOWED_EXTENSIONS = {
    ".jpeg", ".jpg", ".png", ".gif",
    ".mp4", ".avi",
    ".pdf",
    ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx",
}

CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredFile:
    filename: str
    url: str
    mime_type: str
    path: Path


class FileStorage:
    """
    Writes uploads to a single directory and deletes them by URL.
    """
    def __init__(self, directory: Path | None = None, max_size_bytes: int | None = None):
        self.directory = directory or settings.upload_path
        self.max_size_bytes = max_size_bytes or settings.max_upload_size_bytes

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _extension(original_name: str | None) -> str:
        return Path(original_name or "").suffix.lower()

    def generate_filename(self, field_name: str, original_name: str | None) -> str:
        """<field>-<epoch ms>-<random><ext>"""
        suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        return f"{field_name}-{suffix}{self._extension(original_name)}"

    def validate(self, upload: UploadFile) -> None:
        extension = self._extension(upload.filename)
        if extension not in ALLOWED_EXTENSIONS:
            log.warning(f"Rejected upload '{upload.filename}': extension not allowed.")
            raise ValidationError(
                "Only images, videos, PDF or Office documents can be uploaded."
            )

    async def save(self, upload: UploadFile, field_name: str = "file") -> StoredFile:
        """
        Streams the upload to disk, enforcing the extension allow-list and size limit.
        A partially written file is removed when the limit is exceeded.
        """
        self.validate(upload)
        self.ensure_directory()

        filename = self.generate_filename(field_name, upload.filename)
        path = self.directory / filename
        written = 0
        try:
            with open(path, "wb") as out:
                while chunk := await upload.read(CHUNK_SIZE):
                    written += len(chunk)
                    if written > self.max_size_bytes:
                        raise ValidationError(
                            f"File is too large. Maximum size is {self.max_size_bytes // (1024 * 1024)} MB."
                        )
                    out.write(chunk)
        except Exception:
            path.unlink(missing_ok=True)
            raise

        log.info(f"Stored upload '{upload.filename}' as '{filename}' ({written} bytes).")
        return StoredFile(
            filename=filename,
            url=f"{UPLOAD_URL_PREFIX}{filename}",
            mime_type=upload.content_type or "application/octet-stream",
            path=path,
        )

    def path_for_url(self, file_url: str | None) -> Path | None:
        """Maps a stored /uploads/ URL back to its file. Other URLs (external links) map to None."""
        if not file_url or not file_url.startswith(UPLOAD_URL_PREFIX):
            return None
        filename = os.path.basename(file_url[len(UPLOAD_URL_PREFIX):])
        if not filename:
            return None
        return self.directory / filename

    def delete_by_url(self, file_url: str | None) -> bool:
        path = self.path_for_url(file_url)
        if path is None or not path.exists():
            return False
        path.unlink()
        log.info(f"Deleted stored file '{path.name}'.")
        return True


def get_file_storage() -> FileStorage:
    """FastAPI dependency providing the configured storage."""
    return FileStorage()
