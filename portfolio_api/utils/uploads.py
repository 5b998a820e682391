"""Multipart upload acceptance and local media storage.

Files are classified by their form field name into a folder under the
upload root, checked against a media-type allow-list, size and count
limits, and stored under a generated collision-resistant name that keeps
the original extension. Every part is checked before anything is
written.
"""

from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence

from PIL import Image

from ..errors import UploadRejected

logger = logging.getLogger("portfolio_api.uploads")

URL_PREFIX = "/uploads"

ALLOWED_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}
IMAGE_TYPES = {k: v for k, v in ALLOWED_TYPES.items() if k.startswith("image/")}
DOCUMENT_TYPES = {k: v for k, v in ALLOWED_TYPES.items() if not k.startswith("image/")}

FIELD_FOLDERS = {
    "avatar": "avatars",
    "resume": "resumes",
    "projectImages": "projects",
    "companyLogo": "logos",
    "institutionLogo": "logos",
    "logo": "logos",
}
FIELD_TYPES = {
    "avatar": IMAGE_TYPES,
    "resume": DOCUMENT_TYPES,
    "projectImages": IMAGE_TYPES,
    "companyLogo": IMAGE_TYPES,
    "institutionLogo": IMAGE_TYPES,
    "logo": IMAGE_TYPES,
}


def folder_for(field: str) -> str:
    return FIELD_FOLDERS.get(field, "misc")


@dataclass
class StoredFile:
    field: str
    filename: str
    original_name: str
    content_type: str
    size: int
    path: Path
    url: str


def _validate_filename(filename: Optional[str]) -> str:
    if not filename or len(filename) > 200:
        raise UploadRejected("invalid filename")
    if "/" in filename or "\\" in filename:
        raise UploadRejected("invalid filename path")
    return filename


def _verify_image(payload: bytes, filename: str) -> None:
    try:
        Image.open(io.BytesIO(payload)).verify()
    except Exception:
        raise UploadRejected(f"File {filename} is not a valid image")


class UploadStore:
    def __init__(self, root: Path, max_bytes: int, max_files: int):
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.max_files = max_files

    @classmethod
    def from_settings(cls, settings) -> "UploadStore":
        return cls(settings.UPLOAD_DIR, settings.MAX_UPLOAD_BYTES, settings.MAX_FILES_PER_REQUEST)

    def ensure_dirs(self) -> None:
        for folder in set(FIELD_FOLDERS.values()) | {"misc"}:
            (self.root / folder).mkdir(parents=True, exist_ok=True)

    def accept(self, field: str, files: Sequence, max_files: Optional[int] = None) -> List[StoredFile]:
        """Check every part of `files` and store them under `field`'s folder.

        `files` are Starlette `UploadFile` objects (anything with
        `filename`, `content_type` and a readable `file`).
        """
        limit = min(max_files or self.max_files, self.max_files)
        files = [f for f in files if f is not None]
        if not files:
            raise UploadRejected("No files uploaded")
        if len(files) > limit:
            raise UploadRejected(f"Too many files: at most {limit} allowed per request")

        allowed = FIELD_TYPES.get(field, ALLOWED_TYPES)
        pending = []
        for upload in files:
            content_type = (upload.content_type or "").lower()
            if content_type not in allowed:
                raise UploadRejected(
                    f"File type {content_type or 'unknown'} not allowed. Allowed types: {', '.join(allowed)}"
                )
            filename = _validate_filename(upload.filename)
            payload = upload.file.read(self.max_bytes + 1)
            if len(payload) > self.max_bytes:
                raise UploadRejected(f"File {filename} exceeds the maximum size of {self.max_bytes} bytes")
            if content_type in IMAGE_TYPES:
                _verify_image(payload, filename)
            pending.append((filename, content_type, payload))

        return [self._write(field, filename, content_type, payload) for filename, content_type, payload in pending]

    def _write(self, field: str, original_name: str, content_type: str, payload: bytes) -> StoredFile:
        ext = PurePosixPath(original_name).suffix.lower() or ALLOWED_TYPES[content_type]
        name = f"{field}-{uuid.uuid4().hex}{ext}"
        folder = folder_for(field)
        target = self.root / folder / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
        logger.info("upload_stored field=%s path=%s size=%d", field, target, len(payload))
        return StoredFile(
            field=field,
            filename=name,
            original_name=original_name,
            content_type=content_type,
            size=len(payload),
            path=target,
            url=f"{URL_PREFIX}/{folder}/{name}",
        )

    def path_for_url(self, url: str) -> Optional[Path]:
        """Map a `/uploads/<folder>/<name>` URL back to its file, if it is one of ours."""
        if not url or not url.startswith(URL_PREFIX + "/"):
            return None
        relative = PurePosixPath(url[len(URL_PREFIX) + 1:])
        if ".." in relative.parts or len(relative.parts) != 2:
            return None
        return self.root.joinpath(*relative.parts)

    def remove(self, url: str) -> bool:
        """Delete the stored file behind `url`.

        Returns False for URLs that do not point into the upload root
        (e.g. externally hosted media); raises if the file cannot be removed.
        """
        path = self.path_for_url(url)
        if path is None:
            logger.info("upload_remove_skipped url=%s", url)
            return False
        path.unlink()
        logger.info("upload_removed path=%s", path)
        return True
