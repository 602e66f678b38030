"""File storage for uploaded answer files.

Files land under UPLOAD_DIR and are served from PUBLIC_FILES_URL by the web
tier. Anything with the same upload/public_url shape can stand in.
"""
import logging
import re
from pathlib import Path
from typing import Optional

from formdesk.core.config import settings
from formdesk.core.exceptions import UploadError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", Path(name or "").name).strip("._")
    return cleaned or "upload"


class LocalFileStorage:
    def __init__(
        self,
        upload_dir: Optional[str] = None,
        public_base_url: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.public_base_url = (public_base_url or settings.PUBLIC_FILES_URL).rstrip("/")
        self.max_size = max_size if max_size is not None else settings.MAX_UPLOAD_SIZE

    def upload(self, path: str, content: bytes, max_size: Optional[int] = None) -> str:
        """Write content at the relative path and return its public URL."""
        limit = min(self.max_size, max_size) if max_size else self.max_size
        if len(content) > limit:
            raise UploadError(f"File is larger than {limit} bytes")

        target = self.upload_dir / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("wb") as buffer:
                buffer.write(content)
        except OSError as e:
            raise UploadError(f"Could not store {path}: {e}") from e

        logger.info("Stored upload %s (%d bytes)", path, len(content))
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"
