"""
Filesystem storage for book cover images.

Uploaded covers are written into a single directory under a generated
name and referenced by a public path such as
``/images/cover_1718000000000000000_3fa2c1d0.png``.  The same directory
is mounted as static files by the application so the reference can be
fetched directly.

Deleting a cover is advisory: :meth:`CoverStorage.delete` never
raises, it only logs what it could not remove.
"""

import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from ..core.errors import StorageError, UnsupportedMediaTypeError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})


@dataclass
class CoverUpload:
    """An uploaded file as received by the API layer."""

    filename: str
    content: bytes


def cover_extension(filename: str) -> Optional[str]:
    """Lower-cased extension of ``filename`` if it is allowed, else ``None``."""
    ext = os.path.splitext(filename or "")[1].lower()
    return ext if ext in ALLOWED_EXTENSIONS else None


class CoverStorage:
    """Stores cover images in ``upload_dir`` and serves them under ``url_prefix``."""

    def __init__(self, upload_dir: str, url_prefix: str = "/images") -> None:
        self.upload_dir = Path(upload_dir).resolve()
        self.url_prefix = "/" + url_prefix.strip("/")

    def save(self, content: bytes, original_filename: str) -> str:
        """Write ``content`` to a new file and return its public reference.

        Raises ``UnsupportedMediaTypeError`` if the extension is not one
        of .jpg, .jpeg or .png (any case) and ``StorageError`` if the
        file cannot be written.
        """
        ext = cover_extension(original_filename)
        if ext is None:
            raise UnsupportedMediaTypeError(
                "Invalid file type. Only JPG, JPEG, PNG files are allowed",
                detail=original_filename,
            )
        filename = f"cover_{time.time_ns()}_{secrets.token_hex(4)}{ext}"
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            # "xb" fails instead of overwriting if a name ever repeats
            with open(self.upload_dir / filename, "xb") as fh:
                fh.write(content)
        except OSError as e:
            raise StorageError("Failed to store cover image", detail=str(e)) from e
        logger.info("Stored cover image %s (%d bytes)", filename, len(content))
        return f"{self.url_prefix}/{filename}"

    def path_for(self, reference: str) -> Optional[Path]:
        """Resolve a reference to a file inside ``upload_dir``.

        Only the final path component is used, so a reference can never
        point outside the storage directory.
        """
        name = PurePosixPath(reference or "").name
        if not name or name in {".", ".."}:
            return None
        return self.upload_dir / name

    def exists(self, reference: str) -> bool:
        path = self.path_for(reference)
        return path is not None and path.is_file()

    def delete(self, reference: Optional[str]) -> None:
        """Remove the file behind ``reference``; failures are logged, never raised."""
        if not reference:
            return
        path = self.path_for(reference)
        if path is None:
            logger.warning("Ignoring unusable cover reference %r", reference)
            return
        try:
            path.unlink()
            logger.info("Removed cover image %s", path.name)
        except FileNotFoundError:
            logger.debug("Cover image %s already gone", path.name)
        except OSError as e:
            logger.warning("Could not remove cover image %s: %s", path.name, e)
