"""Local filesystem storage for uploaded task documents."""

import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from .errors import ValidationFailed

logger = logging.getLogger(__name__)

STORED_NAME_PREFIX = "attachedDocuments"


@dataclass(frozen=True)
class StoredFile:
    """An upload that has been written to the upload directory.

    Attributes:
        original_name: Name the client uploaded the file with
        stored_name: Generated unique name inside the upload directory
        path: Full path of the stored file
        mimetype: Content type reported for the upload
        size: Size in bytes
    """
    original_name: str
    stored_name: str
    path: Path
    mimetype: str
    size: int


class DocumentStorage:
    """Flat directory of uploaded documents keyed by generated names.

    Attributes:
        upload_dir: Directory holding every stored document
    """

    def __init__(self, upload_dir: Union[str, Path] = "uploads"):
        self.upload_dir = Path(upload_dir).resolve()
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def generate_name(self, original_name: str) -> str:
        """Build a collision-resistant name that keeps the original extension."""
        suffix = Path(original_name or "").suffix.lower()
        unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{STORED_NAME_PREFIX}-{unique}{suffix}"

    def save(self, original_name: str, mimetype: str, data: bytes) -> StoredFile:
        """Write an upload to disk under a freshly generated name."""
        stored_name = self.generate_name(original_name)
        path = self.upload_dir / stored_name
        while path.exists():
            stored_name = self.generate_name(original_name)
            path = self.upload_dir / stored_name
        path.write_bytes(data)
        logger.debug(f"Stored upload {original_name!r} as {stored_name}")
        return StoredFile(
            original_name=original_name,
            stored_name=stored_name,
            path=path,
            mimetype=mimetype,
            size=len(data),
        )

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).is_file()

    def remove(self, path: Union[str, Path]) -> bool:
        """Delete a stored file.

        Returns:
            True if a file was removed, False if it was already absent
        """
        try:
            Path(path).unlink()
        except FileNotFoundError:
            logger.debug(f"File already absent: {path}")
            return False
        return True

    def discard(self, files: Iterable[StoredFile]) -> None:
        """Remove uploads that will not be attached to any task."""
        for stored in files:
            self.remove(stored.path)

    def locate(self, stored_name: str) -> Path:
        """Resolve a stored name to its path inside the upload directory.

        Raises:
            ValidationFailed: If the name points outside the upload directory
        """
        path = (self.upload_dir / stored_name).resolve()
        if path.parent != self.upload_dir:
            raise ValidationFailed("Invalid file path.")
        return path
