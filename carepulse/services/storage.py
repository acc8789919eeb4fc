"""
File storage for identification documents.

Documents are written under the configured upload directory with a
generated file id; the patient record keeps the id and the path.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional, Tuple

from ..core.config import settings
from ..schemas.patient import IdentificationDocument

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a document cannot be stored."""


class FileStorage:
    def __init__(self, base_upload_dir: Optional[str] = None, max_file_size: Optional[int] = None):
        self.base_upload_dir = Path(base_upload_dir or settings.UPLOAD_DIR)
        self.max_file_size = max_file_size or settings.MAX_UPLOAD_SIZE

    def save_document(self, document: IdentificationDocument) -> Tuple[str, Path]:
        """
        Store a document and return its file id and path.

        Raises:
            StorageError: If the file is too large or cannot be written
        """
        size = len(document.blob_file)
        if size > self.max_file_size:
            raise StorageError(
                f"File {document.file_name} exceeds maximum size of {self.max_file_size} bytes"
            )

        file_id = uuid.uuid4().hex
        suffix = Path(document.file_name).suffix.lower()
        file_path = self.base_upload_dir / f"{file_id}{suffix}"

        try:
            self.base_upload_dir.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(document.blob_file)
        except OSError as e:
            logger.error(f"Failed to store {document.file_name}: {e}")
            raise StorageError(f"Failed to store {document.file_name}") from e

        logger.info(f"Stored identification document {file_id} ({size} bytes)")
        return file_id, file_path

    def delete_document(self, file_path: Path) -> None:
        """Remove a stored document; a file that is already gone is ignored."""
        try:
            Path(file_path).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove stored document {file_path}: {e}")
            return
        logger.info(f"Removed stored document {Path(file_path).name}")
