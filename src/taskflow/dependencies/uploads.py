"""Validation and storage of multipart document uploads."""

import logging
from typing import List, Optional, Sequence

from fastapi import UploadFile

from ..config import Settings
from ..services.errors import InvalidDocument, TooManyDocuments
from ..services.storage import DocumentStorage, StoredFile

logger = logging.getLogger(__name__)


async def accept_uploads(
    files: Optional[Sequence[UploadFile]],
    storage: DocumentStorage,
    settings: Settings,
) -> List[StoredFile]:
    """Check each upload is an allowed document and write it to storage.

    Call this only after the rest of the request has been validated. If any
    file is rejected, files already written by this call are discarded.

    Raises:
        TooManyDocuments: More files than a task may hold
        InvalidDocument: Wrong content type or file too large
    """
    files = [upload for upload in (files or []) if upload.filename]
    if len(files) > settings.max_documents_per_task:
        raise TooManyDocuments(settings.max_documents_per_task)

    accepted: List[StoredFile] = []
    try:
        for upload in files:
            if upload.content_type not in settings.allowed_document_mimetypes:
                raise InvalidDocument()
            data = await upload.read(settings.max_file_size + 1)
            if len(data) > settings.max_file_size:
                limit_mb = settings.max_file_size / (1024 * 1024)
                raise InvalidDocument(f"File too large. Max {limit_mb:g}MB per file.")
            accepted.append(storage.save(upload.filename, upload.content_type, data))
    except Exception:
        storage.discard(accepted)
        raise
    finally:
        for upload in files:
            await upload.close()

    if accepted:
        logger.debug(f"Accepted {len(accepted)} upload(s)")
    return accepted
