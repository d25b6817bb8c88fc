"""
Temporary storage for files queued in the add-patient wizard.

Files are written to Django's default storage under
``intake/<wizard token>/`` as soon as they are accepted, and removed when
the operator drops them, cancels the wizard or the patient is saved.
"""
from __future__ import annotations

import uuid
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator

from django.core.files.storage import Storage, default_storage

from frontdesk.logger import get_logger

logger = get_logger(__name__)


class PendingDocumentStore:
    def __init__(self, storage: Storage | None = None, prefix: str = 'intake'):
        self.storage = storage or default_storage
        self.prefix = prefix

    def save(self, token: str, upload) -> str:
        name = f'{self.prefix}/{token}/{uuid.uuid4().hex}.pdf'
        path = self.storage.save(name, upload)
        logger.info('intake_file_stored', path=path, size=getattr(upload, 'size', None))
        return path

    def delete(self, path: str) -> None:
        if path and self.storage.exists(path):
            self.storage.delete(path)

    @contextmanager
    def opened(self, documents: Iterable) -> Iterator[list]:
        """Yield ``requests``-style multipart parts for the queued documents."""
        with ExitStack() as stack:
            parts = []
            for doc in documents:
                fh = stack.enter_context(self.storage.open(doc.path, 'rb'))
                parts.append((doc.doc_type.field_name, (doc.name, fh, 'application/pdf')))
            yield parts
