"""
Boundary to the object store that holds chat attachments.

The store owns nothing about messages: it saves bytes and deletes objects by
``public_id``. Deletes are time-bounded so a slow store cannot stall the
caller's cleanup loop.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import NamedTuple, Optional

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from .uploads import get_chat_attachment_path

logger = logging.getLogger(__name__)


class AttachmentStorageError(Exception):
    pass


class AttachmentUploadError(AttachmentStorageError):
    pass


class RemoteCleanupFailure(AttachmentStorageError):
    """A remote object could not be removed; it is left orphaned."""

    def __init__(self, public_id, reason):
        self.public_id = public_id
        self.reason = reason
        super().__init__(f"Failed to delete attachment {public_id}: {reason}")


class StoredObject(NamedTuple):
    url: str
    public_id: str
    resource_type: str


def resource_type_for(mime_type: Optional[str]) -> str:
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/") or mime_type.startswith("audio/"):
        return "video"
    return "raw"


class AttachmentStorage:
    """Stores and deletes chat attachments on a Django storage backend."""

    def __init__(self, storage=None, delete_timeout=None, executor=None):
        self.storage = storage or default_storage
        self.delete_timeout = delete_timeout if delete_timeout is not None else settings.ATTACHMENT_DELETE_TIMEOUT
        self._executor = executor

    @property
    def executor(self):
        if self._executor is None:
            self._executor = _get_cleanup_executor()
        return self._executor

    def store(self, content: bytes, filename: str, mime_type: Optional[str]) -> StoredObject:
        try:
            name = self.storage.save(get_chat_attachment_path(filename), ContentFile(content))
            url = self.storage.url(name)
        except Exception as e:
            logger.error(f"Failed to store attachment {filename}: {e}")
            raise AttachmentUploadError(f"Failed to store attachment {filename}") from e

        return StoredObject(url=url, public_id=name, resource_type=resource_type_for(mime_type))

    def delete(self, public_id: str, resource_type: str = "raw") -> None:
        """
        Delete a stored object, waiting at most ``delete_timeout`` seconds.

        Raises:
            RemoteCleanupFailure: If the store errors or does not answer in time
        """
        future = self.executor.submit(self.storage.delete, public_id)
        try:
            future.result(timeout=self.delete_timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise RemoteCleanupFailure(public_id, f"timed out after {self.delete_timeout}s") from e
        except Exception as e:
            raise RemoteCleanupFailure(public_id, str(e)) from e


_cleanup_executor = None
_attachment_storage = None


def _get_cleanup_executor():
    global _cleanup_executor
    if _cleanup_executor is None:
        _cleanup_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="attachment-cleanup")
    return _cleanup_executor


def get_attachment_storage() -> AttachmentStorage:
    """Get the global attachment storage, creating it if needed."""
    global _attachment_storage
    if _attachment_storage is None:
        _attachment_storage = AttachmentStorage()
    return _attachment_storage
