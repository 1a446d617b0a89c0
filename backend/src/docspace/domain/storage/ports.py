"""Blob Store Port - domain interface for named key/value blob stores.

Three logical stores share one physical backend. Each object carries a
small string-to-string metadata map next to its bytes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

USER_FILES = "user-files"
EXTRACTED_CHUNKS = "extracted-chunks"
AI_CHATS_JOBS = "ai-chats-jobs"

BLOB_STORES = (USER_FILES, EXTRACTED_CHUNKS, AI_CHATS_JOBS)


@dataclass
class StoredBlob:
    """Bytes of a stored object together with its metadata."""
    data: bytes
    metadata: Dict[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None


@dataclass
class BlobEntry:
    """Listing entry for a stored object."""
    key: str
    size_bytes: int
    last_modified: Optional[datetime] = None


class BlobStorePort(ABC):
    """Port interface for named blob stores.

    Implementations map (store, key) pairs onto a concrete backend. ``get``
    returns None for missing objects; every other failure raises
    StorageError.
    """

    @abstractmethod
    def put(
        self,
        store: str,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Optional[str]:
        """Write an object, replacing any existing one with the same key.

        Returns the backend ETag when it reports one.
        """

    @abstractmethod
    def get(self, store: str, key: str) -> Optional[StoredBlob]:
        """Read an object, or None if it does not exist."""

    @abstractmethod
    def delete(self, store: str, key: str) -> bool:
        """Delete an object. Returns False if it did not exist."""

    @abstractmethod
    def exists(self, store: str, key: str) -> bool:
        pass

    @abstractmethod
    def list(self, store: str, prefix: str = "") -> List[BlobEntry]:
        """List objects in a store, optionally restricted to a key prefix."""

    def check_health(self) -> bool:
        """Return True when the backend is reachable."""
        return True
