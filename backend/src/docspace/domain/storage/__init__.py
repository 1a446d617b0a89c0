"""Blob storage domain: the named-store port used by files, extraction and admin."""

from .ports import BlobStorePort, StoredBlob, BlobEntry, BLOB_STORES, USER_FILES, EXTRACTED_CHUNKS, AI_CHATS_JOBS

__all__ = [
    "BlobStorePort",
    "StoredBlob",
    "BlobEntry",
    "BLOB_STORES",
    "USER_FILES",
    "EXTRACTED_CHUNKS",
    "AI_CHATS_JOBS",
]
