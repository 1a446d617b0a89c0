"""File and folder operations shared by the HTTP API and agent file tools."""

import hashlib
import logging
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..domain.extraction import BlobStatus
from ..domain.storage.ports import BlobStorePort, USER_FILES
from ..models import BlobInventory, File, Folder
from .paths import normalize_folder_path, parent_of

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_MIME_TYPE = "application/octet-stream"


class FolderExistsError(Exception):
    pass


def store_file(
    db: Session,
    blob_store: BlobStorePort,
    tenant_id: UUID,
    user_id: Optional[UUID],
    file_name: str,
    data: bytes,
    mime_type: Optional[str] = None,
    folder_path: str = "/",
) -> File:
    """Write bytes under a fresh blob key and register them for extraction.

    Creates the files row and a pending blob_inventory row in one commit.
    """
    blob_key = str(uuid4())
    content_type = mime_type or DEFAULT_MIME_TYPE
    etag = blob_store.put(
        USER_FILES,
        blob_key,
        data,
        content_type=content_type,
        metadata={"file-name": file_name, "tenant-id": str(tenant_id)},
    )

    file = File(
        tenant_id=tenant_id,
        user_id=user_id,
        blob_key=blob_key,
        file_name=file_name,
        file_path=normalize_folder_path(folder_path),
        mime_type=content_type,
        file_size=len(data),
        etag=etag,
    )
    db.add(file)
    db.add(
        BlobInventory(
            tenant_id=tenant_id,
            source_store=USER_FILES,
            blob_key=blob_key,
            file_name=file_name,
            mime_type=content_type,
            size_bytes=len(data),
            byte_hash_sha256=hashlib.sha256(data).hexdigest(),
            etag=etag,
            status=BlobStatus.PENDING.value,
        )
    )
    db.commit()
    db.refresh(file)

    logger.info(
        f"Stored file {file_name} ({len(data)} bytes)",
        extra={"tenant_id": str(tenant_id), "user_id": str(user_id) if user_id else None},
    )
    return file


def delete_file(db: Session, blob_store: BlobStorePort, file: File) -> None:
    """Delete the stored bytes, then the files row."""
    blob_store.delete(USER_FILES, file.blob_key)
    db.delete(file)
    db.commit()


def create_folder(db: Session, tenant_id: UUID, user_id: Optional[UUID], folder_name: str, parent_path: str = "/") -> Folder:
    """
    Raises:
        FolderExistsError: A folder with this path already exists in the tenant
    """
    parent = normalize_folder_path(parent_path)
    folder_path = f"{parent}{folder_name}/"

    existing = (
        db.query(Folder)
        .filter(Folder.tenant_id == tenant_id, Folder.folder_path == folder_path)
        .first()
    )
    if existing:
        raise FolderExistsError("Folder already exists")

    folder = Folder(
        tenant_id=tenant_id,
        user_id=user_id,
        folder_name=folder_name,
        folder_path=folder_path,
        parent_path=parent,
    )
    db.add(folder)
    db.commit()
    db.refresh(folder)
    return folder


def ensure_folder_chain(db: Session, tenant_id: UUID, user_id: Optional[UUID], folder_path: str) -> None:
    """Create any missing folders from the root down to folder_path. Does not commit."""
    path = normalize_folder_path(folder_path)
    missing: List[str] = []
    while path != "/":
        exists = (
            db.query(Folder.folder_id)
            .filter(Folder.tenant_id == tenant_id, Folder.folder_path == path)
            .first()
        )
        if exists:
            break
        missing.append(path)
        path = parent_of(path)

    for path in reversed(missing):
        db.add(
            Folder(
                tenant_id=tenant_id,
                user_id=user_id,
                folder_name=path.rstrip("/").rsplit("/", 1)[-1],
                folder_path=path,
                parent_path=parent_of(path),
            )
        )
    db.flush()


def delete_folder_tree(db: Session, blob_store: BlobStorePort, folder: Folder) -> int:
    """Delete a folder, every folder below it and every file inside.

    Returns:
        Number of files deleted
    """
    prefix = folder.folder_path
    files = (
        db.query(File)
        .filter(
            File.tenant_id == folder.tenant_id,
            or_(File.file_path == prefix, File.file_path.startswith(prefix, autoescape=True)),
        )
        .all()
    )
    for file in files:
        blob_store.delete(USER_FILES, file.blob_key)
        db.delete(file)

    (
        db.query(Folder)
        .filter(
            Folder.tenant_id == folder.tenant_id,
            or_(Folder.folder_path == prefix, Folder.folder_path.startswith(prefix, autoescape=True)),
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return len(files)


def find_file(db: Session, tenant_id: UUID, folder_path: str, file_name: str) -> Optional[File]:
    return (
        db.query(File)
        .filter(
            File.tenant_id == tenant_id,
            File.file_path == normalize_folder_path(folder_path),
            File.file_name == file_name,
        )
        .first()
    )


def replace_file_content(
    db: Session,
    blob_store: BlobStorePort,
    file: File,
    data: bytes,
    mime_type: str,
) -> File:
    """Point an existing file at new bytes.

    The new content gets a fresh blob key and its own pending inventory row;
    the old object is removed from the store once the row is updated.
    """
    old_key = file.blob_key
    blob_key = str(uuid4())
    etag = blob_store.put(
        USER_FILES,
        blob_key,
        data,
        content_type=mime_type,
        metadata={"file-name": file.file_name, "tenant-id": str(file.tenant_id)},
    )

    file.blob_key = blob_key
    file.mime_type = mime_type
    file.file_size = len(data)
    file.etag = etag
    db.add(
        BlobInventory(
            tenant_id=file.tenant_id,
            source_store=USER_FILES,
            blob_key=blob_key,
            file_name=file.file_name,
            mime_type=mime_type,
            size_bytes=len(data),
            byte_hash_sha256=hashlib.sha256(data).hexdigest(),
            etag=etag,
            status=BlobStatus.PENDING.value,
        )
    )
    db.commit()
    db.refresh(file)

    blob_store.delete(USER_FILES, old_key)
    return file
