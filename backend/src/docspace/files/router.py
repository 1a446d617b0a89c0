"""File and folder endpoints.

Files are tenant-scoped. Admins may act on another tenant by passing
tenant_id explicitly.
"""

import logging
from typing import Annotated, Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context, authorize_access
from ..database import get_db
from ..dependencies import get_blob_store
from ..domain.extraction import JobStatus
from ..domain.storage.ports import BlobStorePort, USER_FILES
from ..models import BlobInventory, ExtractionJob, File, Folder, Tenant
from .paths import normalize_folder_path, sanitize_folder_name
from .schemas import FolderCreateRequest
from .service import (
    MAX_UPLOAD_BYTES,
    FolderExistsError,
    store_file,
    delete_file,
    create_folder,
    delete_folder_tree,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


def _target_tenant(ctx: AuthContext, requested: Optional[UUID]) -> UUID:
    """Tenant an operation applies to.

    Raises:
        HTTPException 403: Non-admin targeting another tenant
        HTTPException 400: No tenant could be determined
    """
    if requested is not None and requested != ctx.tenant_id:
        if not ctx.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return requested
    if ctx.tenant_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No tenant context")
    return ctx.tenant_id


def _get_file(db: Session, ctx: AuthContext, file_id: UUID) -> File:
    file = db.query(File).filter(File.file_id == file_id).first()
    if not file:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    if not authorize_access(ctx, file.tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return file


def _latest_chunk_count():
    return (
        select(ExtractionJob.chunk_count)
        .where(
            ExtractionJob.blob_id == BlobInventory.blob_id,
            ExtractionJob.status == JobStatus.COMPLETED.value,
        )
        .order_by(ExtractionJob.completed_at.desc())
        .limit(1)
        .correlate(BlobInventory)
        .scalar_subquery()
    )


def _file_listing_query(db: Session):
    return (
        db.query(File, BlobInventory.status, _latest_chunk_count(), Tenant.name)
        .outerjoin(BlobInventory, BlobInventory.blob_key == File.blob_key)
        .outerjoin(Tenant, Tenant.tenant_id == File.tenant_id)
    )


def _file_row(file: File, extraction_status, chunk_count, tenant_name=None) -> dict:
    data = file.to_dict()
    data["extraction_status"] = extraction_status
    data["chunk_count"] = chunk_count
    if tenant_name is not None:
        data["tenant_name"] = tenant_name
    return data


@router.post("/files", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    path: Annotated[str, Form()] = "/",
    tenant_id: Annotated[Optional[UUID], Form()] = None,
):
    """Upload a file (multipart) into a folder.

    Raises:
        HTTPException 400: No tenant context
        HTTPException 403: Non-admin uploading into another tenant
        HTTPException 413: File larger than 10 MB
    """
    target_tenant = _target_tenant(ctx, tenant_id)

    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum size of {MAX_UPLOAD_BYTES // (1024 * 1024)} MB",
        )

    record = store_file(
        db,
        blob_store,
        tenant_id=target_tenant,
        user_id=ctx.user_id,
        file_name=file.filename or "untitled",
        data=data,
        mime_type=file.content_type,
        folder_path=path,
    )
    return record.to_dict()


@router.get("/files")
async def list_files(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    path: str = "/",
    tenant_id: Optional[UUID] = None,
    all_tenants: bool = False,
):
    """Files and sub-folders at a path.

    ``all_tenants`` (admin only) lists every file across tenants with no
    folders.
    """
    if (all_tenants or tenant_id is not None) and not ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

    if all_tenants:
        rows = _file_listing_query(db).order_by(Tenant.name, File.file_name).all()
        return {
            "path": "/",
            "tenant_id": None,
            "all_tenants": True,
            "total_file_count": db.query(func.count(File.file_id)).scalar(),
            "files": [_file_row(*row) for row in rows],
            "folders": [],
        }

    target_tenant = _target_tenant(ctx, tenant_id)
    folder_path = normalize_folder_path(path)

    rows = (
        _file_listing_query(db)
        .filter(File.tenant_id == target_tenant, File.file_path == folder_path)
        .order_by(File.file_name)
        .all()
    )

    file_count = (
        select(func.count(File.file_id))
        .where(File.tenant_id == Folder.tenant_id, File.file_path == Folder.folder_path)
        .correlate(Folder)
        .scalar_subquery()
    )
    folders = (
        db.query(Folder, file_count)
        .filter(Folder.tenant_id == target_tenant, Folder.parent_path == folder_path)
        .order_by(Folder.folder_name)
        .all()
    )

    total = db.query(func.count(File.file_id)).filter(File.tenant_id == target_tenant).scalar()

    return {
        "path": folder_path,
        "tenant_id": str(target_tenant),
        "total_file_count": total,
        "files": [_file_row(f, s, c) for f, s, c, _ in rows],
        "folders": [{**folder.to_dict(), "file_count": count or 0} for folder, count in folders],
    }


@router.get("/files/{file_id}/download")
async def download_file(
    file_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    file = _get_file(db, ctx, file_id)

    stored = blob_store.get(USER_FILES, file.blob_key)
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File content not found")

    return Response(
        content=stored.data,
        media_type=file.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{quote(file.file_name)}"'},
    )


@router.delete("/files/{file_id}")
async def remove_file(
    file_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    file = _get_file(db, ctx, file_id)
    delete_file(db, blob_store, file)
    return {"message": "File deleted"}


@router.post("/folders", status_code=status.HTTP_201_CREATED)
async def add_folder(
    request: FolderCreateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    tenant_id: Optional[UUID] = None,
):
    target_tenant = _target_tenant(ctx, tenant_id)

    name = sanitize_folder_name(request.name)
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Folder name is required")

    try:
        folder = create_folder(db, target_tenant, ctx.user_id, name, request.parent_path)
    except FolderExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return folder.to_dict()


@router.delete("/folders/{folder_id}")
async def remove_folder(
    folder_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    """Delete a folder with its sub-folders and files."""
    folder = db.query(Folder).filter(Folder.folder_id == folder_id).first()
    if not folder:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Folder not found")
    if not authorize_access(ctx, folder.tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    files_deleted = delete_folder_tree(db, blob_store, folder)
    return {"message": "Folder deleted", "files_deleted": files_deleted}
