"""Raw blob store access for administrators"""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth.dependencies import AuthContext, require_admin
from ..dependencies import get_blob_store
from ..domain.storage.ports import BlobStorePort, BLOB_STORES
from ..models.base import isoformat
from .schemas import BlobCreate, BlobUpdate

router = APIRouter(prefix="/blobs")


def _validate_store(store: str) -> None:
    if store not in BLOB_STORES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid store name. Allowed: {', '.join(BLOB_STORES)}",
        )


def serialize_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, indent=2)


@router.get("/{store}")
async def list_blobs(
    store: str,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    prefix: str = "",
):
    _validate_store(store)
    entries = blob_store.list(store, prefix=prefix)
    return {
        "store": store,
        "blobs": [
            {"key": e.key, "size": e.size_bytes, "last_modified": isoformat(e.last_modified)}
            for e in entries
        ],
    }


@router.get("/{store}/{key:path}")
async def get_blob(
    store: str,
    key: str,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    """Blob content as text; JSON content is also returned parsed."""
    _validate_store(store)
    stored = blob_store.get(store, key)
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blob not found")

    text = stored.data.decode("utf-8", errors="replace")
    content: Any = text
    is_json = False
    try:
        content = json.loads(text)
        is_json = True
    except ValueError:
        # Not JSON, returned as text
        pass

    return {
        "key": key,
        "content": content,
        "is_json": is_json,
        "size": len(stored.data),
        "metadata": stored.metadata,
    }


@router.post("/{store}", status_code=status.HTTP_201_CREATED)
async def create_blob(
    store: str,
    request: BlobCreate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    _validate_store(store)
    if request.content is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content is required")
    if blob_store.exists(store, request.key):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Blob already exists. Use PUT to update.")

    data = serialize_content(request.content).encode("utf-8")
    blob_store.put(store, request.key, data)
    return {"key": request.key, "created": True, "size": len(data)}


@router.put("/{store}/{key:path}")
async def update_blob(
    store: str,
    key: str,
    request: BlobUpdate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    _validate_store(store)
    if request.content is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content is required")

    data = serialize_content(request.content).encode("utf-8")
    blob_store.put(store, key, data)
    return {"key": key, "updated": True, "size": len(data)}


@router.delete("/{store}/{key:path}")
async def delete_blob(
    store: str,
    key: str,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    _validate_store(store)
    if not blob_store.delete(store, key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blob not found")
    return {"key": key, "deleted": True}
