"""File tools: list, read, create and delete tenant files by path."""

import logging
import re
from typing import Any, Dict, Tuple

from ...domain.storage.ports import USER_FILES
from ...files.paths import normalize_folder_path, split_file_path
from ...files.service import (
    delete_file as delete_stored_file,
    ensure_folder_chain,
    find_file,
    replace_file_content,
    store_file,
)
from ...models import File, Folder
from .context import ToolContext, ToolError

logger = logging.getLogger(__name__)

FILE_ACTIONS = ("list", "read", "create", "delete")
MAX_READ_SIZE = 1 * 1024 * 1024

READABLE_MIME_TYPES = (
    "text/plain",
    "text/html",
    "text/css",
    "text/javascript",
    "text/markdown",
    "text/csv",
    "text/xml",
    "application/json",
    "application/xml",
    "application/javascript",
)

MIME_BY_EXTENSION = {
    "txt": "text/plain",
    "md": "text/markdown",
    "json": "application/json",
    "csv": "text/csv",
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "xml": "application/xml",
}

_PARENT_REFS = re.compile(r"\.{2,}")


def is_readable(mime_type: str | None) -> bool:
    if not mime_type:
        return False
    return any(mime_type.startswith(t) for t in READABLE_MIME_TYPES)


def mime_for_name(file_name: str) -> str:
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return MIME_BY_EXTENSION.get(extension, "text/plain")


def sanitize_path(path: str) -> str:
    """Strip parent references and backslashes so a path stays inside the tenant tree."""
    return _PARENT_REFS.sub("", path.replace("\\", "/"))


def _split(file_path: Any) -> Tuple[str, str]:
    if not isinstance(file_path, str) or not file_path.strip():
        raise ToolError("file_path is required")
    return split_file_path(sanitize_path(file_path))


def list_files(ctx: ToolContext, path: str = "/") -> Dict[str, Any]:
    folder_path = normalize_folder_path(sanitize_path(path or "/"))
    files = (
        ctx.db.query(File)
        .filter(File.tenant_id == ctx.tenant_id, File.file_path == folder_path)
        .order_by(File.file_name)
        .all()
    )
    folders = (
        ctx.db.query(Folder)
        .filter(Folder.tenant_id == ctx.tenant_id, Folder.parent_path == folder_path)
        .order_by(Folder.folder_name)
        .all()
    )
    return {
        "path": folder_path,
        "folders": [{"name": f.folder_name, "path": f.folder_path, "type": "folder"} for f in folders],
        "files": [
            {
                "name": f.file_name,
                "path": f"{f.file_path}{f.file_name}",
                "size": f.file_size,
                "type": f.mime_type or "unknown",
            }
            for f in files
        ],
        "total_files": len(files),
        "total_folders": len(folders),
    }


def read_file(ctx: ToolContext, file_path: str) -> Dict[str, Any]:
    """
    Raises:
        ToolError: Missing file (404), binary file or file over MAX_READ_SIZE (400)
    """
    folder_path, file_name = _split(file_path)
    file = find_file(ctx.db, ctx.tenant_id, folder_path, file_name)
    if file is None:
        raise ToolError(f"File not found: {file_path}", status_code=404)
    if not is_readable(file.mime_type):
        raise ToolError(f"Cannot read binary file. File type: {file.mime_type}")
    if file.file_size and file.file_size > MAX_READ_SIZE:
        raise ToolError(f"File too large to read. Max size: {MAX_READ_SIZE // 1024}KB")

    stored = ctx.blob_store.get(USER_FILES, file.blob_key)
    if stored is None:
        raise ToolError("File content not found", status_code=404)

    return {
        "file_name": file.file_name,
        "path": file_path,
        "content": stored.data.decode("utf-8", errors="replace"),
        "size": file.file_size,
        "type": file.mime_type,
    }


def create_file(ctx: ToolContext, file_path: str, content: Any) -> Dict[str, Any]:
    """Write a text file, creating missing folders and overwriting an existing file."""
    if content is None:
        raise ToolError("content is required")
    folder_path, file_name = _split(file_path)
    if not file_name:
        raise ToolError("Invalid file path")

    data = str(content).encode("utf-8")
    mime_type = mime_for_name(file_name)

    existing = find_file(ctx.db, ctx.tenant_id, folder_path, file_name)
    if existing is not None:
        file = replace_file_content(ctx.db, ctx.blob_store, existing, data, mime_type)
        action = "updated"
    else:
        ensure_folder_chain(ctx.db, ctx.tenant_id, ctx.user_id, folder_path)
        file = store_file(
            ctx.db,
            ctx.blob_store,
            ctx.tenant_id,
            ctx.user_id,
            file_name,
            data,
            mime_type=mime_type,
            folder_path=folder_path,
        )
        action = "created"

    logger.info(f"Agent {action} file {file_path}", extra={"tenant_id": str(ctx.tenant_id)})
    return {"action": action, "file_id": str(file.file_id), "path": file_path, "size": len(data)}


def delete_file(ctx: ToolContext, file_path: str) -> Dict[str, Any]:
    folder_path, file_name = _split(file_path)
    file = find_file(ctx.db, ctx.tenant_id, folder_path, file_name)
    if file is None:
        raise ToolError(f"File not found: {file_path}", status_code=404)

    delete_stored_file(ctx.db, ctx.blob_store, file)
    return {"action": "deleted", "path": file_path, "message": f"File {file_name} has been deleted"}


def run_file_action(ctx: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch ``{"action": ..., ...}`` to the matching file operation.

    Raises:
        ToolError: Unknown action or invalid input
    """
    action = args.get("action")
    if not action:
        raise ToolError("Action is required")
    if action == "list":
        return list_files(ctx, args.get("path") or "/")
    if action == "read":
        return read_file(ctx, args.get("file_path"))
    if action == "create":
        return create_file(ctx, args.get("file_path"), args.get("content"))
    if action == "delete":
        return delete_file(ctx, args.get("file_path"))
    raise ToolError(f"Unknown action: {action}")
