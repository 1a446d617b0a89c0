"""Shared types for builtin agent tools"""

from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from ...domain.storage.ports import BlobStorePort


class ToolError(Exception):
    """Invalid tool input or a missing resource.

    The HTTP tool endpoints turn it into an error response with
    ``status_code``; the agent executor reports the message to the model.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ToolResult:
    success: bool
    result: Any = None

    def to_dict(self):
        return {"success": self.success, "result": self.result}


@dataclass
class ToolContext:
    """Who is calling a tool and the resources it may touch."""
    db: Session
    tenant_id: UUID
    user_id: Optional[UUID]
    blob_store: BlobStorePort
    session_id: Optional[UUID] = None
    http_client: Optional[httpx.Client] = field(default=None, repr=False)
