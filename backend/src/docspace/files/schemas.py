"""Pydantic schemas for file and folder endpoints"""

from pydantic import BaseModel, Field


class FolderCreateRequest(BaseModel):
    name: str = Field(..., max_length=255)
    parent_path: str = "/"
