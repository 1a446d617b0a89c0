"""
Domain models for extraction results.

ExtractedContent is what the LLM returns for a document. ChunkRecord is
one line of the JSONL output written to the extracted-chunks store; it
serializes with camelCase keys.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "1.0"
DEFAULT_CONFIDENCE = 0.9


class ExtractedPage(BaseModel):
    """One page of extracted text with the headings found on it"""
    page_number: int = Field(1, alias="pageNumber")
    text: str = ""
    headings: List[str] = Field(default_factory=list)

    @field_validator("page_number", mode="before")
    @classmethod
    def default_page_number(cls, v):
        return 1 if v is None else v

    @field_validator("text", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or ""

    @field_validator("headings", mode="before")
    @classmethod
    def stringify_headings(cls, v):
        if not v:
            return []
        return [str(h) for h in v if h]

    class Config:
        populate_by_name = True


class ExtractedContent(BaseModel):
    """Structured document content parsed from the extraction response"""
    title: Optional[str] = None
    language: Optional[str] = None
    pages: List[ExtractedPage] = Field(default_factory=list)
    full_text: Optional[str] = Field(None, alias="fullText")

    @field_validator("pages", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []

    class Config:
        populate_by_name = True


class _CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ChunkSource(_CamelModel):
    source_uri: str
    file_name: str
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    byte_hash_sha256: Optional[str] = None


class ChunkProvenance(_CamelModel):
    page_start: Optional[int] = None
    page_end: Optional[int] = None
    section_path: List[str] = Field(default_factory=list)
    content_offset_start: int
    content_offset_end: int


class ChunkContent(_CamelModel):
    title: Optional[str] = None
    chunk_text: str
    search_text: str
    language: str = "en"


class ChunkQuality(_CamelModel):
    confidence: float = DEFAULT_CONFIDENCE
    warnings: List[str] = Field(default_factory=list)


class ChunkTimestamps(_CamelModel):
    extracted_at: str


class ChunkRecord(_CamelModel):
    """A single retrievable chunk of an extracted document"""
    schema_version: str = SCHEMA_VERSION
    extraction_version: str
    document_id: str
    chunk_id: str
    source: ChunkSource
    provenance: ChunkProvenance
    content: ChunkContent
    quality: ChunkQuality = Field(default_factory=ChunkQuality)
    timestamps: ChunkTimestamps

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)
