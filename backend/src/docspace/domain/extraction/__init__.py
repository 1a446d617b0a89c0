"""Extraction domain: status machines, chunking, response parsing and chunk records."""

from .status import (
    BlobStatus,
    JobStatus,
    ALLOWED_TRANSITIONS,
    CLAIMABLE_BLOB_STATUSES,
    InvalidTransitionError,
    can_transition,
    transition_blob,
    transition_job,
)
from .chunking import chunk_text
from .models import ExtractedContent, ExtractedPage, ChunkRecord, SCHEMA_VERSION
from .response_parser import parse_extraction_response
from .records import build_chunk_records, make_chunk_id, to_jsonl

__all__ = [
    "BlobStatus",
    "JobStatus",
    "ALLOWED_TRANSITIONS",
    "CLAIMABLE_BLOB_STATUSES",
    "InvalidTransitionError",
    "can_transition",
    "transition_blob",
    "transition_job",
    "chunk_text",
    "ExtractedContent",
    "ExtractedPage",
    "ChunkRecord",
    "SCHEMA_VERSION",
    "parse_extraction_response",
    "build_chunk_records",
    "make_chunk_id",
    "to_jsonl",
]
