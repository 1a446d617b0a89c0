"""Build JSONL chunk records from extracted content"""

from datetime import datetime, timezone
from typing import List

from .chunking import chunk_text
from .models import (
    ExtractedContent,
    ChunkRecord,
    ChunkSource,
    ChunkProvenance,
    ChunkContent,
    ChunkTimestamps,
)


def make_chunk_id(document_id: str, index: int) -> str:
    return f"{document_id}:{index:06d}"


def build_chunk_records(extracted: ExtractedContent, blob, extraction_version: str) -> List[ChunkRecord]:
    """Chunk extracted content into records.

    Pages are chunked individually and keep their page number and headings
    as provenance. Without pages, full_text is chunked with no page info.
    Offsets are relative to the page (or full text) and accumulate chunk
    lengths, so overlapping chunks advance by their full length.

    Args:
        extracted: Parsed extraction response
        blob: BlobInventory row the content came from
        extraction_version: Version tag stamped on every record
    """
    document_id = str(blob.blob_id)
    extracted_at = datetime.now(timezone.utc).isoformat()
    display_title = extracted.title or blob.file_name
    language = extracted.language or "en"

    source = ChunkSource(
        source_uri=blob.source_uri,
        file_name=blob.file_name,
        mime_type=blob.mime_type,
        size_bytes=blob.size_bytes,
        byte_hash_sha256=blob.byte_hash_sha256,
    )

    def record(index, text, offset, page_start, page_end, section_path, search_parts):
        return ChunkRecord(
            extraction_version=extraction_version,
            document_id=document_id,
            chunk_id=make_chunk_id(document_id, index),
            source=source,
            provenance=ChunkProvenance(
                page_start=page_start,
                page_end=page_end,
                section_path=section_path,
                content_offset_start=offset,
                content_offset_end=offset + len(text),
            ),
            content=ChunkContent(
                title=extracted.title,
                chunk_text=text,
                search_text="\n".join(search_parts),
                language=language,
            ),
            timestamps=ChunkTimestamps(extracted_at=extracted_at),
        )

    records: List[ChunkRecord] = []

    if extracted.pages:
        index = 0
        for page in extracted.pages:
            offset = 0
            for text in chunk_text(page.text):
                records.append(
                    record(
                        index, text, offset,
                        page.page_number, page.page_number, list(page.headings),
                        [display_title, *page.headings, text],
                    )
                )
                offset += len(text)
                index += 1
    elif extracted.full_text:
        offset = 0
        for index, text in enumerate(chunk_text(extracted.full_text)):
            records.append(record(index, text, offset, None, None, [], [display_title, text]))
            offset += len(text)

    return records


def to_jsonl(records: List[ChunkRecord]) -> str:
    return "\n".join(r.model_dump_json(by_alias=True) for r in records)
