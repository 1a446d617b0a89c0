"""Extraction ledger models: jobs, outputs and the chunk index"""

from sqlalchemy import (
    Column, Text, Integer, BigInteger, Float, ForeignKey, DateTime, Uuid,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow, new_uuid, isoformat


class ExtractionJob(Base):
    """One attempt to extract content from a blob.

    Jobs are tagged with the correlation_id of the trigger that created
    them, so a batch trigger can be traced across the ledger and logs.
    """
    __tablename__ = "extraction_jobs"

    job_id = Column(Uuid, primary_key=True, default=new_uuid)
    blob_id = Column(Uuid, ForeignKey("blob_inventory.blob_id", ondelete="CASCADE"), nullable=False)
    extraction_version = Column(Text, nullable=False)
    model_version = Column(Text, nullable=False)
    prompt_hash = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="queued")
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    processing_time_ms = Column(Integer, nullable=True)
    input_tokens = Column(Integer, nullable=True)
    output_tokens = Column(Integer, nullable=True)
    chunk_count = Column(Integer, nullable=True)
    queued_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    correlation_id = Column(Uuid, nullable=True)

    blob = relationship("BlobInventory", back_populates="jobs")
    outputs = relationship("ExtractionOutput", back_populates="job", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "status IN ('queued', 'running', 'completed', 'failed')",
            name="ck_extraction_jobs_status",
        ),
        Index("ix_extraction_jobs_status_queued", "status", "queued_at"),
        Index("ix_extraction_jobs_blob", "blob_id"),
        Index("ix_extraction_jobs_correlation", "correlation_id"),
    )

    @property
    def is_complete(self) -> bool:
        return self.status in ("completed", "failed")

    def to_dict(self):
        return {
            "job_id": str(self.job_id),
            "blob_id": str(self.blob_id),
            "extraction_version": self.extraction_version,
            "model_version": self.model_version,
            "prompt_hash": self.prompt_hash,
            "status": self.status,
            "error_message": self.error_message,
            "retry_count": self.retry_count,
            "processing_time_ms": self.processing_time_ms,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "chunk_count": self.chunk_count,
            "queued_at": isoformat(self.queued_at),
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
        }


class ExtractionOutput(Base):
    """A JSONL chunk file produced by a completed extraction job."""
    __tablename__ = "extraction_outputs"

    output_id = Column(Uuid, primary_key=True, default=new_uuid)
    job_id = Column(Uuid, ForeignKey("extraction_jobs.job_id", ondelete="CASCADE"), nullable=False)
    blob_id = Column(Uuid, ForeignKey("blob_inventory.blob_id", ondelete="CASCADE"), nullable=False)
    output_store = Column(Text, nullable=False)
    output_blob_key = Column(Text, nullable=False)
    output_type = Column(Text, nullable=False, default="chunk_jsonl")
    chunk_count = Column(Integer, nullable=False, default=0)
    size_bytes = Column(BigInteger, nullable=True)
    content_hash_sha256 = Column(Text, nullable=True)
    schema_version = Column(Text, nullable=False, default="1.0")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    job = relationship("ExtractionJob", back_populates="outputs")
    chunks = relationship("ChunkIndex", back_populates="output", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("output_store", "output_blob_key", name="uq_extraction_outputs_store_key"),
    )

    def to_dict(self):
        return {
            "output_id": str(self.output_id),
            "job_id": str(self.job_id),
            "blob_id": str(self.blob_id),
            "output_store": self.output_store,
            "output_blob_key": self.output_blob_key,
            "output_type": self.output_type,
            "chunk_count": self.chunk_count,
            "size_bytes": self.size_bytes,
            "content_hash_sha256": self.content_hash_sha256,
            "schema_version": self.schema_version,
            "created_at": isoformat(self.created_at),
        }


class ChunkIndex(Base):
    """Queryable index of the chunks stored in an output's JSONL file."""
    __tablename__ = "chunk_index"

    output_id = Column(Uuid, ForeignKey("extraction_outputs.output_id", ondelete="CASCADE"), primary_key=True)
    chunk_id = Column(Text, primary_key=True)
    blob_id = Column(Uuid, ForeignKey("blob_inventory.blob_id", ondelete="CASCADE"), nullable=False)
    document_id = Column(Uuid, nullable=False)
    chunk_sequence = Column(Integer, nullable=False)
    page_start = Column(Integer, nullable=True)
    page_end = Column(Integer, nullable=True)
    section_path = Column(PortableJSONB, nullable=True)
    char_count = Column(Integer, nullable=False)
    language = Column(Text, nullable=True)
    confidence = Column(Float, nullable=True)

    output = relationship("ExtractionOutput", back_populates="chunks")

    __table_args__ = (
        Index("ix_chunk_index_blob_sequence", "blob_id", "chunk_sequence"),
    )
