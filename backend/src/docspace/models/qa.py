"""Q&A generation models: generation jobs and chunk question/answer pairs"""

from sqlalchemy import Column, Text, Integer, ForeignKey, DateTime, Uuid, CheckConstraint, Index
from sqlalchemy.orm import relationship

from .base import Base, utcnow, new_uuid, isoformat


QA_PAIR_STATUSES = ("pending", "approved", "rejected")


class QAGenerationJob(Base):
    __tablename__ = "qa_generation_jobs"

    job_id = Column(Uuid, primary_key=True, default=new_uuid)
    blob_id = Column(Uuid, ForeignKey("blob_inventory.blob_id", ondelete="CASCADE"), nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=True)
    questions_per_chunk = Column(Integer, nullable=False, default=3)
    status = Column(Text, nullable=False, default="pending")
    total_chunks = Column(Integer, nullable=False, default=0)
    processed_chunks = Column(Integer, nullable=False, default=0)
    total_qa_generated = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)

    pairs = relationship("ChunkQAPair", back_populates="job", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_qa_generation_jobs_status",
        ),
        Index("ix_qa_generation_jobs_blob", "blob_id", "created_at"),
    )

    def to_dict(self):
        return {
            "job_id": str(self.job_id),
            "blob_id": str(self.blob_id),
            "tenant_id": str(self.tenant_id) if self.tenant_id else None,
            "questions_per_chunk": self.questions_per_chunk,
            "status": self.status,
            "total_chunks": self.total_chunks,
            "processed_chunks": self.processed_chunks,
            "total_qa_generated": self.total_qa_generated,
            "error_message": self.error_message,
            "created_at": isoformat(self.created_at),
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
        }


class ChunkQAPair(Base):
    """A generated question/answer pair awaiting human review."""
    __tablename__ = "chunk_qa_pairs"

    qa_id = Column(Uuid, primary_key=True, default=new_uuid)
    job_id = Column(Uuid, ForeignKey("qa_generation_jobs.job_id", ondelete="CASCADE"), nullable=False)
    blob_id = Column(Uuid, ForeignKey("blob_inventory.blob_id", ondelete="CASCADE"), nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=True)
    chunk_index = Column(Integer, nullable=False)
    chunk_text = Column(Text, nullable=False)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    generated_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)

    job = relationship("QAGenerationJob", back_populates="pairs")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_chunk_qa_pairs_status",
        ),
        Index("ix_chunk_qa_pairs_job_chunk", "job_id", "chunk_index"),
    )

    def to_dict(self):
        return {
            "qa_id": str(self.qa_id),
            "job_id": str(self.job_id),
            "blob_id": str(self.blob_id),
            "chunk_index": self.chunk_index,
            "chunk_text": self.chunk_text,
            "question": self.question,
            "answer": self.answer,
            "status": self.status,
            "generated_by": self.generated_by,
            "created_at": isoformat(self.created_at),
            "reviewed_at": isoformat(self.reviewed_at),
            "reviewed_by": str(self.reviewed_by) if self.reviewed_by else None,
        }
