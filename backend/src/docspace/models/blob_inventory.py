"""BlobInventory model - the extraction pipeline's work queue"""

from sqlalchemy import (
    Column, Text, Integer, BigInteger, ForeignKey, DateTime, Uuid,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow, new_uuid, isoformat


class BlobInventory(Base):
    """A binary object discovered in storage and its extraction status.

    status follows pending -> processing -> extracted/failed. Transitions
    are guarded by docspace.domain.extraction.status and performed with
    conditional UPDATEs so that concurrent triggers cannot double-queue.
    """
    __tablename__ = "blob_inventory"

    blob_id = Column(Uuid, primary_key=True, default=new_uuid)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=True)
    source_store = Column(Text, nullable=False)
    blob_key = Column(Text, nullable=False)
    file_name = Column(Text, nullable=False)
    mime_type = Column(Text, nullable=True)
    size_bytes = Column(BigInteger, nullable=True)
    byte_hash_sha256 = Column(Text, nullable=True)
    etag = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    extraction_priority = Column(Integer, nullable=False, default=0)
    discovered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    jobs = relationship(
        "ExtractionJob",
        back_populates="blob",
        cascade="all, delete-orphan",
        order_by="ExtractionJob.queued_at.desc()",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'extracted', 'failed')",
            name="ck_blob_inventory_status",
        ),
        UniqueConstraint("source_store", "blob_key", name="uq_blob_inventory_store_key"),
        Index("ix_blob_inventory_status_priority", "status", "extraction_priority", "discovered_at"),
    )

    @property
    def source_uri(self) -> str:
        return f"blob://{self.source_store}/{self.blob_key}"

    def to_dict(self):
        return {
            "blob_id": str(self.blob_id),
            "tenant_id": str(self.tenant_id) if self.tenant_id else None,
            "source_store": self.source_store,
            "blob_key": self.blob_key,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "byte_hash_sha256": self.byte_hash_sha256,
            "status": self.status,
            "extraction_priority": self.extraction_priority,
            "discovered_at": isoformat(self.discovered_at),
            "updated_at": isoformat(self.updated_at),
        }
