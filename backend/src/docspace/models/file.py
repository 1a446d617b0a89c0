"""Folder and File models for hierarchical tenant storage"""

from sqlalchemy import Column, Text, BigInteger, ForeignKey, DateTime, Uuid, UniqueConstraint, Index

from .base import Base, utcnow, new_uuid, isoformat


class Folder(Base):
    """A virtual folder. folder_path always ends with '/'."""
    __tablename__ = "folders"

    folder_id = Column(Uuid, primary_key=True, default=new_uuid)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    folder_name = Column(Text, nullable=False)
    folder_path = Column(Text, nullable=False)
    parent_path = Column(Text, nullable=False, default="/")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "folder_path", name="uq_folders_tenant_path"),
        Index("ix_folders_tenant_parent", "tenant_id", "parent_path"),
    )

    def to_dict(self):
        return {
            "folder_id": str(self.folder_id),
            "tenant_id": str(self.tenant_id),
            "folder_name": self.folder_name,
            "folder_path": self.folder_path,
            "parent_path": self.parent_path,
            "created_at": isoformat(self.created_at),
        }


class File(Base):
    """Metadata for an uploaded file. Bytes live in the 'user-files' blob store."""
    __tablename__ = "files"

    file_id = Column(Uuid, primary_key=True, default=new_uuid)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    blob_key = Column(Text, nullable=False, unique=True)
    file_name = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False, default="/")
    mime_type = Column(Text, nullable=True)
    file_size = Column(BigInteger, nullable=True)
    etag = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_files_tenant_path", "tenant_id", "file_path"),
    )

    def to_dict(self):
        return {
            "file_id": str(self.file_id),
            "tenant_id": str(self.tenant_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "blob_key": self.blob_key,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
