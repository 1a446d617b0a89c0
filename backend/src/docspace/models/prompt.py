"""Prompt configuration model"""

from sqlalchemy import Column, Text, Integer, Float, Boolean, ForeignKey, DateTime, Uuid, CheckConstraint

from .base import Base, utcnow, new_uuid, isoformat


class Prompt(Base):
    """Editable LLM prompt configuration, looked up by function_name.

    version starts at 1 and is incremented on every update.
    """
    __tablename__ = "prompts"

    prompt_id = Column(Uuid, primary_key=True, default=new_uuid)
    function_name = Column(Text, nullable=False, unique=True)
    display_name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    model_provider = Column(Text, nullable=False)
    model_name = Column(Text, nullable=False)
    system_prompt = Column(Text, nullable=True)
    user_prompt_template = Column(Text, nullable=False)
    temperature = Column(Float, nullable=False, default=0.7)
    max_tokens = Column(Integer, nullable=False, default=4096)
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=1)
    updated_by = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "model_provider IN ('openai', 'anthropic', 'gemini')",
            name="ck_prompts_model_provider",
        ),
    )

    def to_dict(self):
        return {
            "prompt_id": str(self.prompt_id),
            "function_name": self.function_name,
            "display_name": self.display_name,
            "description": self.description,
            "model_provider": self.model_provider,
            "model_name": self.model_name,
            "system_prompt": self.system_prompt,
            "user_prompt_template": self.user_prompt_template,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "is_active": self.is_active,
            "version": self.version,
            "updated_by": str(self.updated_by) if self.updated_by else None,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
