"""
ORM models for the provider configuration store.

WHAT: SQLAlchemy models for provider configs and their models
WHY: Persist what the playground fans out to, with per-model pricing
HOW: Declarative models, cascade delete from config to models, conversion to domain dataclasses
"""

from uuid import uuid4
from sqlalchemy import (
    Column, Integer, String, Float, BigInteger, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from .database import Base
from ..llm.types import Model, ProviderConfig


class ProviderConfigRecord(Base):
    """
    Provider configuration table.

    WHAT: One provider endpoint with credentials
    WHY: Source of ProviderConfig objects for dispatch and connectivity checks
    HOW: Primary key on id; models cascade on delete
    """
    __tablename__ = "provider_configs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    provider = Column(String(32), nullable=False)
    name = Column(String(100), nullable=False)
    base_url = Column(String(500), nullable=False, default="")
    api_key = Column(String(500), nullable=False, default="")
    created_at = Column(BigInteger, nullable=False)

    models = relationship(
        "ModelRecord",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="ModelRecord.position",
    )

    def to_domain(self) -> ProviderConfig:
        return ProviderConfig(
            id=self.id,
            provider=self.provider,
            name=self.name,
            base_url=self.base_url,
            api_key=self.api_key,
            models=tuple(model.to_domain() for model in self.models),
            created_at=self.created_at,
        )

    def __repr__(self):
        # api_key deliberately absent
        return f"<ProviderConfigRecord(id={self.id}, provider={self.provider}, name={self.name})>"


class ModelRecord(Base):
    """Model offered by a provider configuration, with prices per 1M tokens."""
    __tablename__ = "provider_models"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False)
    config_id = Column(String(36), ForeignKey("provider_configs.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False)
    deployment_id = Column(String(200), nullable=True)
    input_token_price = Column(Float, nullable=True)
    output_token_price = Column(Float, nullable=True)

    config = relationship("ProviderConfigRecord", back_populates="models")

    __table_args__ = (
        CheckConstraint("input_token_price IS NULL OR input_token_price >= 0", name="check_input_price"),
        CheckConstraint("output_token_price IS NULL OR output_token_price >= 0", name="check_output_price"),
        Index("idx_provider_models_config", "config_id", "id", unique=True),
    )

    def to_domain(self) -> Model:
        return Model(
            id=self.id,
            name=self.name,
            deployment_id=self.deployment_id,
            input_token_price=self.input_token_price,
            output_token_price=self.output_token_price,
        )

    def __repr__(self):
        return f"<ModelRecord(id={self.id}, config_id={self.config_id}, name={self.name})>"
