"""
Provider configuration store.

WHAT: Create, read, update and delete provider configs and their models
WHY: The orchestrator and connectivity check only read configs; something has to own them
HOW: SQLAlchemy records behind get_db(), domain ProviderConfig objects out
"""

import time
from dataclasses import dataclass, field
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..core.database import get_db
from ..core.models import ModelRecord, ProviderConfigRecord
from ..llm.types import ProviderConfig
from ..utils.exceptions import ConfigNotFoundException, ValidationException
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ModelData:
    """Incoming model definition (id generated when absent)."""
    name: str
    id: str | None = None
    deployment_id: str | None = None
    input_token_price: float | None = None
    output_token_price: float | None = None


@dataclass
class ProviderConfigData:
    """Incoming provider configuration."""
    provider: str
    name: str
    base_url: str = ""
    api_key: str = field(default="", repr=False)
    models: list[ModelData] = field(default_factory=list)


def _check_model_ids(models: list[ModelData]) -> None:
    """
    Raises:
        ValidationException: a model id appears more than once
    """
    seen = set()
    duplicates = []
    for model in models:
        if model.id is None:
            continue
        if model.id in seen:
            duplicates.append(model.id)
        seen.add(model.id)
    if duplicates:
        raise ValidationException(
            "Model ids must be unique within a provider config",
            field_errors=[{"field": "models.id", "value": model_id} for model_id in duplicates]
        )


def _model_records(models: list[ModelData]) -> list[ModelRecord]:
    _check_model_ids(models)
    return [
        ModelRecord(
            id=model.id or str(uuid4()),
            position=position,
            name=model.name,
            deployment_id=model.deployment_id,
            input_token_price=model.input_token_price,
            output_token_price=model.output_token_price,
        )
        for position, model in enumerate(models)
    ]


class ConfigStore:
    """Persisted provider configurations."""

    def list_configs(self) -> list[ProviderConfig]:
        """All configs, oldest first."""
        with get_db() as db:
            records = db.scalars(
                select(ProviderConfigRecord).order_by(ProviderConfigRecord.created_at)
            ).all()
            return [record.to_domain() for record in records]

    def get_config(self, config_id: str) -> ProviderConfig:
        """
        Raises:
            ConfigNotFoundException: Unknown id
        """
        with get_db() as db:
            record = db.get(ProviderConfigRecord, config_id)
            if record is None:
                raise ConfigNotFoundException(config_id)
            return record.to_domain()

    def add_config(self, data: ProviderConfigData) -> ProviderConfig:
        """
        Insert a config with a fresh id and creation timestamp (epoch ms).

        Raises:
            ValidationException: Duplicate model ids or a constraint violation
        """
        models = _model_records(data.models)
        try:
            with get_db() as db:
                record = ProviderConfigRecord(
                    id=str(uuid4()),
                    provider=data.provider,
                    name=data.name,
                    base_url=data.base_url,
                    api_key=data.api_key,
                    created_at=int(time.time() * 1000),
                    models=models,
                )
                db.add(record)
                db.flush()
                config = record.to_domain()
        except IntegrityError as e:
            logger.warning(f"Provider config rejected by store constraints: {e.orig}")
            raise ValidationException("Provider config violates store constraints") from e

        logger.info(f"Provider config added: {config.id} ({config.provider}, {len(config.models)} models)")
        return config

    def update_config(self, config_id: str, data: ProviderConfigData) -> ProviderConfig:
        """
        Replace a config's fields and model list.

        Raises:
            ConfigNotFoundException: Unknown id
            ValidationException: Duplicate model ids or a constraint violation
        """
        models = _model_records(data.models)
        try:
            with get_db() as db:
                record = db.get(ProviderConfigRecord, config_id)
                if record is None:
                    raise ConfigNotFoundException(config_id)

                record.provider = data.provider
                record.name = data.name
                record.base_url = data.base_url
                record.api_key = data.api_key
                record.models.clear()
                db.flush()
                record.models.extend(models)
                db.flush()
                config = record.to_domain()
        except IntegrityError as e:
            logger.warning(f"Provider config {config_id} update rejected by store constraints: {e.orig}")
            raise ValidationException("Provider config violates store constraints") from e

        logger.info(f"Provider config updated: {config_id}")
        return config

    def delete_config(self, config_id: str) -> None:
        """
        Raises:
            ConfigNotFoundException: Unknown id
        """
        with get_db() as db:
            record = db.get(ProviderConfigRecord, config_id)
            if record is None:
                raise ConfigNotFoundException(config_id)
            db.delete(record)

        logger.info(f"Provider config deleted: {config_id}")


config_store = ConfigStore()
