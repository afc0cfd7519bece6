"""Settings for the document generator.

Every value can be overridden with an environment variable prefixed with
``DOCS_``, e.g. ``DOCS_LOG_LEVEL=DEBUG``.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOCS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    database_url: str = Field(
        default="sqlite:///documents.db",
        description="SQLAlchemy URL of the database holding the number counters",
    )
    asset_dir: Path = Field(
        default=Path("assets"),
        description="Root directory for templates, logos and produced PDFs",
    )
    due_days: int = Field(
        default=14,
        ge=0,
        description="Days between issue date and due/validity date",
    )
    currency_label: str = Field(
        default="EUR",
        description="Currency label printed in the summary block",
    )
    logo_max_width: float = Field(default=260, gt=0)
    logo_max_height: float = Field(default=80, gt=0)


def get_settings() -> Settings:
    return Settings()
