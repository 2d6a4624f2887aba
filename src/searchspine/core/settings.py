"""Process-wide settings for search-spine.

Settings are read once at startup from ``SEARCH_*`` environment variables,
an optional ``.env`` file, or a JSON file, and are immutable afterwards.
Components receive the settings object by reference.

Features:
    - **Engine connection:** host, sniffing, ping timeout
    - **Index:** index name, refresh-on-save
    - **Entity declarations:** per-type zone/base/name and field rules
    - **Canonical store:** SQLAlchemy database URL
    - **Observability:** log level and JSON toggle

Examples:
    >>> settings = SearchSpineSettings(
    ...     index="records",
    ...     entities=[{"base": "sys", "name": "user",
    ...                "indexed_attributes": {"email": True}}],
    ... )
    >>> settings.entities[0].descriptor.key
    'sys_user'

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from searchspine.core.entity import EntityDescriptor
from searchspine.core.errors import ConfigError

FieldRule = bool | dict[str, Any]


class EntityDeclaration(BaseModel):
    """One configured entity type and its field rules.

    ``indexed_attributes`` maps a field name to ``True`` (index with the
    engine's default schema), ``False`` (not indexed) or a schema
    descriptor such as ``{"type": "date"}``. A plain list of names is
    shorthand for all ``True``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    zone: str | None = None
    base: str | None = None
    name: str | None = None
    indexed_attributes: dict[str, FieldRule] | None = Field(
        default=None,
        validation_alias=AliasChoices("indexed_attributes", "indexedAttributes"),
    )

    @field_validator("indexed_attributes", mode="before")
    @classmethod
    def _names_to_rules(cls, value: Any) -> Any:
        if isinstance(value, list | tuple):
            return {str(name): True for name in value}
        return value

    @property
    def descriptor(self) -> EntityDescriptor:
        return EntityDescriptor(zone=self.zone, base=self.base, name=self.name)


class SearchSpineSettings(BaseSettings):
    """search-spine configuration.

    Precedence: constructor arguments > environment variables > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Engine connection ────────────────────────────────────────
    host: str = Field(
        default="127.0.0.1:9200",
        description="Search engine address (host:port or URL)",
    )
    sniff_on_start: bool = Field(
        default=False,
        description="Discover cluster nodes when the client starts",
    )
    sniff_on_node_failure: bool = Field(
        default=False,
        description="Re-discover cluster nodes after a connection to one fails",
    )
    sniff_interval: float = Field(
        default=300.0,
        gt=0,
        description="Minimum seconds between node sniffing rounds",
    )
    ping_timeout: float = Field(
        default=1.0,
        gt=0,
        description="Seconds to wait for the startup ping",
    )

    # ── Index ────────────────────────────────────────────────────
    index: str = Field(
        default="searchspine",
        min_length=1,
        description="Name of the single search index",
    )
    refresh_on_save: bool = Field(
        default=False,
        description="Refresh the index after each write so it is immediately searchable",
    )
    mapping_concurrency: int = Field(
        default=10,
        ge=1,
        description="Maximum mapping calls in flight during startup",
    )

    # ── Canonical store ──────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///searchspine.db",
        description="SQLAlchemy URL of the canonical record store",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Entity types ─────────────────────────────────────────────
    entities: list[EntityDeclaration] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    @classmethod
    def from_json_file(cls, path: Path | str, **overrides: Any) -> SearchSpineSettings:
        """Load settings from a JSON document; environment still applies to unset keys."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigError(f"Settings file not found: {path}", cause=e) from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Settings file is not valid JSON: {path}", cause=e) from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file must contain a JSON object: {path}")
        data.update(overrides)
        return cls(**data)
