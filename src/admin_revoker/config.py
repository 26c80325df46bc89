"""
Configuration — typed, validated settings for one revoker invocation.

Uses pydantic-settings to merge, highest priority first:
  1. Init kwargs
  2. Environment variables — ADMIN_REVOKER_ prefix, "__" for nesting
     (ADMIN_REVOKER_DATABASE__DSN maps to database.dsn)
  3. The --config file, JSON (`.json`) or YAML (any other suffix)
  4. Defaults

Sub-settings are plain BaseModel classes; only AppSettings is a
BaseSettings. All configuration errors are caught before any connection is
opened and reported as CONFIGURATION_ERROR.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from admin_revoker.railway import ErrorCode, Result


class DatabaseSettings(BaseModel):
    """
    PostgreSQL connection configuration.

    Accepts either a full connection string via `dsn` or individual
    components (host, port, name, username, password). `dsn` takes priority
    when both are provided and is always populated after construction.
    """

    dsn: SecretStr | None = Field(
        default=None,
        description="Full PostgreSQL connection string (overrides individual fields)",
    )
    host: str | None = Field(default=None, description="PostgreSQL host")
    port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    name: str | None = Field(default=None, description="PostgreSQL database name")
    username: str | None = Field(default=None, description="PostgreSQL username")
    password: SecretStr | None = Field(default=None, description="PostgreSQL password")
    connect_timeout_seconds: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def resolve_dsn(self) -> DatabaseSettings:
        """Build `dsn` from the components when it was not given directly."""
        if self.dsn is not None:
            return self
        missing = [f for f, v in [
            ("database.host", self.host),
            ("database.name", self.name),
            ("database.username", self.username),
            ("database.password", self.password),
        ] if not v]
        if missing:
            raise ValueError("Set database.dsn or provide all of: " + ", ".join(missing))
        dsn_value = (
            f"postgresql://{self.username}:{self.password.get_secret_value()}"  # type: ignore[union-attr]
            f"@{self.host}:{self.port}/{self.name}"
        )
        object.__setattr__(self, "dsn", SecretStr(dsn_value))
        return self

    def get_dsn(self) -> str:
        assert self.dsn is not None  # guaranteed by resolve_dsn validator
        return self.dsn.get_secret_value()


class ServiceSettings(BaseModel):
    """Address and per-call timeout of one authority service."""

    url: str = Field(description="Base URL (rest) or endpoint URL (jsonrpc)")
    timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Service URL must be http(s), got {value!r}")
        return value


class TlsSettings(BaseModel):
    """Client certificate and trust anchors used for both authority services."""

    cert_file: Path | None = None
    key_file: Path | None = None
    ca_file: Path | None = None

    @model_validator(mode="after")
    def key_needs_cert(self) -> TlsSettings:
        if self.key_file and not self.cert_file:
            raise ValueError("tls.key_file is set but tls.cert_file is not")
        return self


class ConfigFileSettingsSource(PydanticBaseSettingsSource):
    """Read settings from the --config file: JSON for `.json`, YAML otherwise."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if path is not None:
            with path.open(encoding="utf-8") as f:
                data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ValueError(f"{path}: top level must be a mapping")
            self._data = data

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Config file path for the AppSettings currently being constructed.
_local = threading.local()


class AppSettings(BaseSettings):
    """Root settings — aggregates all sub-settings."""

    model_config = SettingsConfigDict(
        env_prefix="ADMIN_REVOKER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings
    ra_service: ServiceSettings
    sa_service: ServiceSettings
    tls: TlsSettings = Field(default_factory=TlsSettings)

    transport: Literal["rest", "jsonrpc"] = "rest"
    admin_identity: str | None = Field(
        default=None, description="Name recorded by the RA; defaults to the OS user"
    )
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = "console"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            ConfigFileSettingsSource(settings_cls, getattr(_local, "config_path", None)),
        )

    @classmethod
    def from_file(cls, config_path: Path, **overrides: Any) -> AppSettings:
        _local.config_path = config_path
        try:
            return cls(**overrides)
        finally:
            _local.config_path = None


def load_settings(config_path: Path) -> Result[AppSettings]:
    """Load and validate settings from `config_path`, or fail with CONFIGURATION_ERROR."""
    return Result.from_computation(
        lambda: AppSettings.from_file(config_path),
        ErrorCode.CONFIGURATION_ERROR,
        f"Reading config file {config_path}",
    )
