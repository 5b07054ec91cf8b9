"""Runtime configuration for the registry server.

Settings are read from ``REGISTRY_``-prefixed environment variables by
pydantic-settings; keyword arguments to :class:`RegistrySettings` override
them.

==================================  ===================  =======================================
Variable                            Default              Meaning
==================================  ===================  =======================================
``REGISTRY_PORTABLE_DID``           ``{}``               Registry identity as portable DID JSON
``REGISTRY_PORTABLE_DID_FILE``      (unset)              File holding the portable DID JSON
``REGISTRY_DATABASE``               ``dap_registry.db``  SQLite path or ``:memory:``
``REGISTRY_HOST``                   ``0.0.0.0``          Bind address
``REGISTRY_PORT``                   ``3000``             TCP port
``REGISTRY_ENABLED``                ``true``             Advertised in ``/metadata``
``REGISTRY_SUPPORTED_DID_METHODS``  ``jwk,key``          Comma-separated DID methods accepted
``REGISTRY_LOG_LEVEL``              ``INFO``             Root logging level
==================================  ===================  =======================================

When both ``REGISTRY_PORTABLE_DID`` and ``REGISTRY_PORTABLE_DID_FILE`` are
set, the file wins.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

from dap_registry.did.resolver import SUPPORTED_METHODS

ENV_PREFIX: str = "REGISTRY_"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class RegistrySettings(BaseSettings):
    """Validated registry configuration.

    Raises
    ------
    pydantic.ValidationError
        If a variable has an invalid value.
    OSError
        If ``REGISTRY_PORTABLE_DID_FILE`` cannot be read.
    """

    portable_did: Annotated[dict[str, object], NoDecode] = Field(default_factory=dict)
    portable_did_file: str | None = None
    database: str = "dap_registry.db"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=0, le=65535)
    enabled: bool = True
    supported_did_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(SUPPORTED_METHODS)
    )
    log_level: LogLevel = "INFO"

    model_config = {"env_prefix": ENV_PREFIX}

    @field_validator("supported_did_methods", mode="before")
    @classmethod
    def _split_methods(cls, value: object) -> object:
        if isinstance(value, str):
            return [method.strip() for method in value.split(",") if method.strip()]
        return value

    @field_validator("supported_did_methods")
    @classmethod
    def _known_methods(cls, value: list[str]) -> list[str]:
        unknown = sorted(set(value) - set(SUPPORTED_METHODS))
        if unknown:
            raise ValueError(
                f"Unsupported DID methods {unknown}; choose from {list(SUPPORTED_METHODS)}"
            )
        return value

    @field_validator("portable_did", mode="before")
    @classmethod
    def _decode_portable_did(cls, value: object) -> object:
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _load_portable_did_file(self) -> "RegistrySettings":
        if self.portable_did_file:
            raw = Path(self.portable_did_file).read_text(encoding="utf-8")
            self.portable_did = json.loads(raw)
        return self


__all__ = ["ENV_PREFIX", "RegistrySettings"]
