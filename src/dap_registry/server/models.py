"""Pydantic response models for the registry HTTP server."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from dap_registry.registration import RegistrationModel


class ErrorDetail(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error body: ``{"error": {"message": ...}}``."""

    error: ErrorDetail

    @classmethod
    def of(cls, message: str) -> "ErrorResponse":
        return cls(error=ErrorDetail(message=message))


class RegistrationResponse(BaseModel):
    """Response body for POST /daps."""

    proof: RegistrationModel


class LookupResponse(BaseModel):
    """Response body for GET /daps/{handle}."""

    did: str
    proof: dict[str, object]


class MetadataResponse(BaseModel):
    """Response body for GET /metadata."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool
    supported_did_methods: list[str] = Field(default_factory=list, alias="supportedDidMethods")


__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "LookupResponse",
    "MetadataResponse",
    "RegistrationResponse",
]
