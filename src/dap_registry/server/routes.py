"""Route handlers for the registry HTTP server.

Each handler takes already-extracted request data and returns a tuple of
``(status_code, response_dict)``. The HTTP handler in app.py does the
routing and JSON serialization.

Errors are mapped to status codes by :func:`error_status`, the single place
where the registry's error classes meet HTTP.
"""
from __future__ import annotations

from dap_registry.errors import (
    CanonicalizationError,
    ConflictError,
    DapError,
    HandleNotFound,
    InvalidDapRegistration,
    InvalidRegistrationId,
    MalformedIdentifier,
    MalformedRegistration,
    SignatureVerificationFailed,
    UnavailableError,
)
from dap_registry.registry import DapRegistry
from dap_registry.server.models import (
    ErrorResponse,
    LookupResponse,
    MetadataResponse,
    RegistrationResponse,
)

_STATUS_BY_ERROR: dict[type[DapError], int] = {
    MalformedIdentifier: 400,
    InvalidRegistrationId: 400,
    CanonicalizationError: 400,
    MalformedRegistration: 400,
    SignatureVerificationFailed: 401,
    InvalidDapRegistration: 401,
    HandleNotFound: 404,
    ConflictError: 409,
    UnavailableError: 500,
}


def error_status(exc: DapError) -> int:
    """Return the HTTP status for *exc*, walking its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[cls]
    return 500


def error_response(status: int, message: str) -> tuple[int, dict[str, object]]:
    return status, ErrorResponse.of(message).model_dump()


class DapRoutes:
    """Handlers bound to one :class:`DapRegistry`.

    Parameters
    ----------
    registry:
        The registry that serves every request routed here.
    """

    def __init__(self, registry: DapRegistry) -> None:
        self.registry = registry

    def handle_did_document(self) -> tuple[int, dict[str, object]]:
        """Handle GET /.well-known/did.json."""
        try:
            registry_did = self.registry.registry_did()
        except UnavailableError as exc:
            return error_response(500, exc.message)
        return 200, dict(registry_did.document)

    def handle_metadata(self) -> tuple[int, dict[str, object]]:
        """Handle GET /metadata."""
        metadata = self.registry.metadata
        response = MetadataResponse(
            enabled=metadata.enabled,
            supported_did_methods=list(metadata.supported_did_methods),
        )
        return 200, response.model_dump(by_alias=True)

    def handle_get_dap(self, handle: str) -> tuple[int, dict[str, object]]:
        """Handle GET /daps/{handle}."""
        try:
            row = self.registry.lookup(handle)
        except DapError as exc:
            return error_response(error_status(exc), exc.message)
        return 200, LookupResponse(did=row.did, proof=row.proof).model_dump()

    def handle_register(self, body: bytes | str) -> tuple[int, dict[str, object]]:
        """Handle POST /daps.

        Parameters
        ----------
        body:
            The raw request body; JSON errors are reported as 400.
        """
        try:
            registration = self.registry.register(body)
        except DapError as exc:
            return error_response(error_status(exc), exc.message)
        response = RegistrationResponse.model_validate({"proof": registration.to_dict()})
        return 201, response.model_dump()


__all__ = ["DapRoutes", "error_response", "error_status"]
