"""Error taxonomy for the DAP registry.

Every error raised by the registration protocol derives from
:class:`DapError`. The HTTP layer maps each concrete class to a status code
in one table (see :mod:`dap_registry.server.routes`), so adding a new error
class means adding a row there as well.
"""
from __future__ import annotations


class DapError(Exception):
    """Base class for all registry errors."""

    default_message: str = "DAP registry error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])


class MalformedIdentifier(DapError, ValueError):
    """Raised when a ``@handle/domain`` string does not match the grammar."""

    default_message = "Invalid DAP"


class InvalidRegistrationId(DapError, ValueError):
    """Raised when a ``reg_...`` identifier cannot be decoded."""

    default_message = "Invalid Registration ID"


class CanonicalizationError(DapError, ValueError):
    """Raised when a value has no canonical JSON encoding."""

    default_message = "Value cannot be canonicalized"


class MalformedRegistration(DapError, ValueError):
    """Raised when a registration payload is missing or mistypes a field."""

    default_message = "Malformed DAP Registration"


class SignatureVerificationFailed(DapError):
    """Raised when a signature envelope does not verify."""

    default_message = "Signature verification failed"


class InvalidDapRegistration(DapError):
    """Raised when a registration is unsigned or signed by the wrong DID."""

    default_message = "Invalid DAP Registration"


class ConflictError(DapError):
    """Raised when a registration collides with an existing one.

    Parameters
    ----------
    constraint:
        The unique column that was violated: ``"id"``, ``"did"`` or
        ``"handle"``.
    """

    MESSAGES: dict[str, str] = {
        "id": "DAP with the same ID already exists",
        "did": "DAP with the same DID already exists",
        "handle": "DAP with the same handle already exists",
    }

    def __init__(self, constraint: str) -> None:
        self.constraint = constraint
        super().__init__(self.MESSAGES.get(constraint, "Failed to insert DAP"))


class HandleNotFound(DapError, KeyError):
    """Raised when no registration exists for a handle."""

    default_message = "Handle not found"

    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(self.default_message)

    def __str__(self) -> str:
        return self.message


class UnavailableError(DapError):
    """Raised when the registry identity or the store cannot be used."""

    default_message = "Registration Request Failed"


__all__ = [
    "CanonicalizationError",
    "ConflictError",
    "DapError",
    "HandleNotFound",
    "InvalidDapRegistration",
    "InvalidRegistrationId",
    "MalformedIdentifier",
    "MalformedRegistration",
    "SignatureVerificationFailed",
    "UnavailableError",
]
