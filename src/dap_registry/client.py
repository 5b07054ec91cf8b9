"""HTTP client for a DAP registry.

Example
-------
::

    from dap_registry import BearerDid, DapRegistration
    from dap_registry.client import DapRegistryClient

    did = BearerDid.create()
    registration = DapRegistration.create("moegrammer", did.uri, "didpay.me")
    registration.sign(did)

    with DapRegistryClient("http://localhost:3000") as client:
        proof = client.register(registration)
        assert client.lookup("moegrammer").did == did.uri
"""
from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Any

import httpx

from dap_registry.registration import DapRegistration
from dap_registry.registry import RegistrationMetadata

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class RegistryClientError(Exception):
    """A registry request failed.

    Attributes
    ----------
    status_code:
        HTTP status returned by the registry, or ``None`` when no response
        was received.
    message:
        The registry's ``error.message``, or a description of the failure.
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"


@dataclass(frozen=True)
class LookupResult:
    """A resolved handle: the bound DID and the registrant-signed record."""

    did: str
    proof: dict[str, Any]


class DapRegistryClient:
    """Talks to a registry's HTTP API.

    Registration is never retried; a failed attempt is reported as
    :class:`RegistryClientError`.

    Parameters
    ----------
    base_url:
        Registry root URL, e.g. ``"https://registry.example"``.
    timeout_seconds:
        Per-request timeout.
    transport:
        Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> "DapRegistryClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def register(self, registration: DapRegistration | dict[str, Any]) -> DapRegistration:
        """Submit a signed registration and return the registry's proof.

        The proof is returned unverified; check it with
        :func:`dap_registry.registry.verify_proof`.
        """
        body = registration.to_dict() if isinstance(registration, DapRegistration) else registration
        data = self._request("POST", "/daps", json=body)
        proof = data.get("proof")
        if not isinstance(proof, dict):
            raise RegistryClientError(None, "Registry response is missing 'proof'")
        return DapRegistration.load(proof)

    def lookup(self, handle: str) -> LookupResult:
        """Resolve *handle* to its DID and stored record."""
        data = self._request("GET", "/daps/" + urllib.parse.quote(handle, safe=""))
        did = data.get("did")
        proof = data.get("proof")
        if not isinstance(did, str) or not isinstance(proof, dict):
            raise RegistryClientError(None, "Registry response is missing 'did' or 'proof'")
        return LookupResult(did=did, proof=proof)

    def metadata(self) -> RegistrationMetadata:
        data = self._request("GET", "/metadata")
        return RegistrationMetadata(
            enabled=bool(data.get("enabled", False)),
            supported_did_methods=tuple(data.get("supportedDidMethods") or ()),
        )

    def registry_did_document(self) -> dict[str, Any]:
        """Fetch the registry's DID document from ``/.well-known/did.json``."""
        return self._request("GET", "/.well-known/did.json")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, json: Any = None) -> dict[str, Any]:
        try:
            response = self.http.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("%s %s%s failed: %s", method, self.base_url, path, exc)
            raise RegistryClientError(None, f"Request to {self.base_url}{path} failed: {exc}") from exc

        if not response.is_success:
            raise self._to_error(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise RegistryClientError(response.status_code, "Registry returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise RegistryClientError(response.status_code, "Registry returned a non-object body")
        return data

    @staticmethod
    def _to_error(response: httpx.Response) -> RegistryClientError:
        try:
            parsed = response.json()
        except ValueError:
            return RegistryClientError(response.status_code, response.text or f"HTTP {response.status_code}")
        error = parsed.get("error") if isinstance(parsed, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        return RegistryClientError(response.status_code, message or f"HTTP {response.status_code}")


__all__ = ["DapRegistryClient", "LookupResult", "RegistryClientError"]
