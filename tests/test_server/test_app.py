"""Tests for dap_registry.server.app — HTTP handler integration over a live socket."""
from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from unittest.mock import patch

import httpx
import pytest

from dap_registry.client import DapRegistryClient
from dap_registry.config import RegistrySettings
from dap_registry.did.bearer import BearerDid
from dap_registry.registration import DapRegistration
from dap_registry.registry import DapRegistry, PortableDidIdentity, verify_proof
from dap_registry.server.app import DapRegistryServer, build_registry, create_server, run_server
from dap_registry.store import InMemoryDapStore, SqliteDapStore

MakeRegistration = Callable[..., DapRegistration]


class CountingStore(InMemoryDapStore):
    def __init__(self) -> None:
        super().__init__()
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        super().close()


@pytest.fixture()
def server(registry: DapRegistry) -> Iterator[DapRegistryServer]:
    server = create_server(registry, host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture()
def base_url(server: DapRegistryServer) -> str:
    host, port = server.server_address[:2]
    return f"http://{host}:{port}"


@pytest.fixture()
def http(base_url: str) -> Iterator[httpx.Client]:
    with httpx.Client(base_url=base_url, timeout=5.0) as client:
        yield client


class TestEndToEnd:
    def test_scenario_a_register_and_verify_against_published_identity(
        self, base_url: str, alice: BearerDid, make_registration: MakeRegistration
    ) -> None:
        registration = make_registration(alice, handle="alice", domain="example.com")
        with DapRegistryClient(base_url) as client:
            proof = client.register(registration)
            document = client.registry_did_document()

        assert (proof.did, proof.handle, proof.domain) == (alice.uri, "alice", "example.com")
        verify_proof(proof.to_dict(), document["id"])

    def test_scenario_b_same_id_twice(
        self, http: httpx.Client, alice: BearerDid, make_registration: MakeRegistration
    ) -> None:
        body = make_registration(alice).to_json()
        headers = {"Content-Type": "application/json"}
        assert http.post("/daps", content=body, headers=headers).status_code == 201

        response = http.post("/daps", content=body, headers=headers)
        assert response.status_code == 409
        assert response.json() == {"error": {"message": "DAP with the same ID already exists"}}

    def test_scenario_c_signer_mismatch(
        self, http: httpx.Client, alice: BearerDid, bob: BearerDid
    ) -> None:
        registration = DapRegistration.create("alice", alice.uri, "example.com")
        registration.sign(bob)
        response = http.post("/daps", json=registration.to_dict())
        assert response.status_code == 401

    def test_scenario_d_unknown_handle(self, http: httpx.Client) -> None:
        response = http.get("/daps/nobody")
        assert response.status_code == 404
        assert response.json() == {"error": {"message": "Handle not found"}}

    def test_lookup_after_register(
        self, http: httpx.Client, alice: BearerDid, make_registration: MakeRegistration
    ) -> None:
        registration = make_registration(alice)
        http.post("/daps", json=registration.to_dict())

        response = http.get("/daps/moegrammer")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"did": alice.uri, "proof": registration.to_dict()}

    def test_percent_encoded_handle(
        self, http: httpx.Client, alice: BearerDid, make_registration: MakeRegistration
    ) -> None:
        http.post("/daps", json=make_registration(alice, handle="zoë").to_dict())
        response = http.get("/daps/zo%C3%AB")
        assert response.status_code == 200


class TestRouting:
    def test_did_document(self, http: httpx.Client, registry_did: BearerDid) -> None:
        response = http.get("/.well-known/did.json")
        assert response.status_code == 200
        assert response.json()["id"] == registry_did.uri

    def test_metadata(self, http: httpx.Client) -> None:
        response = http.get("/metadata")
        assert response.json() == {"enabled": True, "supportedDidMethods": ["jwk", "key"]}

    def test_trailing_slash_and_query_are_ignored(self, http: httpx.Client) -> None:
        assert http.get("/metadata/?x=1").status_code == 200

    def test_unknown_route(self, http: httpx.Client) -> None:
        response = http.get("/nope")
        assert response.status_code == 404
        assert "message" in response.json()["error"]

    @pytest.mark.parametrize(
        "method, path",
        [
            ("GET", "/daps"),
            ("POST", "/metadata"),
            ("POST", "/daps/moegrammer"),
            ("PUT", "/daps"),
            ("DELETE", "/daps/moegrammer"),
            ("PATCH", "/metadata"),
        ],
    )
    def test_unsupported_methods(self, http: httpx.Client, method: str, path: str) -> None:
        response = http.request(method, path)
        assert response.status_code == 405
        assert "not supported" in response.json()["error"]["message"]

    def test_malformed_json(self, http: httpx.Client) -> None:
        response = http.post("/daps", content=b"{not json")
        assert response.status_code == 400

    def test_unexpected_error_is_500(self, http: httpx.Client) -> None:
        with patch.object(DapRegistry, "lookup", side_effect=RuntimeError("boom")):
            response = http.get("/daps/moegrammer")
        assert response.status_code == 500
        assert response.json() == {"error": {"message": "Internal server error"}}


class TestLifecycle:
    def test_server_close_closes_store_once(self, registry_did: BearerDid) -> None:
        store = CountingStore()
        store.open()
        server = create_server(
            DapRegistry(store, PortableDidIdentity(registry_did.export())), host="127.0.0.1", port=0
        )
        server.server_close()
        server.server_close()
        assert store.close_calls == 1

    def test_build_registry_opens_store(self, registry_did: BearerDid) -> None:
        settings = RegistrySettings(
            portable_did=registry_did.export(),
            database=":memory:",
            supported_did_methods=["key"],
        )
        registry = build_registry(settings)
        try:
            assert isinstance(registry.store, SqliteDapStore)
            assert len(registry.store) == 0
            assert registry.metadata.supported_did_methods == ("key",)
            assert registry.registry_did().uri == registry_did.uri
        finally:
            registry.store.close()

    def test_run_server_closes_store_on_interrupt(self, registry_did: BearerDid) -> None:
        settings = RegistrySettings(
            portable_did=registry_did.export(), database=":memory:", host="127.0.0.1", port=0
        )
        store = CountingStore()

        def build(settings: RegistrySettings) -> DapRegistry:
            return build_registry(settings, store=store)

        with patch("dap_registry.server.app.build_registry", build), patch.object(
            DapRegistryServer, "serve_forever", side_effect=KeyboardInterrupt
        ):
            run_server(settings)
        assert store.close_calls == 1
