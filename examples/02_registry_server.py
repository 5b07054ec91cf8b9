#!/usr/bin/env python3
"""Example: Registry server and client

Starts the registry HTTP server on a free local port, then registers and
looks up a handle through DapRegistryClient.

Usage:
    python examples/02_registry_server.py

Requirements:
    pip install dap-registry
"""
from __future__ import annotations

import threading

from dap_registry import BearerDid, DapRegistration, DapRegistryClient, RegistrySettings
from dap_registry.server import build_registry, create_server


def main() -> None:
    # Step 1: Configure and start the server
    registry_did = BearerDid.create()
    settings = RegistrySettings(portable_did=registry_did.export(), database=":memory:")
    server = create_server(build_registry(settings), host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base_url = f"http://127.0.0.1:{server.server_address[1]}"
    print(f"Registry listening on {base_url}")

    try:
        with DapRegistryClient(base_url) as client:
            # Step 2: Discover the registry
            metadata = client.metadata()
            print(f"Supported DID methods: {', '.join(metadata.supported_did_methods)}")

            # Step 3: Register a handle
            registrant = BearerDid.create()
            registration = DapRegistration.create("alice", registrant.uri, "example.com")
            registration.sign(registrant)
            proof = client.register(registration)
            print(f"Registered {proof.dap} as {proof.id}")

            # Step 4: Look it up again
            result = client.lookup("alice")
            print(f"@alice resolves to {result.did[:40]}...")
    finally:
        server.shutdown()
        server.server_close()
        thread.join()

    print("\nServer example complete.")


if __name__ == "__main__":
    main()
