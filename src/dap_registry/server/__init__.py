"""HTTP server mode for the DAP registry.

Provides a lightweight stdlib-based HTTP API for registering and resolving
DAPs without requiring any additional web framework dependencies.
"""
from __future__ import annotations

from dap_registry.server.app import (
    DapRegistryHandler,
    DapRegistryServer,
    build_registry,
    create_server,
    run_server,
)
from dap_registry.server.routes import DapRoutes

__all__ = [
    "DapRegistryHandler",
    "DapRegistryServer",
    "DapRoutes",
    "build_registry",
    "create_server",
    "run_server",
]
