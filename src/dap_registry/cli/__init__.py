"""Command-line interface for dap-registry."""
