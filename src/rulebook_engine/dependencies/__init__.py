"""Dependency wiring for adapters (CLI and HTTP)."""
