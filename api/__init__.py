"""Integration Gateway HTTP API (FastAPI)."""
