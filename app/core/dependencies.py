"""Reusable dependency providers for FastAPI routes."""

from functools import lru_cache

from app.services.codex.client import CodexClient


@lru_cache(maxsize=1)
def _create_codex_client() -> CodexClient:
    return CodexClient()


def get_codex_client() -> CodexClient:
    """FastAPI dependency that returns a cached Codex client."""
    return _create_codex_client()
