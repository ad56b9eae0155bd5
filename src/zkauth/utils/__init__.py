"""Shared utilities: file helpers and logging infrastructure."""

__all__: list[str] = []
