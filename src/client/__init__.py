"""Async client for the movie catalog API."""

from .main import CatalogClient

__all__ = ["CatalogClient"]
