"""Adapters for external music catalog services."""

from .catalog_client import CatalogClient

__all__ = ["CatalogClient"]
