"""Remote catalog access."""

from .client import CatalogClient

__all__ = ["CatalogClient"]
