"""
Storage backends.

- base: abstract Store contract
- postgres: psycopg implementation
"""

from .base import Store
from .postgres import PostgresStore

__all__ = ["Store", "PostgresStore"]
