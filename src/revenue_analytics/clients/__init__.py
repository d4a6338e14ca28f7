"""
Client wrappers for external services.
"""

from .database_client import DatabaseClient

__all__ = ['DatabaseClient']
