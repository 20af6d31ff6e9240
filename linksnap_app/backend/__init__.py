"""
Hosted data/auth service clients.

This module implements the Strategy Pattern for the backend the app delegates
persistence, authentication and remote functions to.
"""

from .strategies import BackendStrategy, SQLAlchemyBackend, SupabaseBackend
from .factory import BackendFactory, BackendType

__all__ = [
    "BackendStrategy",
    "SQLAlchemyBackend",
    "SupabaseBackend",
    "BackendFactory",
    "BackendType",
]
