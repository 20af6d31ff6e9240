"""
Database models for the local backend.

These tables mirror what the hosted backend keeps: the ``urls`` table plus
the users and sessions its auth service owns.
"""

from .url import ShortURL
from .auth import User, UserSession

__all__ = ["ShortURL", "User", "UserSession"]
