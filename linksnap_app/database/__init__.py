"""
Relational storage used by the local backend.
"""

from .connection import Base, SessionLocal, engine

__all__ = ["Base", "SessionLocal", "engine"]
