"""
Factory for creating backend instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum
from .strategies import BackendStrategy, SQLAlchemyBackend, SupabaseBackend
from linksnap_app.config import settings
from linksnap_app.services.short_code import RandomShortCodeGenerator

logger = logging.getLogger(__name__)


class BackendType(Enum):
    """Available backends"""
    SQLALCHEMY = "sqlalchemy"
    SUPABASE = "supabase"


class BackendFactory:
    """
    Simple factory for creating backend instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: BackendStrategy = None

    @classmethod
    def create(cls, backend: BackendType) -> BackendStrategy:
        """
        Create or return cached backend instance.

        Args:
            backend: Type of backend (from enum)

        Returns:
            Singleton backend instance

        Raises:
            ValueError: If the backend is unknown or misconfigured
        """
        if cls._instance is not None:
            return cls._instance

        if backend == BackendType.SQLALCHEMY:
            from linksnap_app.database.connection import SessionLocal

            cls._instance = SQLAlchemyBackend(
                session_factory=SessionLocal,
                short_code_generator=RandomShortCodeGenerator(
                    length=settings.short_code_length,
                    max_retries=settings.max_retries,
                ),
            )
            logger.info("SQLAlchemy backend initialized (%s)", settings.database_url)

        elif backend == BackendType.SUPABASE:
            if not settings.supabase_url or not settings.supabase_anon_key:
                raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set for the supabase backend")

            cls._instance = SupabaseBackend(
                url=settings.supabase_url,
                anon_key=settings.supabase_anon_key,
                timeout=settings.request_timeout,
            )
            logger.info("Supabase backend initialized (%s)", settings.supabase_url)

        else:
            raise ValueError(f"Unknown backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
