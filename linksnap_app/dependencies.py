"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of the backend, cache and change
feed, the URL service built from them, and the session lookups used by the
routes.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from linksnap_app.backend.factory import BackendFactory, BackendType
from linksnap_app.backend.strategies import BackendStrategy
from linksnap_app.cache.factory import CacheFactory
from linksnap_app.cache.strategies import CacheStrategy
from linksnap_app.config import settings
from linksnap_app.events.factory import ChangeFeedFactory, FeedBackend
from linksnap_app.events.strategies import ChangeFeedStrategy
from linksnap_app.exceptions import BackendError
from linksnap_app.schemas.auth import AuthSession

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_backend() -> BackendStrategy:
    """
    Get backend instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.
    """
    return BackendFactory.create(BackendType(settings.backend))


@lru_cache()
def get_cache() -> CacheStrategy:
    """Get cache instance (singleton)."""
    return CacheFactory.create()


@lru_cache()
def get_change_feed() -> ChangeFeedStrategy:
    """Get change feed instance (singleton)."""
    return ChangeFeedFactory.create(FeedBackend(settings.feed_backend))


def get_url_service(
    backend: BackendStrategy = Depends(get_backend),
    cache: CacheStrategy = Depends(get_cache),
    feed: ChangeFeedStrategy = Depends(get_change_feed),
):
    """
    Get URLService with all dependencies injected.

    Controllers depend on the service, the service depends on
    infrastructure (backend, cache, feed).
    """
    from linksnap_app.services.url_service import URLService
    return URLService(backend=backend, cache=cache, feed=feed)


def session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Access token from the Authorization header, else from the session cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name)


async def get_optional_session(
    token: Optional[str] = Depends(session_token),
    backend: BackendStrategy = Depends(get_backend),
) -> Optional[AuthSession]:
    """
    Resolve the caller's session, or None.

    An unreachable auth service is treated like a missing session.
    """
    if not token:
        return None
    try:
        user = await backend.get_user(token)
    except BackendError as e:
        logger.warning("Session lookup failed: %r", e)
        return None
    if user is None:
        return None
    return AuthSession(access_token=token, user=user)


async def get_current_session(
    session: Optional[AuthSession] = Depends(get_optional_session),
) -> AuthSession:
    """Require a valid session (401 otherwise)."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
