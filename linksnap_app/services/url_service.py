import logging
from typing import AsyncIterator, List, Optional

from linksnap_app.backend.strategies import BackendStrategy
from linksnap_app.cache.strategies import CacheStrategy, redirect_key
from linksnap_app.config import settings
from linksnap_app.events.models import ChangeEvent, ChangeType
from linksnap_app.events.strategies import ChangeFeedStrategy
from linksnap_app.exceptions import (
    BackendError,
    ShortCodeTakenError,
    URLLimitReachedError,
    URLNotFoundError,
)
from linksnap_app.schemas.auth import AuthSession
from linksnap_app.schemas.url import (
    AnalyticsSummary,
    NewShortURL,
    RedirectTarget,
    ShortURL,
    URLCreate,
)
from linksnap_app.services import analytics
from linksnap_app.validators import validate_custom_code, validate_long_url

logger = logging.getLogger(__name__)

URL_LIMIT_MESSAGE = "You can only create one shortened URL. Please delete your existing URL first."
CODE_TAKEN_MESSAGE = "This custom code is already taken"
DUPLICATE_USER_MESSAGE = "You already have a shortened URL. Each user can only create one URL."
URL_NOT_FOUND_MESSAGE = "URL not found"


class URLService:
    """
    URL service with dependency injection for backend, cache and change feed.

    This follows the Dependency Injection pattern:
    - Backend, cache and feed strategies are injected (not created internally)
    - Easy to test (inject an in-memory feed, a local backend)
    - Flexible (swap implementations without changing code)

    Uniqueness of short codes, one URL per user and atomic click counting are
    the backend's job; the checks here only produce friendlier messages.
    """

    def __init__(
        self,
        backend: BackendStrategy,
        cache: Optional[CacheStrategy] = None,
        feed: Optional[ChangeFeedStrategy] = None,
    ):
        """
        Args:
            backend: Hosted data/auth service
            cache: Redirect lookup cache (optional)
            feed: Change notification channel (optional)
        """
        self.backend = backend
        self.cache = cache
        self.feed = feed

    async def _notify(self, event_type: ChangeType, user_id: str, short_code: str) -> None:
        if self.feed is None:
            return
        event = ChangeEvent(event_type=event_type, user_id=user_id, short_code=short_code)
        if not await self.feed.publish(settings.feed_channel, event):
            logger.warning("Change event %s for %s was not published", event_type.value, short_code)

    # ---- shortener form ---------------------------------------------------

    async def create_short_url(self, session: AuthSession, data: URLCreate) -> ShortURL:
        """
        Create the user's short URL.

        Process:
        1. Validate the URL and the custom code (no network yet)
        2. Refuse if the user already has a URL
        3. Check the custom code is free, or ask the backend for a random one
        4. Insert, mapping unique violations to user messages
        5. Publish the "url created" change event

        Raises:
            ShortenerError: With the message to show the user
            BackendError: For any other backend failure
        """
        original_url = validate_long_url(data.url)
        custom_code = ""
        if data.use_custom_code and data.custom_code and data.custom_code.strip():
            custom_code = validate_custom_code(data.custom_code)

        user_id = session.user.id
        token = session.access_token

        if await self.backend.find_url_by_user(user_id, token):
            raise URLLimitReachedError(URL_LIMIT_MESSAGE)

        if custom_code:
            if await self.backend.find_url_by_short_code(custom_code, token):
                raise ShortCodeTakenError(CODE_TAKEN_MESSAGE)
            short_code = custom_code
        else:
            short_code = await self.backend.generate_short_code(token)

        row = NewShortURL(
            user_id=user_id,
            original_url=original_url,
            short_code=short_code,
            is_custom=bool(custom_code),
        )
        try:
            url = await self.backend.insert_url(row, token)
        except BackendError as e:
            if not e.is_unique_violation:
                raise
            if "short_code" in e.message:
                raise ShortCodeTakenError(CODE_TAKEN_MESSAGE) from e
            raise URLLimitReachedError(DUPLICATE_USER_MESSAGE) from e

        logger.info("User %s created short code %s", user_id, url.short_code)
        await self._notify(ChangeType.INSERT, url.user_id, url.short_code)
        return url

    # ---- list / card ------------------------------------------------------

    async def list_urls(self, session: AuthSession) -> List[ShortURL]:
        """The user's URLs, newest first"""
        return await self.backend.list_urls(session.user.id, session.access_token)

    async def get_url(self, session: AuthSession, url_id: str) -> ShortURL:
        url = await self.backend.get_url(url_id, session.user.id, session.access_token)
        if url is None:
            raise URLNotFoundError(URL_NOT_FOUND_MESSAGE)
        return url

    async def delete_url(self, session: AuthSession, url_id: str) -> ShortURL:
        """
        Delete one of the user's URLs.

        Also invalidates the redirect cache and publishes a change event.
        """
        url = await self.backend.delete_url(url_id, session.user.id, session.access_token)
        if url is None:
            raise URLNotFoundError(URL_NOT_FOUND_MESSAGE)

        if self.cache:
            await self.cache.delete(redirect_key(url.short_code))

        logger.info("User %s deleted short code %s", session.user.id, url.short_code)
        await self._notify(ChangeType.DELETE, url.user_id, url.short_code)
        return url

    async def watch_urls(self, session: AuthSession) -> AsyncIterator[List[ShortURL]]:
        """
        Yield the user's URL list now and again after every change to it.

        Changes to other users' rows are skipped. A failed refetch is logged
        and the stream keeps waiting for the next change.

        The subscription is registered before the first fetch, so a change
        landing between the fetch and the next read is not lost.
        """
        if self.feed is None:
            yield await self.list_urls(session)
            return

        subscription = await self.feed.subscribe(settings.feed_channel)
        try:
            yield await self.list_urls(session)
            async for event in subscription:
                if event.user_id != session.user.id:
                    continue
                try:
                    urls = await self.list_urls(session)
                except BackendError as e:
                    logger.error("Failed to refresh URLs for %s: %r", session.user.id, e)
                    continue
                yield urls
        finally:
            await subscription.aclose()

    async def get_analytics(self, session: AuthSession) -> AnalyticsSummary:
        return analytics.summarize(await self.list_urls(session))

    # ---- redirect ---------------------------------------------------------

    async def resolve_short_code(self, short_code: str) -> Optional[RedirectTarget]:
        """
        Look up where a short code points, using Cache-Aside pattern.

        Flow:
        1. Check cache first
        2. If cache miss, query the backend
        3. Populate cache for next time

        Returns:
            The target, or None if no row has this code
        """
        cache_key = redirect_key(short_code)

        if self.cache:
            cached = await self.cache.get(cache_key)
            if cached:
                try:
                    return RedirectTarget.model_validate_json(cached)
                except ValueError:
                    logger.warning("Ignoring malformed cache entry for %s", short_code)

        url = await self.backend.find_url_by_short_code(short_code)
        if url is None:
            return None

        target = RedirectTarget(
            short_code=url.short_code,
            original_url=url.original_url,
            user_id=url.user_id,
        )
        if self.cache:
            await self.cache.set(cache_key, target.model_dump_json(), ttl=settings.cache_ttl)
        return target

    async def record_click(self, target: RedirectTarget) -> bool:
        """
        Call the remote click counter for a resolved short code.

        Runs after the redirect response; a failure is logged, never raised.
        """
        try:
            await self.backend.increment_url_clicks(target.short_code)
        except BackendError as e:
            logger.error("Failed to count click on %s: %r", target.short_code, e)
            return False

        await self._notify(ChangeType.UPDATE, target.user_id, target.short_code)
        return True
