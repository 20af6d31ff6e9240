"""
Backend strategies using Strategy Pattern.

The backend owns persistence, authentication and the two remote functions
(generate_short_code, increment_url_clicks). The service layer only talks to
this interface:

- SQLAlchemyBackend: local database, same tables/constraints/functions.
  Development and testing.
- SupabaseBackend: hosted backend reached over its REST API
  (PostgREST for data and RPC, GoTrue for auth).
"""

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests
from passlib.context import CryptContext
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from linksnap_app.exceptions import (
    BackendError,
    INTEGRITY_VIOLATION,
    NO_SINGLE_ROW,
    UNIQUE_VIOLATION,
    UNKNOWN_FUNCTION,
)
from linksnap_app.models.auth import User, UserSession
from linksnap_app.models.url import ShortURL as ShortURLRow
from linksnap_app.schemas.auth import AuthUser, TokenResponse
from linksnap_app.schemas.url import NewShortURL, ShortURL
from linksnap_app.services.short_code import RandomShortCodeGenerator

logger = logging.getLogger(__name__)


class BackendStrategy(ABC):
    """
    Abstract base class for the hosted data/auth service.

    ``access_token`` is the caller's session token. A hosted backend uses it
    to apply row level security; it is optional where anonymous access is
    allowed (redirect lookups and the click counter).
    """

    # ---- auth -------------------------------------------------------------

    @abstractmethod
    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        """Return the user owning a session token, or None if it is not valid"""
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> TokenResponse:
        """Register a user. Raises BackendError if the email is taken."""
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> TokenResponse:
        """Exchange email/password for a session. Raises BackendError on bad credentials."""
        pass

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke a session token"""
        pass

    # ---- urls table -------------------------------------------------------

    @abstractmethod
    async def list_urls(self, user_id: str, access_token: Optional[str] = None) -> List[ShortURL]:
        """All rows owned by a user, newest first"""
        pass

    @abstractmethod
    async def find_url_by_user(self, user_id: str, access_token: Optional[str] = None) -> Optional[ShortURL]:
        """Any row owned by a user, or None"""
        pass

    @abstractmethod
    async def find_url_by_short_code(
        self, short_code: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        pass

    @abstractmethod
    async def get_url(
        self, url_id: str, user_id: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        """A row by id, only if it belongs to ``user_id``"""
        pass

    @abstractmethod
    async def insert_url(self, row: NewShortURL, access_token: Optional[str] = None) -> ShortURL:
        """
        Insert a row.

        Raises:
            BackendError: code 23505 when the short code or the user already has a row
        """
        pass

    @abstractmethod
    async def delete_url(
        self, url_id: str, user_id: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        """Delete a row owned by ``user_id``. Returns the deleted row, or None."""
        pass

    # ---- remote functions -------------------------------------------------

    @abstractmethod
    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None,
                  access_token: Optional[str] = None) -> Any:
        """
        Call a remote database function.

        Raises:
            BackendError: code PGRST202 if the function doesn't exist
        """
        pass

    async def generate_short_code(self, access_token: Optional[str] = None) -> str:
        """Remote generate_short_code() -> string"""
        return str(await self.rpc("generate_short_code", {}, access_token))

    async def increment_url_clicks(self, short_code: str, access_token: Optional[str] = None) -> None:
        """Remote increment_url_clicks(url_short_code) -> void"""
        await self.rpc("increment_url_clicks", {"url_short_code": short_code}, access_token)


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class SQLAlchemyBackend(BackendStrategy):
    """
    Local implementation of the backend contract on top of SQLAlchemy.

    Pros:
    - Zero configuration (SQLite by default)
    - Same constraints as the hosted schema, so the service layer sees the
      same error codes (23505 on unique violations)
    - Tests run without network access

    Cons:
    - Auth is a plain users/sessions table (no email confirmation, no OAuth)
    - No row level security: ownership is enforced by filtering on user_id

    Note: Async for interface consistency, DB queries are sync (fast).
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        short_code_generator: Optional[RandomShortCodeGenerator] = None,
    ):
        """
        Args:
            session_factory: Callable returning a new SQLAlchemy session
            short_code_generator: Generator behind generate_short_code()
        """
        self.session_factory = session_factory
        self.short_code_generator = short_code_generator or RandomShortCodeGenerator()
        self._functions = {
            "generate_short_code": self._generate_short_code,
            "increment_url_clicks": self._increment_url_clicks,
        }

    @contextmanager
    def _db(self) -> Iterator[Session]:
        """Session whose database errors surface as BackendError"""
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Database error: %s", e)
            raise BackendError(str(e))
        except BackendError:
            db.rollback()
            raise
        finally:
            db.close()

    # ---- auth -------------------------------------------------------------

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        with self._db() as db:
            user = (
                db.query(User)
                .join(UserSession, UserSession.user_id == User.id)
                .filter(UserSession.access_token == access_token)
                .first()
            )
            if user is None:
                return None
            return AuthUser(id=user.id, email=user.email)

    async def sign_up(self, email: str, password: str) -> TokenResponse:
        email = email.strip().lower()
        with self._db() as db:
            user = User(email=email, hashed_password=pwd_context.hash(password))
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise BackendError("User already registered", code=UNIQUE_VIOLATION, status_code=422)
            db.refresh(user)
            logger.info("Registered user %s", user.id)
            return self._open_session(db, user)

    async def sign_in(self, email: str, password: str) -> TokenResponse:
        email = email.strip().lower()
        with self._db() as db:
            user = db.query(User).filter(User.email == email).first()
            if user is None or not pwd_context.verify(password, user.hashed_password):
                raise BackendError("Invalid login credentials", code="invalid_credentials", status_code=400)
            return self._open_session(db, user)

    async def sign_out(self, access_token: str) -> None:
        with self._db() as db:
            db.query(UserSession).filter(UserSession.access_token == access_token).delete()
            db.commit()

    def _open_session(self, db: Session, user: User) -> TokenResponse:
        token = secrets.token_urlsafe(32)
        db.add(UserSession(access_token=token, user_id=user.id))
        db.commit()
        return TokenResponse(access_token=token, user=AuthUser(id=user.id, email=user.email))

    # ---- urls table -------------------------------------------------------

    async def list_urls(self, user_id: str, access_token: Optional[str] = None) -> List[ShortURL]:
        with self._db() as db:
            rows = (
                db.query(ShortURLRow)
                .filter(ShortURLRow.user_id == user_id)
                .order_by(ShortURLRow.created_at.desc())
                .all()
            )
            return [ShortURL.model_validate(row) for row in rows]

    async def find_url_by_user(self, user_id: str, access_token: Optional[str] = None) -> Optional[ShortURL]:
        with self._db() as db:
            row = db.query(ShortURLRow).filter(ShortURLRow.user_id == user_id).first()
            return ShortURL.model_validate(row) if row else None

    async def find_url_by_short_code(
        self, short_code: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        with self._db() as db:
            row = db.query(ShortURLRow).filter(ShortURLRow.short_code == short_code).first()
            return ShortURL.model_validate(row) if row else None

    async def get_url(
        self, url_id: str, user_id: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        with self._db() as db:
            row = (
                db.query(ShortURLRow)
                .filter(ShortURLRow.id == url_id, ShortURLRow.user_id == user_id)
                .first()
            )
            return ShortURL.model_validate(row) if row else None

    async def insert_url(self, row: NewShortURL, access_token: Optional[str] = None) -> ShortURL:
        with self._db() as db:
            db_row = ShortURLRow(**row.model_dump())
            db.add(db_row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                message = str(e.orig)
                lowered = message.lower()
                if "unique" in lowered or "duplicate" in lowered:
                    raise BackendError(message, code=UNIQUE_VIOLATION, status_code=409)
                raise BackendError(message, code=INTEGRITY_VIOLATION, status_code=400)
            db.refresh(db_row)
            return ShortURL.model_validate(db_row)

    async def delete_url(
        self, url_id: str, user_id: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        with self._db() as db:
            db_row = (
                db.query(ShortURLRow)
                .filter(ShortURLRow.id == url_id, ShortURLRow.user_id == user_id)
                .first()
            )
            if db_row is None:
                return None
            deleted = ShortURL.model_validate(db_row)
            db.delete(db_row)
            db.commit()
            return deleted

    # ---- remote functions -------------------------------------------------

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None,
                  access_token: Optional[str] = None) -> Any:
        handler = self._functions.get(function)
        if handler is None:
            raise BackendError(
                f"Could not find the function public.{function}",
                code=UNKNOWN_FUNCTION,
                status_code=404,
            )
        with self._db() as db:
            return handler(db, **(params or {}))

    def _generate_short_code(self, db: Session) -> str:
        return self.short_code_generator.generate(db)

    def _increment_url_clicks(self, db: Session, url_short_code: str) -> None:
        # Single UPDATE statement: concurrent clicks never lose an increment
        db.execute(
            update(ShortURLRow)
            .where(ShortURLRow.short_code == url_short_code)
            .values(clicks=ShortURLRow.clicks + 1)
        )
        db.commit()


class SupabaseBackend(BackendStrategy):
    """
    Hosted backend reached over HTTP.

    Data and remote functions go through PostgREST (``/rest/v1``), auth through
    GoTrue (``/auth/v1``). Every request carries the project's anon key; calls
    made on behalf of a user also carry the user's token so the backend's row
    level security applies.

    Blocking HTTP calls run in a worker thread to keep the event loop free.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        http: Optional[requests.Session] = None,
    ):
        """
        Args:
            url: Project URL, e.g. https://xyzcompany.supabase.co
            anon_key: Public (anon) API key
            timeout: Seconds per request
            http: requests session to send requests with
        """
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.http = http or requests.Session()

    # ---- HTTP plumbing ----------------------------------------------------

    def _headers(self, access_token: Optional[str], prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> requests.Response:
        try:
            response = await asyncio.to_thread(
                self.http.request,
                method,
                f"{self.url}{path}",
                headers=self._headers(access_token, prefer),
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BackendError(f"Request to backend failed: {e}")

        if not response.ok:
            raise self._error_from(response)
        return response

    @staticmethod
    def _error_from(response: requests.Response) -> BackendError:
        """Build a BackendError from a PostgREST or GoTrue error body"""
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        code = payload.get("code") or payload.get("error_code") or payload.get("error")
        message = (
            payload.get("message")
            or payload.get("msg")
            or payload.get("error_description")
            or response.text
            or f"HTTP {response.status_code}"
        )
        return BackendError(message, code=str(code) if code is not None else None,
                            status_code=response.status_code)

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise BackendError(
                f"Backend returned a non-JSON body (HTTP {response.status_code})",
                status_code=response.status_code,
            )

    async def _select(self, params: Dict[str, str], access_token: Optional[str]) -> List[ShortURL]:
        response = await self._request("GET", "/rest/v1/urls", access_token, params={"select": "*", **params})
        return [ShortURL.model_validate(row) for row in self._json(response) or []]

    async def _select_one(self, params: Dict[str, str], access_token: Optional[str]) -> Optional[ShortURL]:
        rows = await self._select({**params, "limit": "1"}, access_token)
        return rows[0] if rows else None

    @staticmethod
    def _token_response(payload: Dict[str, Any]) -> TokenResponse:
        # signup answers with a bare user object when email confirmation is on
        user = payload.get("user") or payload
        return TokenResponse(
            access_token=payload.get("access_token"),
            token_type=payload.get("token_type") or "bearer",
            user=AuthUser(id=user["id"], email=user.get("email")),
        )

    # ---- auth -------------------------------------------------------------

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        try:
            response = await self._request("GET", "/auth/v1/user", access_token)
        except BackendError as e:
            if e.status_code in (401, 403):
                return None
            raise
        payload = self._json(response) or {}
        return AuthUser(id=payload["id"], email=payload.get("email"))

    async def sign_up(self, email: str, password: str) -> TokenResponse:
        response = await self._request(
            "POST", "/auth/v1/signup", json={"email": email, "password": password}
        )
        return self._token_response(self._json(response))

    async def sign_in(self, email: str, password: str) -> TokenResponse:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._token_response(self._json(response))

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token)

    # ---- urls table -------------------------------------------------------

    async def list_urls(self, user_id: str, access_token: Optional[str] = None) -> List[ShortURL]:
        return await self._select(
            {"user_id": f"eq.{user_id}", "order": "created_at.desc"}, access_token
        )

    async def find_url_by_user(self, user_id: str, access_token: Optional[str] = None) -> Optional[ShortURL]:
        return await self._select_one({"user_id": f"eq.{user_id}"}, access_token)

    async def find_url_by_short_code(
        self, short_code: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        return await self._select_one({"short_code": f"eq.{short_code}"}, access_token)

    async def get_url(
        self, url_id: str, user_id: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        return await self._select_one({"id": f"eq.{url_id}", "user_id": f"eq.{user_id}"}, access_token)

    async def insert_url(self, row: NewShortURL, access_token: Optional[str] = None) -> ShortURL:
        response = await self._request(
            "POST",
            "/rest/v1/urls",
            access_token,
            json=row.model_dump(),
            prefer="return=representation",
        )
        rows = self._json(response) or []
        if not rows:
            raise BackendError("Insert returned no row", code=NO_SINGLE_ROW)
        return ShortURL.model_validate(rows[0])

    async def delete_url(
        self, url_id: str, user_id: str, access_token: Optional[str] = None
    ) -> Optional[ShortURL]:
        response = await self._request(
            "DELETE",
            "/rest/v1/urls",
            access_token,
            params={"id": f"eq.{url_id}", "user_id": f"eq.{user_id}"},
            prefer="return=representation",
        )
        rows = self._json(response) or []
        return ShortURL.model_validate(rows[0]) if rows else None

    # ---- remote functions -------------------------------------------------

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None,
                  access_token: Optional[str] = None) -> Any:
        response = await self._request(
            "POST", f"/rest/v1/rpc/{function}", access_token, json=params or {}
        )
        return self._json(response)
