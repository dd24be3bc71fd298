"""Bearer token lifecycle for the pollution API."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from pollution_report.config import Settings, settings
from pollution_report.utils.cache import BaseCache
from pollution_report.utils.logger import setup_logger

logger = setup_logger(__name__)

AUTH_KEY = "pollu_api:auth"


class AuthError(Exception):
    """Credentials were rejected; no protected call can succeed this cycle."""


@dataclass(frozen=True)
class AuthSession:
    """Credential state as stored in the cache."""

    access_token: str
    refresh_token: Optional[str]
    access_expires_at: float

    def is_fresh(self, now: float, skew: float) -> bool:
        return bool(self.access_token) and now + skew < self.access_expires_at


class AuthTokenManager:
    """Acquire and refresh access tokens, keeping the session in the cache.

    The manager holds no token state of its own: every call reads the
    session from the cache, and every new session is written back, so
    concurrent cycles share one login.
    """

    def __init__(
        self,
        client: httpx.Client,
        cache: BaseCache,
        username: str = None,
        password: str = None,
        config: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize token manager.

        Args:
            client: HTTP client bound to the pollution API base URL
            cache: Shared store for the session
            username: Login username
            password: Login password
            config: Settings (default: process settings)
            clock: Source of epoch seconds
        """
        self.config = config or settings
        self.client = client
        self.cache = cache
        self.username = username if username is not None else self.config.pollu_api_username
        self.password = password if password is not None else self.config.pollu_api_password
        self.clock = clock

    def current_session(self) -> Optional[AuthSession]:
        """Session currently stored in the cache, if any."""
        session = self.cache.get(AUTH_KEY)
        return session if isinstance(session, AuthSession) else None

    def ensure_valid_token(self) -> str:
        """Return a token that is valid for at least the skew interval."""
        return self.ensure_session().access_token

    def ensure_session(self) -> AuthSession:
        session = self.current_session()
        if session and session.is_fresh(self.clock(), self.config.pollu_token_skew_seconds):
            return session
        return self._renew(session)

    def force_refresh(self) -> str:
        """Replace the session after the API rejected its token."""
        logger.info("Forcing token refresh")
        return self._renew(self.current_session()).access_token

    def _renew(self, session: Optional[AuthSession]) -> AuthSession:
        renewed = None
        if session and session.refresh_token:
            renewed = self.refresh(session)
        if renewed is None:
            renewed = self.login()
        self._persist(renewed)
        return renewed

    def login(self) -> AuthSession:
        """
        Log in with username and password.

        Raises:
            AuthError: If the API rejects the credentials or cannot be reached
        """
        try:
            response = self.client.post(
                "/auth/login",
                json={"username": self.username, "password": self.password},
                headers={"Content-Type": "application/json"},
            )
            body = response.json() if response.status_code == 200 else None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"POST /auth/login error: {type(e).__name__}: {e}")
            raise AuthError(f"Login failed ({type(e).__name__})") from e

        if not isinstance(body, dict) or not body.get("token"):
            logger.error(f"POST /auth/login -> {response.status_code}")
            raise AuthError(f"Login failed (status={response.status_code})")

        logger.info("Logged in to pollution API")
        return AuthSession(
            access_token=body["token"],
            refresh_token=body.get("refreshToken"),
            access_expires_at=self._expires_at(body),
        )

    def refresh(self, session: AuthSession) -> Optional[AuthSession]:
        """
        Exchange the refresh token for a new access token.

        Returns:
            New session keeping the existing refresh token, or None on any failure
        """
        try:
            response = self.client.post(
                "/auth/refresh",
                json={"refreshToken": session.refresh_token},
                headers={"Content-Type": "application/json"},
            )
            if response.status_code != 200:
                logger.warning(f"POST /auth/refresh -> {response.status_code}")
                return None
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"POST /auth/refresh error: {type(e).__name__}: {e}")
            return None

        if not isinstance(body, dict) or not body.get("accessToken"):
            logger.warning("POST /auth/refresh returned no access token")
            return None

        return AuthSession(
            access_token=body["accessToken"],
            refresh_token=session.refresh_token,
            access_expires_at=self._expires_at(body),
        )

    def _expires_at(self, body: Dict[str, Any]) -> float:
        try:
            expires_in = int(body.get("expiresIn") or self.config.pollu_default_token_ttl_seconds)
        except (TypeError, ValueError):
            expires_in = self.config.pollu_default_token_ttl_seconds
        return self.clock() + expires_in

    def _persist(self, session: AuthSession) -> None:
        self.cache.set(AUTH_KEY, session, ttl=self.config.auth_cache_ttl_seconds)
