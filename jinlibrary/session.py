"""Process-wide authentication state.

``SessionController`` owns the one ``Session`` of the running process: the
bearer token, the identity returned by login, and the full user profile once
it has been fetched. Only ``login``, ``logout``, ``bootstrap`` and profile
loading change it, and every change swaps in a whole new ``Session`` value so
readers never see a token from one login paired with a user from another.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from jinlibrary.errors import ApiError
from jinlibrary.models import LoginRequest, LoginResponse, RegistrationRequest, RegistrationResponse, UserProfile
from jinlibrary.services.credential_store import CredentialStore
from jinlibrary.services.library_api import LibraryAPI

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    token: Optional[str] = None
    user: Optional[UserProfile] = None
    user_id: Optional[int] = None
    role: Optional[str] = None

    @property
    def is_logged_in(self) -> bool:
        return self.user is not None

    def __repr__(self) -> str:
        token = "set" if self.token else None
        return f"Session(token={token}, user={self.user!r}, user_id={self.user_id}, role={self.role})"


class SessionController:
    def __init__(self, api: LibraryAPI, credentials: CredentialStore) -> None:
        self._api = api
        self._credentials = credentials
        self._session = Session()
        # login and logout never interleave
        self._lock = asyncio.Lock()
        self._profile_task: Optional[asyncio.Task] = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user(self) -> Optional[UserProfile]:
        return self._session.user

    @property
    def is_logged_in(self) -> bool:
        return self._session.is_logged_in

    def bootstrap(self) -> Session:
        """Adopt a persisted credential, if any. The user stays unknown until a profile loads."""
        token = self._credentials.get()
        self._session = Session(token=token) if token else Session()
        if token:
            logger.info("Restored a persisted credential; profile not loaded yet")
        return self._session

    async def login(self, account: str, password: str) -> LoginResponse:
        """Exchange credentials for a token and start loading the profile in the background.

        Raises the gateway's ``ApiError`` when the exchange fails; the session is
        left untouched in that case.
        """
        async with self._lock:
            response = await self._api.login(LoginRequest(account=account, password=password))
            self._cancel_profile_fetch()
            self._credentials.save(response.jwt)
            self._session = Session(token=response.jwt, user_id=response.user_id, role=response.role)
            logger.info(f"Logged in as user {response.user_id} (role: {response.role})")
            self._profile_task = asyncio.create_task(self._load_profile_in_background(self._session))
        return response

    async def logout(self) -> None:
        async with self._lock:
            self._cancel_profile_fetch()
            self._credentials.delete()
            self._session = Session()
        logger.info("Logged out")

    async def register(self, request: RegistrationRequest) -> RegistrationResponse:
        return await self._api.register(request)

    async def refresh_profile(self) -> Optional[UserProfile]:
        """Fetch the profile for the logged-in identity and replace the current one.

        Returns None when no identity is known (not logged in, or only a
        restored token). Gateway failures propagate.
        """
        session = self._session
        if session.token is None or session.user_id is None:
            logger.info("No logged-in identity to load a profile for")
            return None
        return await self._fetch_profile(session)

    async def wait_for_profile(self) -> Optional[UserProfile]:
        """Wait for the profile fetch started by ``login`` and return the current user."""
        task = self._profile_task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self._session.user

    async def _fetch_profile(self, expected: Session) -> Optional[UserProfile]:
        profile = await self._api.fetch_user_profile(expected.user_id)
        current = self._session
        if current.token != expected.token or current.user_id != expected.user_id:
            logger.info("Discarding a profile for a session that is no longer active")
            return None
        self._session = replace(current, user=profile)
        return profile

    async def _load_profile_in_background(self, expected: Session) -> None:
        try:
            await self._fetch_profile(expected)
        except ApiError as e:
            # The token stays valid; refresh_profile() can retry later.
            logger.warning(f"Could not load the user profile after login: {e!r}")

    def _cancel_profile_fetch(self) -> None:
        task = self._profile_task
        self._profile_task = None
        if task is not None and not task.done():
            task.cancel()
