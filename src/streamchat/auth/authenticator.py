"""Keeps a valid bearer credential available for outgoing chat requests.

Hidden design decisions:
- When a stored credential is considered too close to expiry
- How storage failures degrade (treated as "no credential")
- Where the fixed client identity comes from
"""

import logging

from ..client import BackendClient
from ..config import DEFAULT_USER_ID, REFRESH_MARGIN_SECONDS
from ..credentials.base import CredentialStore
from ..credentials.models import Credential
from ..errors import StorageError

logger = logging.getLogger(__name__)


class SessionAuthenticator:
    """Obtains and refreshes the process-wide Credential.

    There are no retries in here: a failing auth endpoint surfaces as
    AuthenticationError and the caller decides whether to try again.
    """

    def __init__(
        self,
        store: CredentialStore,
        client: BackendClient,
        user_id: str = DEFAULT_USER_ID,
        password: str = "",
        refresh_margin: float = REFRESH_MARGIN_SECONDS,
    ):
        self._store = store
        self._client = client
        self._user_id = user_id
        self._password = password
        self._refresh_margin = refresh_margin
        self._current: Credential | None = None

    @property
    def current(self) -> Credential | None:
        """The credential most recently loaded or issued, if any."""
        return self._current

    @property
    def refresh_margin(self) -> float:
        return self._refresh_margin

    async def ensure_valid(self, now: float) -> Credential:
        """Return a credential valid for at least the refresh margin.

        Args:
            now: Current time as epoch seconds

        Returns:
            The stored credential if still fresh, otherwise a newly issued one

        Raises:
            AuthenticationError: If a new credential is needed and the backend
                does not issue one
        """
        stored = await self._load()
        if stored is not None and stored.is_fresh(now, self._refresh_margin):
            self._current = stored
            return stored

        if stored is None:
            logger.info("No stored credential, authenticating")
        else:
            logger.info("Credential expires at %s (now %.0f), refreshing",
                        stored.expires_at, now)
        return await self.authenticate()

    async def authenticate(self) -> Credential:
        """Request a new credential unconditionally and persist it."""
        credential = await self._client.authenticate(self._user_id, self._password)
        self._current = credential
        try:
            await self._store.save(credential)
        except StorageError as e:
            # The credential is still usable for this process
            logger.warning("Could not persist credential: %s", e)
        logger.info("Authenticated, session %s", credential.session_id)
        return credential

    async def logout(self) -> None:
        """Forget the credential both in-process and in storage."""
        self._current = None
        await self._store.clear()

    async def _load(self) -> Credential | None:
        try:
            stored = await self._store.load()
        except StorageError as e:
            logger.warning("Credential storage unreadable: %s", e)
            stored = None
        # Falls back to a credential that was issued but could not be persisted
        return stored if stored is not None else self._current
