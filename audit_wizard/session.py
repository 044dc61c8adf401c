"""Session context — identity and HTTP client shared by every backend collaborator.

Constructed explicitly, entered as an async context manager, and passed by
reference to the draft store and the wizard session. Leaving the context
signs out (when signed in) and closes the underlying httpx client.
"""

import logging

import httpx

from audit_wizard.config import get_config, get_supabase_settings

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Raised when sign-in fails or an authenticated call is made without a user."""


class SessionContext:
    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout if timeout is not None else get_config().get("supabase_timeout_s", 30)
        self._transport = transport
        self.client: httpx.AsyncClient | None = None
        self.user_id: str | None = None
        self.access_token: str | None = None

    @classmethod
    def from_env(cls, **kwargs) -> "SessionContext":
        url, key = get_supabase_settings()
        return cls(url, key, **kwargs)

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None and self.access_token is not None

    def headers(self) -> dict[str, str]:
        """Headers for backend calls: the anon key plus the user's bearer token when signed in."""
        token = self.access_token or self.anon_key
        return {"apikey": self.anon_key, "Authorization": f"Bearer {token}"}

    def require_user(self) -> str:
        if not self.authenticated:
            raise AuthError("No signed-in user in this session.")
        return self.user_id

    async def open(self) -> "SessionContext":
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=self.url, timeout=self.timeout, transport=self._transport
            )
        return self

    async def sign_in(self, email: str, password: str) -> str:
        """Password sign-in. Returns the user id and stores the access token."""
        await self.open()
        try:
            response = await self.client.post(
                "/auth/v1/token",
                params={"grant_type": "password"},
                headers={"apikey": self.anon_key},
                json={"email": email, "password": password},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AuthError(f"Sign-in failed: {e}") from e

        data = response.json()
        self.access_token = data["access_token"]
        self.user_id = data["user"]["id"]
        logger.info("Signed in as user %s", self.user_id)
        return self.user_id

    async def sign_out(self) -> None:
        if not self.authenticated or self.client is None:
            return
        try:
            response = await self.client.post("/auth/v1/logout", headers=self.headers())
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Sign-out failed: %s", e)
        finally:
            self.user_id = None
            self.access_token = None

    async def close(self) -> None:
        await self.sign_out()
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def __aenter__(self) -> "SessionContext":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
