"""
Credential Providers

Supply the bearer token for authenticated stats requests. A provider
returns None when there is no current identity.
"""

from typing import Awaitable, Callable, Protocol

from supabase import AsyncClient


class CredentialProvider(Protocol):
    async def get_token(self) -> str | None:
        ...


class StaticTokenProvider:
    """Fixed token, e.g. a service credential from settings"""

    def __init__(self, token: str | None):
        self._token = token or None

    async def get_token(self) -> str | None:
        return self._token


class SupabaseSessionTokenProvider:
    """
    Access token of the signed-in Supabase Auth session.

    Args:
        client: Supabase client, or a coroutine function returning one when
            the client is created lazily (e.g. SupabaseDocumentSource.get_client)
    """

    def __init__(self, client: AsyncClient | Callable[[], Awaitable[AsyncClient]]):
        self._client = client

    async def get_token(self) -> str | None:
        client = self._client
        if callable(client):
            client = await client()
        # get_session refreshes an expired access token when it can
        session = await client.auth.get_session()
        if session is None:
            return None
        return session.access_token or None
