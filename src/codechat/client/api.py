"""HTTP client for the relay server."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import quote

import httpx

from ..core import Session
from ..errors import CodeChatError, NotFoundError, PermissionDeniedError, ValidationError

_STATUS_ERRORS = {
    400: ValidationError,
    403: PermissionDeniedError,
    404: NotFoundError,
}


class RelayClient:
    """Thin async wrapper over the relay's HTTP surface."""

    def __init__(self, base_url: str, http: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def list_sessions(self) -> list[Session]:
        resp = await self._http.get("/sessions")
        _raise_for_status(resp)
        return [Session.from_dict(s) for s in resp.json().get("sessions", [])]

    async def create_session(self, cwd: str) -> Session:
        resp = await self._http.post("/sessions", json={"cwd": cwd})
        _raise_for_status(resp)
        return Session.from_dict(resp.json())

    async def delete_session(self, session_id: str) -> None:
        resp = await self._http.delete(f"/sessions/{quote(session_id, safe='')}")
        _raise_for_status(resp)

    @asynccontextmanager
    async def open_turn(self, message: str, session_id: str | None = None) -> AsyncIterator[AsyncIterator[bytes]]:
        """Start a turn and yield the raw event stream's byte chunks.

        Leaving the context closes the response, which is how an aborted
        turn stops reading.
        """
        payload = {"message": message, "sessionId": session_id}
        async with self._http.stream("POST", "/chat", json=payload, timeout=None) as resp:
            if resp.status_code >= 400:
                await resp.aread()
                _raise_for_status(resp)
            yield resp.aiter_bytes()


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.status_code < 400:
        return
    try:
        message = resp.json().get("error") or resp.text
    except ValueError:
        message = resp.text
    error_cls = _STATUS_ERRORS.get(resp.status_code, CodeChatError)
    raise error_cls(message or f"HTTP {resp.status_code}")
