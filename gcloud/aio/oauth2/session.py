import threading
from typing import Mapping
from typing import Optional
from typing import Union

import aiohttp
import requests


Timeout = Union[aiohttp.ClientTimeout, float]


async def _raise_for_status(resp: aiohttp.ClientResponse) -> None:
    """Raise for error statuses, keeping the response body in the message."""
    # aiohttp's raise_for_status() releases the payload before we can read
    # it, and the token endpoints put the useful part of the error there.
    if resp.status >= 400:
        assert resp.reason is not None
        body = await resp.text(errors='replace')
        resp.release()
        raise aiohttp.ClientResponseError(
            resp.request_info, resp.history,
            status=resp.status,
            message=f'{resp.reason}: {body}',
            headers=resp.headers,
        )


class AioSession:
    def __init__(
        self, session: Optional[aiohttp.ClientSession] = None,
        timeout: Timeout = 10, verify_ssl: bool = True,
    ) -> None:
        self._shared_session = bool(session)
        self._session = session
        self._ssl = verify_ssl
        self._timeout = timeout

    @property
    def session(self) -> aiohttp.ClientSession:
        # N.B. must first be accessed from within a running event loop
        if not self._session:
            connector = aiohttp.TCPConnector(ssl=self._ssl)

            if isinstance(self._timeout, aiohttp.ClientTimeout):
                timeout = self._timeout
            else:
                timeout = aiohttp.ClientTimeout(total=self._timeout)

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
            )
        return self._session

    async def post(
        self, url: str,
        headers: Mapping[str, str],
        data: Optional[Union[bytes, str]] = None,
        timeout: Timeout = 10,
    ) -> aiohttp.ClientResponse:
        if not isinstance(timeout, aiohttp.ClientTimeout):
            timeout = aiohttp.ClientTimeout(total=timeout)
        resp = await self.session.post(
            url, data=data, headers=headers, timeout=timeout,
        )
        await _raise_for_status(resp)
        return resp

    async def close(self) -> None:
        if not self._shared_session and self._session:
            await self._session.close()


class SyncSession:
    _lock = threading.RLock()

    def __init__(
        self, session: Optional[requests.Session] = None,
        timeout: float = 10, verify_ssl: bool = True,
    ) -> None:
        self._shared_session = bool(session)
        self._session = session
        self._ssl = verify_ssl
        self._timeout = timeout

    @property
    def lock(self) -> threading.RLock:
        return SyncSession._lock

    @property
    def session(self) -> requests.Session:
        if not self._session:
            self._session = requests.Session()
            self._session.verify = self._ssl
        return self._session

    def get(
        self, url: str, headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        with self.lock:
            resp = self.session.get(
                url, headers=headers, timeout=timeout or self._timeout,
            )
        resp.raise_for_status()
        return resp

    def close(self) -> None:
        if not self._shared_session and self._session:
            self._session.close()
