"""
Google Cloud OAuth 2.0 access tokens via GCE metadata or service account file
"""
import asyncio
import datetime
import logging
import os
import threading
import time
from abc import ABCMeta
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any
from typing import AnyStr
from typing import Callable
from typing import Dict
from typing import IO
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union
from urllib.parse import urlencode

import aiohttp
import backoff
import requests

from .claims import build_claims
from .claims import sign_assertion
from .credentials import load_private_key
from .credentials import parse_credentials
from .errors import NetworkError
from .errors import ResponseParseError
from .session import AioSession
from .session import SyncSession


log = logging.getLogger(__name__)

GCE_METADATA_HEADERS = {'Metadata-Flavor': 'Google'}
GCE_TOKEN_PATH = '/computeMetadata/v1/instance/service-accounts/default/token'
JWT_BEARER_GRANT = 'urn:ietf:params:oauth:grant-type:jwt-bearer'
REFRESH_HEADERS = {'Content-Type': 'application/x-www-form-urlencoded'}


def get_metadata_host() -> str:
    # GCE_METADATA_HOST was originally named GCE_METADATA_ROOT; the new name
    # wins when both are set.
    return (
        os.environ.get('GCE_METADATA_HOST')
        or os.environ.get('GCE_METADATA_ROOT')
        or 'metadata'
    )


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class Token:
    access_token: str
    expiry: Optional[datetime.datetime] = None
    token_type: Optional[str] = None

    def expired(self, now: Optional[datetime.datetime] = None) -> bool:
        if self.expiry is None:
            return False
        return (now or _utcnow()) >= self.expiry

    def headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bearer {self.access_token}'}


@dataclass(frozen=True)
class ServiceAccountToken:
    """The token endpoint's response to a JWT-bearer grant."""
    access_token: str
    expires_in: int  # Token TTL in seconds
    token_type: str

    @classmethod
    def from_response(cls, content: Any) -> 'ServiceAccountToken':
        if not isinstance(content, dict):
            raise ResponseParseError(
                f'token response must be a JSON object, got '
                f'{type(content).__name__}')

        access_token = content.get('access_token')
        expires_in = content.get('expires_in')
        token_type = content.get('token_type')
        if not isinstance(access_token, str) or not access_token:
            raise ResponseParseError('token response has no access_token')
        # bool is an int subclass, and never a valid TTL
        if isinstance(expires_in, bool) or not isinstance(expires_in, int):
            raise ResponseParseError(
                f'token response has invalid expires_in: {expires_in!r}')
        if not isinstance(token_type, str) or not token_type:
            raise ResponseParseError('token response has no token_type')

        return cls(access_token=access_token, expires_in=expires_in,
                   token_type=token_type)


def parse_metadata_response(
        content: Any,
) -> Tuple[str, Optional[int], Optional[str]]:
    """
    Pull the token out of a metadata server response.

    Only ``access_token`` is required; ``expires_in`` and ``token_type`` are
    used when the server sends them.
    """
    if not isinstance(content, dict):
        raise ResponseParseError(
            f'metadata response must be a JSON object, got '
            f'{type(content).__name__}')

    access_token = content.get('access_token')
    if not isinstance(access_token, str) or not access_token:
        raise ResponseParseError('metadata response has no access_token')

    expires_in = content.get('expires_in')
    if expires_in is not None and (isinstance(expires_in, bool)
                                   or not isinstance(expires_in, int)):
        raise ResponseParseError(
            f'metadata response has invalid expires_in: {expires_in!r}')

    token_type = content.get('token_type')
    if token_type is not None and not isinstance(token_type, str):
        raise ResponseParseError(
            f'metadata response has invalid token_type: {token_type!r}')

    return access_token, expires_in, token_type


class TokenProvider(metaclass=ABCMeta):
    """
    Holds the latest access token from some credential source.

    ``refresh()`` always goes to the network. ``get()`` on the concrete
    sources only does so once the held token has used up
    ``force_refresh_after`` of its lifetime.
    """
    # Assumed lifetime of tokens whose response carries no expires_in
    default_token_ttl = 3600

    def __init__(self, max_tries: int = 1,
                 force_refresh_after: float = 0.95) -> None:
        if max_tries < 1:
            raise ValueError('max_tries must be at least 1')
        if force_refresh_after <= 0 or force_refresh_after > 1:
            raise ValueError(
                'force_refresh_after must be a value between 0 and 1')
        self.max_tries = max_tries
        # Portion of TTL after which a cached token is considered invalid
        self.force_refresh_after = force_refresh_after

        self.token: Optional[Token] = None
        self.access_token_acquired_at = datetime.datetime(
            1970, 1, 1, tzinfo=datetime.timezone.utc)
        # Timestamp after which we must re-fetch.
        self.access_token_refresh_after = 0

    @abstractmethod
    def refresh(self) -> Any:
        pass

    def needs_refresh(self, now: Optional[float] = None) -> bool:
        if not self.token:
            return True
        now_ts = time.time() if now is None else now
        return now_ts > self.access_token_refresh_after

    def _retrying(self, func: Callable[..., Any]) -> Callable[..., Any]:
        # a body we could not parse will not parse any better next time
        return backoff.on_exception(
            backoff.expo, NetworkError, max_tries=self.max_tries,
            giveup=lambda e: isinstance(e, ResponseParseError), logger=log,
        )(func)

    def _store(self, access_token: str, expires_in: Optional[int],
               token_type: Optional[str]) -> Token:
        now = _utcnow()
        expiry = None
        if expires_in is not None:
            expiry = now + datetime.timedelta(seconds=expires_in)

        self.token = Token(access_token=access_token, expiry=expiry,
                           token_type=token_type)
        self.access_token_acquired_at = now
        ttl = expires_in if expires_in is not None else self.default_token_ttl
        self.access_token_refresh_after = int(
            now.timestamp() + ttl * self.force_refresh_after)

        log.debug('acquired %s token expiring at %s',
                  type(self).__name__, expiry or 'an unknown time')
        return self.token

    def _warn_if_stale(self, error: Exception) -> None:
        if self.token:
            log.warning('%s refresh failed, keeping previous token: %s',
                        type(self).__name__, error)


class MetadataTokenSource(TokenProvider):
    """
    Token for the service account attached to the current GCE instance.

    Every call here blocks the calling thread until the metadata server
    answers or ``timeout`` seconds pass. Refreshes are serialized, so callers
    racing on ``get()`` trigger a single request.
    """

    def __init__(
        self, session: Optional[requests.Session] = None,
        timeout: float = 10, max_tries: int = 1,
        metadata_host: Optional[str] = None,
        force_refresh_after: float = 0.95,
    ) -> None:
        super().__init__(max_tries=max_tries,
                         force_refresh_after=force_refresh_after)
        host = metadata_host or get_metadata_host()
        self.token_uri = f'http://{host}{GCE_TOKEN_PATH}'
        self.timeout = timeout
        self.session = SyncSession(session, timeout=timeout)
        self._lock = threading.Lock()

    def initialize(self) -> Token:
        return self.refresh()

    def refresh(self) -> Token:
        with self._lock:
            return self._refresh()

    def get(self) -> str:
        with self._lock:
            if self.needs_refresh():
                return self._refresh().access_token
            assert self.token is not None
            return self.token.access_token

    def headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bearer {self.get()}'}

    def _request(self) -> Any:
        try:
            resp = self.session.get(self.token_uri,
                                    headers=GCE_METADATA_HEADERS,
                                    timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(
                f'metadata token request to {self.token_uri} failed: {e}',
            ) from e

        try:
            return resp.json()
        except ValueError as e:
            raise ResponseParseError(
                f'metadata token response is not JSON: {e}') from e

    def _refresh(self) -> Token:
        try:
            content = self._retrying(self._request)()
            access_token, expires_in, token_type = parse_metadata_response(
                content)
        except NetworkError as e:
            self._warn_if_stale(e)
            raise

        return self._store(access_token, expires_in, token_type)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> 'MetadataTokenSource':
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


TokenCallback = Callable[
    [Optional[ServiceAccountToken], Optional[BaseException]], None]


class ServiceAccountTokenSource(TokenProvider):
    """
    Token minted from a service account key file via the JWT-bearer grant.

    The key file is parsed and its private key loaded up front: a bad file
    or key fails construction. Fetches run on the current event loop; those
    issued while another is in flight share its result.
    """

    def __init__(
        self, service_file: Optional[Union[str, IO[AnyStr]]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        scopes: Optional[List[str]] = None,
        timeout: float = 10, max_tries: int = 1,
        force_refresh_after: float = 0.95,
    ) -> None:
        super().__init__(max_tries=max_tries,
                         force_refresh_after=force_refresh_after)
        self.credentials = parse_credentials(service_file)
        self.signing_key = load_private_key(self.credentials.private_key)

        self.scopes = scopes
        self.timeout = timeout
        self.session = AioSession(session, timeout=timeout)

        self.acquiring: Optional['asyncio.Task[ServiceAccountToken]'] = None

    @property
    def project(self) -> str:
        return self.credentials.project_id

    def refresh(self) -> 'asyncio.Task[ServiceAccountToken]':
        if not self.acquiring or self.acquiring.done():
            self.acquiring = asyncio.create_task(self._acquire())
        return self.acquiring

    def fetch_token(self, callback: TokenCallback) -> 'asyncio.Task[None]':
        """
        Start a token fetch and return without waiting for it.

        ``callback`` is called exactly once from the event loop, either as
        ``callback(token, None)`` or ``callback(None, error)``. The returned
        task finishes after the callback has run.
        """
        async def deliver() -> None:
            try:
                token = await asyncio.shield(self.refresh())
            except asyncio.CancelledError as e:
                callback(None, e)
                raise
            except Exception as e:  # pylint: disable=broad-except
                callback(None, e)
                return
            callback(token, None)

        return asyncio.create_task(deliver())

    async def get(self) -> str:
        if self.needs_refresh():
            await asyncio.shield(self.refresh())
        assert self.token is not None
        return self.token.access_token

    async def headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bearer {await self.get()}'}

    async def _exchange(self, payload: str) -> Any:
        try:
            resp = await self.session.post(
                self.credentials.token_uri, data=payload,
                headers=REFRESH_HEADERS, timeout=self.timeout,
            )
            return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(
                f'token request to {self.credentials.token_uri} failed: '
                f'{e!r}') from e
        except ValueError as e:
            raise ResponseParseError(f'token response is not JSON: {e}') \
                from e

    async def _acquire(self) -> ServiceAccountToken:
        header, claims = build_claims(self.credentials, time.time(),
                                      self.scopes)
        assertion = sign_assertion(header, claims, self.signing_key)
        payload = urlencode({
            'grant_type': JWT_BEARER_GRANT,
            'assertion': assertion,
        })

        try:
            content = await self._retrying(self._exchange)(payload)
            resp = ServiceAccountToken.from_response(content)
        except NetworkError as e:
            self._warn_if_stale(e)
            raise

        self._store(resp.access_token, resp.expires_in, resp.token_type)
        return resp

    async def close(self) -> None:
        await self.session.close()

    async def __aenter__(self) -> 'ServiceAccountTokenSource':
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
