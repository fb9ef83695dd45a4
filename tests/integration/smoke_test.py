import asyncio

import aiohttp
import pytest
from gcloud.aio.oauth2 import ServiceAccountTokenSource


@pytest.mark.asyncio  # type: ignore
async def test_token_is_created(creds: str) -> None:
    async with aiohttp.ClientSession() as session:
        source = ServiceAccountTokenSource(service_file=creds,
                                           session=session)
        resp = await source.refresh()

    assert resp.access_token
    assert resp.expires_in > 0
    assert resp.token_type == 'Bearer'
    assert source.token is not None
    assert source.token.access_token == resp.access_token


@pytest.mark.asyncio  # type: ignore
async def test_token_does_not_require_session(creds: str) -> None:
    async with ServiceAccountTokenSource(service_file=creds) as source:
        result = await source.get()

    assert result
    assert not source.token.expired()


@pytest.mark.asyncio  # type: ignore
async def test_fetch_token_callback(creds: str) -> None:
    done = asyncio.get_running_loop().create_future()

    def callback(token, error):
        done.set_result((token, error))

    async with ServiceAccountTokenSource(service_file=creds) as source:
        source.fetch_token(callback)
        token, error = await asyncio.wait_for(done, timeout=30)

    assert error is None
    assert token.access_token
