from unittest import mock

import aiohttp
import pytest
import requests
from gcloud.aio.oauth2 import AioSession
from gcloud.aio.oauth2 import SyncSession
from gcloud.aio.oauth2.session import _raise_for_status


@pytest.mark.asyncio
async def test_unmanaged_session():
    async with aiohttp.ClientSession() as session:
        gcloud_session = AioSession(session=session)
        assert gcloud_session._shared_session  # pylint: disable=protected-access
        await gcloud_session.close()

        assert not session.closed


@pytest.mark.asyncio
async def test_managed_session():
    gcloud_session = AioSession(timeout=5)
    # create new session
    session = gcloud_session.session
    assert session.timeout.total == 5
    assert not gcloud_session._shared_session  # pylint: disable=protected-access
    await gcloud_session.close()

    assert session.closed


@pytest.mark.asyncio
async def test_raise_for_status_keeps_body():
    resp = mock.Mock()
    resp.status = 400
    resp.reason = 'Bad Request'
    resp.text = mock.AsyncMock(return_value='{"error": "invalid_grant"}')

    with pytest.raises(aiohttp.ClientResponseError) as e:
        await _raise_for_status(resp)

    assert e.value.status == 400
    assert 'invalid_grant' in e.value.message
    resp.release.assert_called_once()


@pytest.mark.asyncio
async def test_raise_for_status_ok():
    resp = mock.Mock()
    resp.status = 200

    await _raise_for_status(resp)

    resp.text.assert_not_called()


def test_sync_unmanaged_session():
    session = mock.create_autospec(requests.Session, instance=True)
    gcloud_session = SyncSession(session=session)
    gcloud_session.close()

    session.close.assert_not_called()


def test_sync_managed_session():
    gcloud_session = SyncSession(verify_ssl=False)
    session = gcloud_session.session
    assert session.verify is False

    with mock.patch.object(session, 'close') as close:
        gcloud_session.close()

    close.assert_called_once()
