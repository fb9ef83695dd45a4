"""
This library fetches short-lived OAuth 2.0 access tokens for calling Google
Cloud APIs, either from the service account attached to a GCE instance (via
the metadata server) or from a service account key file (via the JWT-bearer
grant).

Installation
------------

.. code-block:: console

    $ pip install --upgrade gcloud-aio-oauth2

Usage
-----

.. code-block:: python

    from gcloud.aio.oauth2 import MetadataTokenSource
    from gcloud.aio.oauth2 import ServiceAccountTokenSource

    # on a GCE instance; blocks until the metadata server answers
    with MetadataTokenSource() as source:
        source.initialize()
        print(source.token.access_token)

    # from a key file, inside a coroutine
    async with ServiceAccountTokenSource('/path/to/key.json') as source:
        resp = await source.refresh()
        print(resp.access_token, resp.expires_in)

        # or fire-and-forget with a callback
        def done(token, error):
            ...
        source.fetch_token(done)

``refresh()`` (and ``fetch_token()``) always request a new token. ``get()``
returns the held token and only goes to the network once it is close to
expiry:

.. code-block:: python

    headers = {'Authorization': f'Bearer {await source.get()}'}

The ``ServiceAccountTokenSource`` constructor accepts the following optional
arguments:

* ``service_file``: path to a `service account`_ key file, or a file-like
  object holding its contents. Defaults to
  ``$GOOGLE_APPLICATION_CREDENTIALS``.
* ``session``: an ``aiohttp.ClientSession`` to use for all requests. If
  omitted, one is created and closed by ``close()``.
* ``scopes``: the `scopes`_ to request, defaulting to
  ``https://www.googleapis.com/auth/cloud-platform``.
* ``timeout``: seconds to wait for the token endpoint (default 10).
* ``max_tries``: attempts per fetch, with exponential backoff between them
  (default 1, ie. no retries).

``MetadataTokenSource`` takes ``session`` (a ``requests.Session``),
``timeout`` and ``max_tries`` likewise, plus ``metadata_host`` which
otherwise comes from ``$GCE_METADATA_HOST`` (or ``$GCE_METADATA_ROOT``) and
defaults to ``metadata``.

Failures raise subclasses of ``OAuth2Error``: ``CredentialsError`` for bad
key files or keys (at construction), ``SigningError`` and ``NetworkError``
for failed fetches. A failed fetch never discards the previously held token.

.. _service account: https://console.cloud.google.com/iam-admin/serviceaccounts
.. _scopes: https://developers.google.com/identity/protocols/oauth2/scopes
"""
import importlib.metadata

from .claims import build_claims
from .claims import JWTClaimSet
from .claims import JWTHeader
from .claims import sign_assertion
from .credentials import Credentials
from .credentials import load_private_key
from .credentials import parse_credentials
from .errors import CredentialsError
from .errors import CredentialsFileError
from .errors import CredentialsParseError
from .errors import NetworkError
from .errors import OAuth2Error
from .errors import PrivateKeyError
from .errors import ResponseParseError
from .errors import SigningError
from .session import AioSession
from .session import SyncSession
from .token import MetadataTokenSource
from .token import ServiceAccountToken
from .token import ServiceAccountTokenSource
from .token import Token
from .token import TokenProvider


__version__ = importlib.metadata.version('gcloud-aio-oauth2')
__all__ = [
    'AioSession',
    'Credentials',
    'CredentialsError',
    'CredentialsFileError',
    'CredentialsParseError',
    'JWTClaimSet',
    'JWTHeader',
    'MetadataTokenSource',
    'NetworkError',
    'OAuth2Error',
    'PrivateKeyError',
    'ResponseParseError',
    'ServiceAccountToken',
    'ServiceAccountTokenSource',
    'SigningError',
    'SyncSession',
    'Token',
    'TokenProvider',
    '__version__',
    'build_claims',
    'load_private_key',
    'parse_credentials',
    'sign_assertion',
]
