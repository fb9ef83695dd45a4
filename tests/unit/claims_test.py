import time
from unittest import mock

import jwt
import pytest
from gcloud.aio.oauth2 import claims
from gcloud.aio.oauth2 import Credentials
from gcloud.aio.oauth2 import SigningError


@pytest.fixture
def creds(service_data) -> Credentials:
    return Credentials.from_dict(service_data)


@pytest.mark.parametrize('now', [0, 1, 1500000000, 1700000000.9])
def test_claims(creds, now):
    header, claim_set = claims.build_claims(creds, now)

    assert header == claims.JWTHeader(alg='RS256', typ='JWT')
    assert claim_set.iat == int(now)
    assert claim_set.exp == int(now) + 3600
    assert claim_set.aud == 'https://oauth2.googleapis.com/token'
    assert claim_set.iss == 'svc@p.iam.gserviceaccount.com'
    assert claim_set.scope == 'https://www.googleapis.com/auth/cloud-platform'


def test_claims_are_deterministic(creds):
    assert claims.build_claims(creds, 1234) == claims.build_claims(creds, 1234)


def test_claims_scopes(creds):
    scopes = [
        'https://www.googleapis.com/auth/devstorage.read_only',
        'https://www.googleapis.com/auth/pubsub',
    ]
    _, claim_set = claims.build_claims(creds, 0, scopes=scopes)

    assert claim_set.scope == ' '.join(scopes)


def test_sign_assertion(creds, rsa_key):
    header, claim_set = claims.build_claims(creds, time.time())
    assertion = claims.sign_assertion(header, claim_set, rsa_key)

    assert jwt.get_unverified_header(assertion) == {
        'alg': 'RS256',
        'typ': 'JWT',
    }
    decoded = jwt.decode(
        assertion, rsa_key.public_key(), algorithms=['RS256'],
        audience=creds.token_uri,
    )
    assert decoded == claim_set.to_dict()


def test_sign_assertion_failure(creds, rsa_key):
    header, claim_set = claims.build_claims(creds, time.time())

    with mock.patch('gcloud.aio.oauth2.claims.jwt.encode',
                    side_effect=jwt.PyJWTError('boom')):
        with pytest.raises(SigningError, match='boom'):
            claims.sign_assertion(header, claim_set, rsa_key)
