import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


@pytest.fixture(scope='session')
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope='session')
def rsa_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode('utf-8')


@pytest.fixture
def service_data(rsa_pem):
    # pylint: disable=line-too-long
    return {
        'type': 'service_account',
        'project_id': 'p',
        'private_key_id': 'k1',
        'private_key': rsa_pem,
        'client_email': 'svc@p.iam.gserviceaccount.com',
        'client_id': '123',
        'auth_uri': 'https://accounts.google.com/o/oauth2/auth',
        'token_uri': 'https://oauth2.googleapis.com/token',
        'auth_provider_x509_cert_url': 'https://www.googleapis.com/oauth2/v1/certs',
        'client_x509_cert_url': 'https://www.googleapis.com/robot/v1/metadata/x509/svc%40p.iam.gserviceaccount.com',
    }


@pytest.fixture
def service_file(tmp_path, service_data) -> str:
    path = tmp_path / 'service.json'
    path.write_text(json.dumps(service_data), encoding='utf-8')
    return str(path)
