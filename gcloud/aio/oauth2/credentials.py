"""
Service account key file parsing
"""
import json
import os
from dataclasses import dataclass
from dataclasses import fields
from typing import Any
from typing import AnyStr
from typing import Dict
from typing import IO
from typing import Optional
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import CredentialsFileError
from .errors import CredentialsParseError
from .errors import PrivateKeyError


@dataclass(frozen=True)
class Credentials:
    type: str
    project_id: str
    private_key_id: str
    private_key: str
    client_email: str
    client_id: str
    auth_uri: str
    token_uri: str
    auth_provider_x509_cert_url: str
    client_x509_cert_url: str

    @classmethod
    def from_dict(cls, data: Any) -> 'Credentials':
        """
        Build credentials from a decoded key file.

        Every field must be a non-blank string. Unknown keys are ignored, since
        key files issued by the console occasionally grow new entries (eg.
        ``universe_domain``).
        """
        if not isinstance(data, dict):
            raise CredentialsParseError(
                f'credentials must be a JSON object, got '
                f'{type(data).__name__}')

        names = [f.name for f in fields(cls)]
        missing = [
            name for name in names
            if not isinstance(data.get(name), str) or not data[name].strip()
        ]
        if missing:
            raise CredentialsParseError(
                f'credentials missing required fields: {", ".join(missing)}')

        return cls(**{name: data[name] for name in names})


def _read(service_file: Union[str, IO[AnyStr]]) -> str:
    # also support passing IO objects directly rather than strictly paths on
    # disk
    if isinstance(service_file, (str, os.PathLike)):
        try:
            with open(service_file, encoding='utf-8') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise CredentialsFileError(
                f'could not read credentials file {service_file}: {e}',
            ) from e

    try:
        content = service_file.read()
    except (OSError, ValueError) as e:
        raise CredentialsFileError(f'could not read credentials: {e}') from e

    if isinstance(content, bytes):
        try:
            return content.decode('utf-8')
        except UnicodeDecodeError as e:
            raise CredentialsFileError(
                f'credentials are not valid UTF-8: {e}') from e
    return content


def parse_credentials(
        service_file: Optional[Union[str, IO[AnyStr]]] = None,
) -> Credentials:
    """
    Read and validate a service account key file.

    ``service_file`` may be a path or a file-like object. When omitted, the
    path is taken from ``$GOOGLE_APPLICATION_CREDENTIALS``.
    """
    service_file = service_file or os.environ.get(
        'GOOGLE_APPLICATION_CREDENTIALS')
    if not service_file:
        raise CredentialsFileError(
            'no service file given and $GOOGLE_APPLICATION_CREDENTIALS is '
            'not set')

    try:
        data: Dict[str, Any] = json.loads(_read(service_file))
    except json.JSONDecodeError as e:
        raise CredentialsParseError(f'credentials are not valid JSON: {e}') \
            from e

    return Credentials.from_dict(data)


def load_private_key(pem: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(
            pem.encode('utf-8'), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        # TypeError: the key is encrypted, which key files never are
        raise PrivateKeyError(f'could not load private key: {e}') from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise PrivateKeyError(
            f'private key must be RSA, got {type(key).__name__}')
    return key
