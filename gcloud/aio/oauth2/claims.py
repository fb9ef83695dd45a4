"""
JWT assertions for the JWT-bearer grant (RFC 7523)
"""
from dataclasses import dataclass
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from .credentials import Credentials
from .errors import SigningError


ASSERTION_TTL = 3600
CLOUD_PLATFORM_SCOPE = 'https://www.googleapis.com/auth/cloud-platform'


@dataclass(frozen=True)
class JWTHeader:
    alg: str = 'RS256'
    typ: str = 'JWT'

    def to_dict(self) -> Dict[str, str]:
        return {'alg': self.alg, 'typ': self.typ}


@dataclass(frozen=True)
class JWTClaimSet:
    iss: str
    aud: str
    scope: str
    iat: int
    exp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'iss': self.iss,
            'aud': self.aud,
            'scope': self.scope,
            'iat': self.iat,
            'exp': self.exp,
        }


def build_claims(
        credentials: Credentials, now: float,
        scopes: Optional[List[str]] = None,
) -> Tuple[JWTHeader, JWTClaimSet]:
    iat = int(now)
    claims = JWTClaimSet(
        iss=credentials.client_email,
        aud=credentials.token_uri,
        scope=' '.join(scopes or [CLOUD_PLATFORM_SCOPE]),
        iat=iat,
        exp=iat + ASSERTION_TTL,
    )
    return JWTHeader(), claims


def sign_assertion(
        header: JWTHeader, claims: JWTClaimSet,
        key: rsa.RSAPrivateKey,
) -> str:
    """Produce the compact RS256-signed JWT for a claim set."""
    try:
        return jwt.encode(
            claims.to_dict(), key, algorithm=header.alg,
            headers=header.to_dict(),
        )
    except (jwt.PyJWTError, TypeError, ValueError) as e:
        raise SigningError(f'could not sign assertion: {e}') from e
