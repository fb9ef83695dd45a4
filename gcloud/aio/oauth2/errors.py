class OAuth2Error(Exception):
    """Base class for every error raised while acquiring a token."""


class CredentialsError(OAuth2Error):
    """The service account key file could not be turned into credentials."""


class CredentialsFileError(CredentialsError):
    pass


class CredentialsParseError(CredentialsError, ValueError):
    pass


class PrivateKeyError(CredentialsError, ValueError):
    pass


class SigningError(OAuth2Error):
    pass


class NetworkError(OAuth2Error):
    """The token request failed, returned an error status or bad body."""


class ResponseParseError(NetworkError, ValueError):
    pass
