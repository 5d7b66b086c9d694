"""Authentication for Apple Wallet web service requests.

Apple Wallet sends ``Authorization: ApplePass <authenticationToken>`` with
every web service request except log uploads.
"""

import typing as t

import structlog
from django.http import HttpRequest
from ninja.security import APIKeyHeader

logger = structlog.get_logger(__name__)

AUTH_SCHEME = "ApplePass"


def parse_apple_pass_header(header: str | None) -> str | None:
    """Extract the authentication token from an ``Authorization`` header.

    The header must be the literal ``ApplePass``, exactly one space, and a
    non-empty token without whitespace.

    Returns:
        The token, or None if the header is missing or malformed.
    """
    if not header:
        return None
    scheme, separator, token = header.partition(" ")
    if scheme != AUTH_SCHEME or not separator or not token:
        return None
    if token != token.strip() or any(char.isspace() for char in token):
        return None
    return token


class ApplePassAuth(APIKeyHeader):
    """django-ninja auth reading the ``ApplePass`` authorization scheme.

    The authenticated token is exposed as ``request.auth``.
    """

    param_name = "Authorization"

    def authenticate(self, request: HttpRequest, key: str | None) -> t.Any:
        """Validate the header format and return the token.

        Returns:
            The token, or None (which makes ninja answer 401).
        """
        token = parse_apple_pass_header(key)
        if token is None:
            logger.warning("missing_or_malformed_apple_pass_auth", path=request.path)
        return token
