"""
Google identity-token verification for creator sign-in.
"""

from __future__ import annotations

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from geoguide.errors import GeoGuideError
from geoguide.schemas import Identity


class InvalidIdentityToken(GeoGuideError):
    pass


def verify_identity_token(token: str, client_id: str) -> Identity:
    """
    Verify a Google Sign-In ID token and return the signed-in user.

    Raises:
        InvalidIdentityToken: the token is malformed, expired, or was issued
            for another client.
    """
    try:
        claims = id_token.verify_oauth2_token(
            token, google_requests.Request(), audience=client_id
        )
    except ValueError as exc:
        raise InvalidIdentityToken(str(exc)) from exc
    return Identity(
        id=claims["sub"],
        name=claims.get("name", ""),
        email=claims.get("email", ""),
        picture_url=claims.get("picture"),
    )
