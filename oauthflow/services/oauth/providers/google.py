"""Google OAuth 2.0 / OpenID Connect presets."""
from typing import Iterable

from .base import OAuthProvider

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

GOOGLE_DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]

# Additional scopes per Google service, added with add_google_scopes()
GOOGLE_EXTENDED_SCOPES: dict[str, list[str]] = {
    "gmail": [
        "https://www.googleapis.com/auth/gmail.readonly",
        "https://www.googleapis.com/auth/gmail.send",
        "https://www.googleapis.com/auth/gmail.compose",
    ],
    "drive": [
        "https://www.googleapis.com/auth/drive.readonly",
        "https://www.googleapis.com/auth/drive.file",
    ],
    "calendar": [
        "https://www.googleapis.com/auth/calendar.readonly",
        "https://www.googleapis.com/auth/calendar.events",
    ],
    "docs": [
        "https://www.googleapis.com/auth/documents.readonly",
        "https://www.googleapis.com/auth/documents",
    ],
    "sheets": [
        "https://www.googleapis.com/auth/spreadsheets.readonly",
        "https://www.googleapis.com/auth/spreadsheets",
    ],
}


def create_google_provider(scopes: list[str] | None = None) -> OAuthProvider:
    """
    Create a Google provider.

    Args:
        scopes: Scopes to request; defaults to profile and email

    Returns:
        OAuthProvider configured with Google's endpoints
    """
    return OAuthProvider(
        name="google",
        authorization_endpoint=GOOGLE_AUTH_URL,
        token_endpoint=GOOGLE_TOKEN_URL,
        user_info_endpoint=GOOGLE_USERINFO_URL,
        scopes=list(GOOGLE_DEFAULT_SCOPES) if scopes is None else scopes,
    )


def add_google_scopes(provider: OAuthProvider, services: Iterable[str]) -> None:
    """
    Extend a provider's scopes with those of the given Google services.

    Unknown service names are ignored; existing scopes keep their order.
    """
    extra: list[str] = []
    for service in services:
        extra.extend(GOOGLE_EXTENDED_SCOPES.get(service, []))
    provider.set_scopes(provider.scopes + extra)


def extract_user_data(user_info: dict) -> dict:
    """
    Extract standardized user data from a Google userinfo (v3) response.

    Expected fields:
    - sub: Stable Google account ID
    - email: User's email address
    - name: Full name
    - picture: Profile picture URL
    - email_verified: Email verification status
    """
    return {
        "id": user_info.get("sub", ""),
        "email": user_info.get("email", ""),
        "name": user_info.get("name", ""),
        "picture": user_info.get("picture", ""),
        "email_verified": user_info.get("email_verified", False),
    }
