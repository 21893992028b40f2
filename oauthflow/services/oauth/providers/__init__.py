"""OAuth providers module."""
from .base import OAuthProvider
from .google import (
    GOOGLE_DEFAULT_SCOPES,
    GOOGLE_EXTENDED_SCOPES,
    add_google_scopes,
    create_google_provider,
    extract_user_data,
)

__all__ = [
    "OAuthProvider",
    "GOOGLE_DEFAULT_SCOPES",
    "GOOGLE_EXTENDED_SCOPES",
    "add_google_scopes",
    "create_google_provider",
    "extract_user_data",
]
