"""
================================================================================
Dock Health Request Headers
================================================================================

Every call needs `Authorization` and `x-api-key`. Organization endpoints also
need the acting user (`x-user-id`), and most resource endpoints additionally
need the organization acted upon (`x-organization-id`).

================================================================================
"""

from __future__ import annotations

from typing import Dict, Optional

from .config_loader import ConfigLoader


HEADER_AUTHORIZATION = "Authorization"
HEADER_API_KEY = "x-api-key"
HEADER_USER_ID = "x-user-id"
HEADER_ORGANIZATION_ID = "x-organization-id"


class HeaderError(ValueError):
    """Raised when a header value needed for a request is missing."""
    pass


def _authorization(token: str, config: ConfigLoader) -> str:
    scheme = config.get("auth.scheme")
    return f"{scheme} {token}" if scheme else token


def dev_headers(
    token: Optional[str],
    config: Optional[ConfigLoader] = None,
) -> Dict[str, str]:
    """Headers for `/developer` endpoints."""
    if not token:
        raise HeaderError("Token is undefined!")
    config = config or ConfigLoader()
    api_key = config.get("api.key")
    if not api_key:
        raise HeaderError("API key is undefined!")
    return {
        HEADER_AUTHORIZATION: _authorization(token, config),
        HEADER_API_KEY: api_key,
    }


def user_headers(
    token: Optional[str],
    user_id: Optional[str],
    config: Optional[ConfigLoader] = None,
) -> Dict[str, str]:
    """Headers for calls made on behalf of a user."""
    if not token:
        raise HeaderError("Token is undefined!")
    if not user_id:
        raise HeaderError("User id is undefined!")
    headers = dev_headers(token, config)
    headers[HEADER_USER_ID] = user_id
    return headers


def user_and_org_headers(
    token: Optional[str],
    user_id: Optional[str],
    organization_id: Optional[str],
    config: Optional[ConfigLoader] = None,
) -> Dict[str, str]:
    """Headers for calls made on behalf of a user within an organization."""
    if not token:
        raise HeaderError("Token is undefined!")
    if not user_id:
        raise HeaderError("User id is undefined!")
    if not organization_id:
        raise HeaderError("Organization id is undefined!")
    headers = user_headers(token, user_id, config)
    headers[HEADER_ORGANIZATION_ID] = organization_id
    return headers


__all__ = [
    "HEADER_API_KEY",
    "HEADER_AUTHORIZATION",
    "HEADER_ORGANIZATION_ID",
    "HEADER_USER_ID",
    "HeaderError",
    "dev_headers",
    "user_and_org_headers",
    "user_headers",
]
