"""
================================================================================
Token Manager with Scope-Keyed Caching
================================================================================

Fetches OAuth2 client-credentials access tokens from the Dock Health auth
server with:
    - One cached token per scope set
    - Automatic refresh before expiration
    - Cross-process token caching using filelock
    - Thread-safe singleton pattern

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import httpx
from filelock import FileLock
from loguru import logger


# Token cache configuration
TOKEN_CACHE_DIR = Path(__file__).parent.parent.parent / ".token_cache"
TOKEN_CACHE_FILE = TOKEN_CACHE_DIR / "cache.json"
TOKEN_LOCK_FILE = TOKEN_CACHE_DIR / "cache.lock"

TOKEN_ENDPOINT = "/oauth2/token"

# Used when the auth server omits expires_in (1 hour in seconds)
DEFAULT_TOKEN_TTL = 3600

# Refresh token when less than this many seconds remain
TOKEN_REFRESH_BUFFER = 300  # 5 minutes


class TokenError(Exception):
    """Raised when token operations fail."""
    pass


def scope_key(scopes: Iterable[str]) -> str:
    """Cache key for a scope set; order does not matter."""
    return " ".join(sorted(set(scopes)))


class TokenManager:
    """
    Client-credentials token manager with per-scope caching.

    Dock Health tokens are scoped (e.g. ``dockhealth/user.all.read``) and an
    endpoint only accepts a token carrying the scopes it needs, so tokens are
    cached by scope set rather than globally.

    Usage:
        >>> tokens = TokenManager.instance(config)
        >>> token = tokens.get_access_token([
        ...     "dockhealth/user.all.read",
        ...     "dockhealth/user.all.write",
        ... ])
    """

    _instance: Optional["TokenManager"] = None

    def __new__(cls, config=None) -> "TokenManager":
        """Singleton pattern - return existing instance if available."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config=None) -> None:
        """
        Initialize token manager.

        Args:
            config: ConfigLoader instance for configuration access
        """
        if getattr(self, "_initialized", False):
            return

        self.config = config
        self._tokens: Dict[str, Dict[str, Any]] = {}

        TOKEN_CACHE_DIR.mkdir(parents=True, exist_ok=True)

        self._initialized = True

    @classmethod
    def instance(cls, config=None) -> "TokenManager":
        """
        Get singleton instance of TokenManager.

        Args:
            config: ConfigLoader instance (required on first call)
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    def get_access_token(self, scopes: Iterable[str]) -> str:
        """
        Return an access token carrying the given scopes.

        Reuses a cached token (in memory, then on disk) while it has more than
        TOKEN_REFRESH_BUFFER seconds left, otherwise requests a new one.

        Args:
            scopes: Dock Health scopes, e.g. ["dockhealth/patient.all.read"]

        Raises:
            TokenError: Missing credentials, empty scopes or failed request
        """
        scopes = list(scopes or [])
        self._check_credentials(scopes)
        key = self._cache_key(scopes)

        entry = self._tokens.get(key)
        if self._is_fresh(entry):
            return entry["token"]

        cached = self._load_cached_token(key)
        if self._is_fresh(cached):
            self._tokens[key] = cached
            return cached["token"]

        return self._fetch_token(key, scopes)

    def _check_credentials(self, scopes: list) -> None:
        if not self._get("api.key"):
            raise TokenError("API_KEY is not set in the environment!")
        if not self._get("client.id"):
            raise TokenError("CLIENT_ID is not set in the environment!")
        if not self._get("client.secret"):
            raise TokenError("CLIENT_SECRET is not set in the environment!")
        if not scopes:
            raise TokenError("Scopes are not defined!")

    def _cache_key(self, scopes: list) -> str:
        """Cache key: tokens belong to one auth server and client, not just a scope set."""
        auth_url = (self._get("auth.url") or "").rstrip("/")
        return f"{auth_url}|{self._get('client.id')}|{scope_key(scopes)}"

    @staticmethod
    def _is_fresh(entry: Optional[Dict[str, Any]]) -> bool:
        return bool(
            entry
            and entry.get("token")
            and entry.get("expires_at", 0) > time.time() + TOKEN_REFRESH_BUFFER
        )

    def _fetch_token(self, key: str, scopes: list) -> str:
        """
        Fetch a new token while holding the cache lock.

        The lock keeps parallel workers from requesting the same scope set
        at the same time.
        """
        with FileLock(str(TOKEN_LOCK_FILE)):
            # Double-check cache after acquiring lock
            cached = self._load_cached_token(key)
            if self._is_fresh(cached):
                self._tokens[key] = cached
                return cached["token"]

            token_data = self._request_new_token(scopes)

            ttl = token_data.get("expires_in") or DEFAULT_TOKEN_TTL
            entry = {
                "token": token_data["access_token"],
                "expires_at": time.time() + float(ttl),
            }
            self._tokens[key] = entry
            self._save_token_to_cache(key, entry)

            logger.info(f"Token acquired for scopes: {key}")
            return entry["token"]

    def _request_new_token(self, scopes: list) -> Dict[str, Any]:
        """
        Request new token from the OAuth2 token endpoint.

        Scopes MUST be space delimited or the auth server rejects the call.

        Returns:
            Token response body (access_token, expires_in, token_type)
        """
        auth_url = (self._get("auth.url") or "").rstrip("/")
        form = {
            "grant_type": "client_credentials",
            "client_id": self._get("client.id"),
            "client_secret": self._get("client.secret"),
            "scope": " ".join(scopes),
        }

        try:
            with httpx.Client(timeout=30.0) as client:
                response = client.post(f"{auth_url}{TOKEN_ENDPOINT}", data=form)
        except httpx.HTTPError as e:
            raise TokenError(f"Failed to fetch token: {e}") from e

        if response.status_code != 200:
            raise TokenError(
                f"Token request failed with {response.status_code}: {response.text}"
            )

        body = response.json()
        if not body.get("access_token"):
            raise TokenError("Token response did not contain an access_token")
        return body

    def _read_cache(self) -> Dict[str, Any]:
        try:
            if TOKEN_CACHE_FILE.exists():
                with open(TOKEN_CACHE_FILE, "r") as f:
                    return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.debug(f"Ignoring unreadable token cache: {e}")
        return {}

    def _load_cached_token(self, key: str) -> Optional[Dict[str, Any]]:
        """Load token for a scope set from file cache."""
        return self._read_cache().get(key)

    def _save_token_to_cache(self, key: str, entry: Dict[str, Any]) -> None:
        """Save token for a scope set to file cache."""
        cache_data = self._read_cache()
        cache_data[key] = entry

        try:
            TOKEN_CACHE_DIR.mkdir(parents=True, exist_ok=True)
            with open(TOKEN_CACHE_FILE, "w") as f:
                json.dump(cache_data, f)
        except IOError as e:
            logger.warning(f"Failed to cache token: {e}")

    def _get(self, key: str) -> Optional[str]:
        if self.config:
            return self.config.get(key)
        return None

    def invalidate(self) -> None:
        """
        Invalidate all cached tokens.

        Forces the next call to fetch new tokens.
        """
        self._tokens = {}

        if TOKEN_CACHE_FILE.exists():
            TOKEN_CACHE_FILE.unlink()

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        if cls._instance:
            cls._instance.invalidate()
        cls._instance = None


__all__ = [
    "TokenManager",
    "TokenError",
    "scope_key",
]
