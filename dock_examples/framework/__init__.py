"""
================================================================================
Dock Health Examples Framework
================================================================================

Helpers shared by the Dock Health API examples.

Modules:
    - config_loader: YAML / environment configuration
    - token_manager: client-credentials access tokens
    - auth_headers: Authorization / x-api-key / x-user-id / x-organization-id
    - http_client: HTTP client with retry and Allure logging
    - data_factory: unique identifiers and request payloads
    - signature: webhook HMAC-SHA256 signing and verification
    - callback_server: one-shot webhook callback server
    - tunnel: public URL for the callback server
    - wait_helpers: sleeping and polling

Author: Automation Team
License: MIT
================================================================================
"""

from .auth_headers import HeaderError, dev_headers, user_and_org_headers, user_headers
from .callback_server import CallbackServer
from .config_loader import ConfigLoader, ConfigurationError, load_environment
from .data_factory import (
    DockDataFactory,
    generate_domain,
    generate_email,
    generate_mrn,
    generate_webhook_secret,
)
from .http_client import HttpClient, HttpClientError, RateLimitExceeded, UnexpectedStatusError
from .logging_setup import init_logger
from .signature import SIGNATURE_HEADER, SignatureError, sign, verify_signature
from .token_manager import TokenError, TokenManager
from .tunnel import CallbackTunnel
from .wait_helpers import (
    WaitTimeoutError,
    sleep,
    wait_for_count_increase,
    wait_for_webhook_verified,
    wait_with_backoff,
)

__all__ = [
    "CallbackServer",
    "CallbackTunnel",
    "ConfigLoader",
    "ConfigurationError",
    "DockDataFactory",
    "HeaderError",
    "HttpClient",
    "HttpClientError",
    "RateLimitExceeded",
    "SIGNATURE_HEADER",
    "SignatureError",
    "TokenError",
    "TokenManager",
    "UnexpectedStatusError",
    "WaitTimeoutError",
    "dev_headers",
    "generate_domain",
    "generate_email",
    "generate_mrn",
    "generate_webhook_secret",
    "init_logger",
    "load_environment",
    "sign",
    "sleep",
    "user_and_org_headers",
    "user_headers",
    "verify_signature",
    "wait_for_count_increase",
    "wait_for_webhook_verified",
    "wait_with_backoff",
]
