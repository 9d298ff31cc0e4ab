"""
================================================================================
API Testing Pytest Configuration
================================================================================

Shared fixtures for the live Dock Health examples.

Fixtures:
    - config: Configuration loader instance
    - tokens: Client-credentials token manager
    - client_for: Builds HTTP clients for arbitrary headers
    - http_client: Client acting as USER_IDENTIFIER in ORGANIZATION_IDENTIFIER
    - factory: Identifiers and payloads
    - cleanup_resources: Deletes what a test created
    - callback_server / callback_url: Webhook callback endpoint

All tests here skip when the live environment is not configured.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import uuid
from contextlib import ExitStack
from typing import Callable, Dict, Generator

import pytest
from loguru import logger

from dock_examples.framework import (
    CallbackServer,
    CallbackTunnel,
    ConfigLoader,
    DockDataFactory,
    HttpClient,
    TokenManager,
    user_and_org_headers,
)
from dock_examples.framework.callback_server import callback_port
from dock_examples.framework.scopes import PATIENT_SCOPES, USER_SCOPES


# Needed by every live example
LIVE_KEYS = (
    "auth.url",
    "api.url",
    "api.key",
    "client.id",
    "client.secret",
)

# Needed by examples acting as the configured user in the configured org
ACTING_USER_KEYS = (
    "user.identifier",
    "organization.identifier",
)


# =============================================================================
# Session-Scoped Fixtures (Shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def config() -> ConfigLoader:
    """
    Provide configuration loader instance.

    Session-scoped to ensure configuration is loaded only once.
    """
    return ConfigLoader()


@pytest.fixture(scope="session")
def require_config(config: ConfigLoader) -> Callable[..., None]:
    """
    Skip the calling test unless the given configuration keys are set.

    Usage:
        def test_deploy(require_config):
            require_config("task_list.identifier", "task_group.identifier")
    """
    def _require(*keys: str) -> None:
        missing = config.missing(keys)
        if missing:
            pytest.skip(f"Live environment not configured: {', '.join(missing)}")
    return _require


@pytest.fixture(autouse=True)
def _live_environment(require_config) -> None:
    require_config(*LIVE_KEYS)


@pytest.fixture(scope="session")
def tokens(config: ConfigLoader) -> TokenManager:
    return TokenManager.instance(config)


@pytest.fixture
def user_id(config: ConfigLoader, require_config) -> str:
    require_config(*ACTING_USER_KEYS)
    return config.get("user.identifier")


@pytest.fixture
def org_id(config: ConfigLoader, require_config) -> str:
    require_config(*ACTING_USER_KEYS)
    return config.get("organization.identifier")


# =============================================================================
# Function-Scoped Fixtures (Fresh for each test)
# =============================================================================

@pytest.fixture
def client_for(config: ConfigLoader) -> Generator[Callable[[Dict[str, str]], HttpClient], None, None]:
    """
    Build HTTP clients for the given headers; all are closed after the test.

    Usage:
        def test_example(client_for, tokens):
            dev = client_for(dev_headers(tokens.get_access_token([DEVELOPER_READ])))
            dev.get("/api/v1/developer")
    """
    with ExitStack() as stack:
        def _make(headers: Dict[str, str]) -> HttpClient:
            return stack.enter_context(HttpClient(config, headers=headers))
        yield _make


@pytest.fixture
def http_client(
    client_for,
    tokens: TokenManager,
    user_id: str,
    org_id: str,
) -> HttpClient:
    """
    Client acting as the configured user within the configured organization.

    Usage:
        def test_example(http_client):
            response = http_client.get("/api/v1/organization/current")
            assert response.status_code == 200
    """
    token = tokens.get_access_token(USER_SCOPES + PATIENT_SCOPES)
    return client_for(user_and_org_headers(token, user_id, org_id))


@pytest.fixture
def unique_id() -> str:
    """Unique suffix for names created by a test."""
    return f"autotest_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def factory(config: ConfigLoader, client_for) -> Generator[DockDataFactory, None, None]:
    # Depends on client_for so tracked cleanups run before its clients close.
    data_factory = DockDataFactory(config=config)
    yield data_factory
    data_factory.cleanup_all()


# =============================================================================
# Cleanup Fixtures
# =============================================================================

@pytest.fixture
def cleanup_resources(http_client: HttpClient):
    """
    Generic resource cleanup fixture.

    Entries may carry their own "client" when deletion needs other headers.
    Remove an entry once the test itself deleted the resource.

    Usage:
        def test_create_patient(http_client, cleanup_resources):
            patient = http_client.post("/api/v1/patient", json=payload).json()
            cleanup_resources.append({
                "type": "patient",
                "id": patient["id"],
                "endpoint": f"/api/v1/patient/{patient['id']}"
            })
    """
    resources = []
    yield resources

    # Reverse order: children before parents
    for resource in reversed(resources):
        client = resource.get("client", http_client)
        try:
            client.delete(resource["endpoint"])
            logger.debug(f"Cleaned up {resource['type']}: {resource['id']}")
        except Exception as e:
            logger.warning(
                f"Failed to cleanup {resource['type']} {resource['id']}: {e}"
            )


# =============================================================================
# Webhook Fixtures
# =============================================================================

@pytest.fixture
def webhook_secret(factory: DockDataFactory) -> str:
    return factory.generate_webhook_secret()


@pytest.fixture
def callback_server(
    config: ConfigLoader,
    webhook_secret: str,
) -> Generator[CallbackServer, None, None]:
    """One-shot callback server answering for ``webhook_secret``."""
    with CallbackServer(webhook_secret, port=callback_port(config), config=config) as server:
        yield server


@pytest.fixture
def callback_url(
    config: ConfigLoader,
    callback_server: CallbackServer,
) -> Generator[str, None, None]:
    """Public URL reaching ``callback_server`` (CALLBACK_URL or ngrok)."""
    if not config.get("callback.url") and not config.get("ngrok.authtoken"):
        pytest.skip("Live environment not configured: CALLBACK_URL or NGROK_AUTHTOKEN")

    with CallbackTunnel.open(config, port=callback_server.port) as tunnel:
        yield tunnel.url


# =============================================================================
# Allure Reporting Hooks
# =============================================================================

def pytest_exception_interact(node, call, report):
    """Attach additional info on test failure."""
    import allure

    if report.failed:
        allure.attach(
            str(call.excinfo.value),
            name="Error Details",
            attachment_type=allure.attachment_type.TEXT
        )
