"""
================================================================================
Test Suite Pytest Configuration
================================================================================

Registers the project-wide markers and tags tests by location.

================================================================================
"""

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass before release"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )
    config.addinivalue_line(
        "markers", "P3: Low priority tests - extensive validation"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )
    config.addinivalue_line(
        "markers", "regression: Full regression test suite"
    )
    config.addinivalue_line(
        "markers", "integration: Tests calling the live Dock Health API"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end onboarding and webhook flows"
    )

    # Domain markers
    config.addinivalue_line(
        "markers", "api: API-specific tests"
    )
    config.addinivalue_line(
        "markers", "unit: Offline tests of the helper framework"
    )
    config.addinivalue_line(
        "markers", "webhook: Tests needing a public callback URL"
    )

    # Dependency markers
    config.addinivalue_line(
        "markers", "requires_external: Tests requiring external services"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests by the directory they live in."""
    for item in items:
        path = str(item.fspath)

        if "api_testing" in path:
            item.add_marker(pytest.mark.api)
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.requires_external)

        if "unit" in path.replace("\\", "/").split("/"):
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Dock Health API Examples",
        "=" * 60,
        "",
    ]
