"""
Repository-level pytest configuration.

Loads `.env` / `.env.<ENVIRONMENT>` before anything reads configuration, so
local runs pick up the developer's Dock Health credentials without exporting
them by hand. Nothing secret lives in this repository; copy `.env.example` to
`.env` and fill it in.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dock_examples.framework.config_loader import load_environment
from dock_examples.framework.logging_setup import init_logger


load_environment()


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session", autouse=True)
def _configure_logging() -> None:
    init_logger()
