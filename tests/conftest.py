"""Shared fixtures for the runtime test suite."""

from unittest.mock import Mock

import pytest

from crew_common.config import RuntimeSettings


@pytest.fixture
def mock_logger():
    """Logger double recording every call by level."""
    return Mock(spec=["debug", "info", "warning", "error"])


@pytest.fixture
def settings():
    """Settings isolated from CREW_* environment variables."""
    return RuntimeSettings(
        log_level="INFO",
        log_format="console",
        default_action_timeout_ms=None,
    )
