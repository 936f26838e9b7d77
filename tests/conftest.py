"""Shared fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_package_log_level():
    """VERBOSE lines change the schedlink logger level; undo it per test."""
    pkg_logger = logging.getLogger("schedlink")
    level = pkg_logger.level
    yield
    pkg_logger.setLevel(level)
