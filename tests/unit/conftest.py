"""Shared fixtures for unit tests."""

import logging

import pytest

from gateway.storage.sandbox import SandboxGateway


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("path_gateway")
    old_propagate = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = old_propagate


@pytest.fixture(name="base_dir")
def fixture_base_dir(tmp_path):
    """A canonical, existing base directory nested inside tmp_path."""
    base = tmp_path / "files"
    base.mkdir()
    return base.resolve()


@pytest.fixture(name="gateway")
def fixture_gateway(base_dir):
    return SandboxGateway(base_dir)
