"""Root test configuration."""

import logging

import pytest
import structlog
from fakes import (
    KUBECONFIG,
    FakeContainerTasks,
    FakeHealthChecker,
    FakeHelm,
    FakeKubernetes,
    make_context,
)

from stackyard.config.settings import get_settings


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def stackyard_home(tmp_path, monkeypatch):
    """Point the home directory at a temporary path for every test."""
    home = tmp_path / "home"
    monkeypatch.setenv("STACKYARD_HOME", str(home))
    get_settings.cache_clear()
    yield home
    get_settings.cache_clear()


@pytest.fixture
def tasks():
    return FakeContainerTasks()


@pytest.fixture
def helm():
    return FakeHelm()


@pytest.fixture
def kube():
    return FakeKubernetes()


@pytest.fixture
def checker():
    return FakeHealthChecker(kubeconfig=KUBECONFIG)


@pytest.fixture
def context(stackyard_home, tasks, helm, kube, checker):
    return make_context(stackyard_home, tasks=tasks, helm=helm, kube=kube, checker=checker)
