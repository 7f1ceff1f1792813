import logging

import pytest

from stubs import StubSession, stub_settings
from tokenpulse.logging_utils import reset_warn_once_cache


@pytest.fixture
def settings():
    return stub_settings()


@pytest.fixture
def session():
    return StubSession()


@pytest.fixture(autouse=True)
def _reset_warn_once():
    reset_warn_once_cache()
    yield
    reset_warn_once_cache()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    sentinel = getattr(root, "_tokenpulse_stdout_handler", None)
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    if sentinel is None and hasattr(root, "_tokenpulse_stdout_handler"):
        delattr(root, "_tokenpulse_stdout_handler")
