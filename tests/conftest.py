import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo configure_logging() between tests so no test inherits a logger
    bound to a previous test's (now closed) captured stream."""
    yield
    structlog.reset_defaults()
