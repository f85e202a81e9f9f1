"""Shared test configuration."""

import logging
from collections.abc import Iterator

import pytest
import structlog


def _quiet_structlog() -> None:
    structlog.reset_defaults()
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))


_quiet_structlog()


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo new_logger's global structlog and root-level changes."""
    root_level = logging.getLogger().level
    yield
    logging.getLogger().setLevel(root_level)
    _quiet_structlog()
