"""Shared test fixtures."""

from __future__ import annotations

import logging
from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def reset_fskit_logger() -> Iterator[None]:
    """Drop handlers the CLI attaches so they never outlive captured streams."""
    yield
    logger = logging.getLogger("fskit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
