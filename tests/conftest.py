"""Shared pytest configuration: adds project root to sys.path."""
import logging
import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure `blurmeter` and `apps` import from the checkout regardless of where
# pytest is invoked from.
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def rgba_from_gray(gray: np.ndarray) -> bytes:
    """Pack a HxW uint8 gray grid as opaque RGBA bytes (R=G=B=gray)."""
    gray = np.asarray(gray, dtype=np.uint8)
    alpha = np.full_like(gray, 255)
    return np.stack([gray, gray, gray, alpha], axis=-1).tobytes()


def checkerboard(width: int, height: int, low: int = 0, high: int = 255) -> np.ndarray:
    yy, xx = np.mgrid[0:height, 0:width]
    return np.where((xx + yy) % 2 == 0, high, low).astype(np.uint8)


@pytest.fixture
def uniform_4x4() -> bytes:
    return bytes([200, 200, 200, 255] * 16)


@pytest.fixture
def checker_10x10() -> bytes:
    return rgba_from_gray(checkerboard(10, 10))


@pytest.fixture(autouse=True)
def _reset_blurmeter_logger():
    # each test starts with a bare "blurmeter" logger
    yield
    logger = logging.getLogger("blurmeter")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
