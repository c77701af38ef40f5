import sys
from pathlib import Path

import numpy as np
import pytest


# Ensure the repository root is on sys.path so tests can import the
# top-level packages (`common`, `geospatial`, `rendering`, `validation`).
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from common.types import RasterBuffer  # noqa: E402


@pytest.fixture
def gradient_source():
    """360x180 equirectangular source whose pixel (x, y) is (x % 256, y, 7, 255)."""
    ys, xs = np.mgrid[0:180, 0:360]
    pixels = np.zeros((180, 360, 4), dtype=np.uint8)
    pixels[..., 0] = xs % 256
    pixels[..., 1] = ys
    pixels[..., 2] = 7
    pixels[..., 3] = 255
    return RasterBuffer(pixels)
