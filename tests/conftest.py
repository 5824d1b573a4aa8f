import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from marquee import SelectionManager, ShapeRasterizer, reset_settings_cache  # noqa: E402

CANVAS = 128


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    monkeypatch.delenv("MARQUEE_CONFIG_PATH", raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def manager():
    return SelectionManager(CANVAS, CANVAS)


@pytest.fixture
def rasterizer():
    return ShapeRasterizer(CANVAS, CANVAS)


@pytest.fixture
def rgba_image():
    image = np.zeros((CANVAS, CANVAS, 4), dtype=np.uint8)
    image[:, :] = (10, 20, 30, 200)
    return image
