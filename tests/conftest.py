import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def uniform4():
    return np.full((4, 4, 3), (40, 120, 200), dtype=np.uint8)


@pytest.fixture
def diagonal4():
    img = np.zeros((4, 4, 3), dtype=np.uint8)
    for y in range(4):
        for x in range(4):
            if x >= y:
                img[y, x] = (250, 250, 250)
    return img


@pytest.fixture
def noise(rng):
    return rng.integers(0, 256, size=(37, 23, 3), dtype=np.uint8)


@pytest.fixture
def gradient():
    x = np.linspace(0, 255, 64, dtype=np.float64)
    img = np.zeros((48, 64, 3), dtype=np.uint8)
    img[..., 0] = x[None, :].astype(np.uint8)
    img[..., 1] = np.linspace(0, 255, 48)[:, None].astype(np.uint8)
    img[..., 2] = 90
    return img
