# qtcompress/metrics.py
"""Block statistics used to decide whether a quadtree region gets split.

Every metric looks at every pixel of the region and returns a non-negative
float where higher means "further from a flat block".
"""
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from .exceptions import InvalidParameterError

# SSIM stabilisers for 8-bit data
SSIM_C1 = (0.01 * 255) ** 2
SSIM_C2 = (0.03 * 255) ** 2

Color = Tuple[int, int, int]


class ErrorMethod(Enum):
    VARIANCE = (1, "Variance", (10.0, 1000.0), 128.0 ** 2)
    MAD = (2, "Mean Absolute Deviation", (5.0, 100.0), 128.0)
    MAX_DIFF = (3, "Max Pixel Difference", (10.0, 200.0), 255.0)
    ENTROPY = (4, "Entropy", (0.1, 5.0), 8.0)
    SSIM = (5, "Structural Similarity Index (simplified)", (0.01, 0.5), 1.0)

    def __init__(self, method_id: int, label: str, suggested_range: Tuple[float, float], max_error: float):
        self.id = method_id
        self.label = label
        self.suggested_range = suggested_range
        # upper bound of the metric, used as the threshold search ceiling
        self.max_error = max_error

    @classmethod
    def from_id(cls, method_id: int) -> "ErrorMethod":
        for method in cls:
            if method.id == method_id:
                return method
        raise InvalidParameterError(f"unknown error method id: {method_id}")

    @classmethod
    def parse(cls, value: Union["ErrorMethod", int, str]) -> "ErrorMethod":
        """Accept a member, a numeric id or a member name ("max-diff", "ssim", ...)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls.from_id(value)
        text = str(value).strip()
        if text.isdigit():
            return cls.from_id(int(text))
        key = text.upper().replace("-", "_").replace(" ", "_")
        try:
            return cls[key]
        except KeyError:
            names = ", ".join(m.name.lower() for m in cls)
            raise InvalidParameterError(f"unknown error method {value!r} (expected one of: {names})") from None

    @property
    def hint(self) -> str:
        lo, hi = self.suggested_range
        return f"Suggested range: {lo:g}-{hi:g}"


def describe_methods() -> str:
    lines = ["Available error measurement methods:"]
    lines += [f"{m.id}. {m.label}" for m in ErrorMethod]
    return "\n".join(lines)


# ---------------- region access ----------------
def _block(pixels: np.ndarray, region) -> np.ndarray:
    x, y, w, h = region
    if w <= 0 or h <= 0:
        raise InvalidParameterError(f"region must have positive area, got {w}x{h}")
    return pixels[y:y+h, x:x+w].reshape(-1, 3)


def average_color(pixels: np.ndarray, region) -> Color:
    """Integer-truncated mean of each channel."""
    block = _block(pixels, region)
    sums = block.sum(axis=0, dtype=np.int64)
    n = block.shape[0]
    return tuple(int(s) // n for s in sums)


# ---------------- metrics ----------------
def _variance(block: np.ndarray, avg: Color) -> float:
    dev = block.astype(np.float64) - np.asarray(avg, dtype=np.float64)
    return float((dev ** 2).mean(axis=0).mean())


def _mad(block: np.ndarray, avg: Color) -> float:
    dev = block.astype(np.float64) - np.asarray(avg, dtype=np.float64)
    return float(np.abs(dev).mean(axis=0).mean())


def _max_diff(block: np.ndarray) -> float:
    spread = block.max(axis=0).astype(np.int32) - block.min(axis=0).astype(np.int32)
    return float(spread.mean())


def _entropy(block: np.ndarray) -> float:
    n = block.shape[0]
    total = 0.0
    for c in range(3):
        hist = np.bincount(block[:, c], minlength=256)
        p = hist[hist > 0] / n
        total += float(-(p * np.log2(p)).sum())
    return total / 3


def _simplified_ssim(block: np.ndarray, avg: Color) -> float:
    # Compare against a flat block of the average color. The reference has zero
    # variance and zero covariance, so only the block's own variance matters.
    x = block.astype(np.float64)
    mu_x = np.asarray(avg, dtype=np.float64)
    mu_y = mu_x
    var_x = ((x - mu_x) ** 2).mean(axis=0)
    var_y = np.zeros(3)
    cov_xy = ((x - mu_x) * (mu_y - mu_y)).mean(axis=0)
    ssim = ((2 * mu_x * mu_y + SSIM_C1) * (2 * cov_xy + SSIM_C2)) / \
           ((mu_x ** 2 + mu_y ** 2 + SSIM_C1) * (var_x + var_y + SSIM_C2))
    return float(1.0 - ssim.mean())


def block_error(pixels: np.ndarray, region, method: ErrorMethod,
                avg_color: Optional[Color] = None) -> float:
    block = _block(pixels, region)
    if method is ErrorMethod.MAX_DIFF:
        return _max_diff(block)
    if method is ErrorMethod.ENTROPY:
        return _entropy(block)
    if avg_color is None:
        avg_color = average_color(pixels, region)
    if method is ErrorMethod.VARIANCE:
        return _variance(block, avg_color)
    if method is ErrorMethod.MAD:
        return _mad(block, avg_color)
    if method is ErrorMethod.SSIM:
        return _simplified_ssim(block, avg_color)
    raise InvalidParameterError(f"unsupported error method: {method!r}")


def measure_block(pixels: np.ndarray, region, method: ErrorMethod) -> Tuple[Color, float]:
    avg = average_color(pixels, region)
    return avg, block_error(pixels, region, method, avg)
