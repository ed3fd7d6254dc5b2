# qtcompress/tuner.py
import logging
from dataclasses import dataclass

import numpy as np

from .exceptions import InvalidParameterError
from .metrics import ErrorMethod
from .params import TUNER_MAX_ITERATIONS, TUNER_SEARCH_FACTOR, TUNER_TOLERANCE
from .quadtree_core import as_rgb_array, build_quadtree, downscale_image

log = logging.getLogger(__name__)


@dataclass
class TuningResult:
    threshold: float
    ratio: float
    iterations: int
    converged: bool


def find_threshold(img: np.ndarray, method: ErrorMethod, min_block_size: int,
                   target_ratio: float, tolerance: float = TUNER_TOLERANCE,
                   max_iterations: int = TUNER_MAX_ITERATIONS,
                   search_factor: int = TUNER_SEARCH_FACTOR) -> TuningResult:
    """Binary-search the error threshold whose tree reaches target_ratio.

    The ratio is 1 - node_count / pixel_count. Trial trees are built on an image
    downscaled by search_factor with a proportionally smaller block size. The
    search range is [0, method.max_error].

    The best threshold seen (smallest |ratio - target_ratio|) is returned rather
    than the last midpoint, which after the final halving was never built.
    """
    if not 0.0 < target_ratio <= 1.0:
        raise InvalidParameterError(f"target ratio must be within (0, 1], got {target_ratio}")
    if max_iterations < 1:
        raise InvalidParameterError("max_iterations must be >= 1")
    img = as_rgb_array(img)
    small = downscale_image(img, search_factor)
    small_block = max(1, min_block_size // max(1, search_factor))
    pixels = small.shape[0] * small.shape[1]

    low, high = 0.0, float(method.max_error)
    best = None
    for i in range(1, max_iterations + 1):
        mid = (low + high) / 2.0
        trial = build_quadtree(small, mid, small_block, method)
        ratio = 1.0 - trial.node_count / pixels
        diff = abs(ratio - target_ratio)
        log.debug("tuner iteration %d: threshold=%.4f nodes=%d ratio=%.4f", i, mid, trial.node_count, ratio)
        if best is None or diff < abs(best.ratio - target_ratio):
            best = TuningResult(threshold=mid, ratio=ratio, iterations=i, converged=diff < tolerance)
        if diff < tolerance:
            break
        if ratio < target_ratio:
            low = mid
        else:
            high = mid
    best.iterations = i
    log.info("tuned threshold %.4f (ratio %.4f, target %.4f, %d iterations)",
             best.threshold, best.ratio, target_ratio, i)
    return best
