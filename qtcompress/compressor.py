# qtcompress/compressor.py
"""End-to-end compression: load, tune, build, render, save."""
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .exceptions import ImageIOError
from .gif import save_gif
from .params import MAX_INPUT_PIXELS, CompressionParams
from .quadtree_core import Quadtree, as_rgb_array, build_quadtree, fit_to_pixels
from .render import render_tree
from .stats import CompressionStats, psnr
from .tuner import TuningResult, find_threshold

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class CompressionResult:
    tree: Quadtree
    original: np.ndarray
    image: np.ndarray
    threshold: float
    elapsed: float
    tuning: Optional[TuningResult] = None

    @property
    def frames(self) -> List[np.ndarray]:
        return self.tree.frames

    @property
    def psnr(self) -> float:
        return psnr(self.original, self.image)


def load_image(path: PathLike) -> np.ndarray:
    path = Path(path)
    if not path.is_file():
        raise ImageIOError(f"input file does not exist: {path}")
    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGB"))
    except (UnidentifiedImageError, OSError) as e:
        raise ImageIOError(f"cannot read image {path}: {e}") from e


def save_image(arr: np.ndarray, path: PathLike) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.fromarray(arr).save(path)
    except (ValueError, OSError) as e:
        # ValueError: Pillow could not pick a format from the extension
        raise ImageIOError(f"cannot write image {path}: {e}") from e


class ImageCompressor:
    def __init__(self, params: CompressionParams):
        self.params = params.validate()

    def compress_array(self, img: np.ndarray, capture_frames: Optional[bool] = None) -> CompressionResult:
        p = self.params
        if capture_frames is None:
            capture_frames = p.capture_frames
        start = time.perf_counter()
        img = as_rgb_array(img)
        threshold = p.threshold
        tuning = None
        if p.auto_threshold:
            tuning = find_threshold(img, p.method, p.min_block_size, p.target_ratio,
                                    tolerance=p.tuner_tolerance, max_iterations=p.tuner_iterations,
                                    search_factor=p.tuner_search_factor)
            threshold = tuning.threshold
        tree = build_quadtree(img, threshold, p.min_block_size, p.method,
                              capture_frames=capture_frames, workers=p.workers)
        out = render_tree(tree)
        elapsed = time.perf_counter() - start
        log.info("compressed %dx%d image: nodes=%d depth=%d in %.2fs",
                 tree.width, tree.height, tree.node_count, tree.depth, elapsed)
        return CompressionResult(tree=tree, original=img, image=out, threshold=threshold,
                                 elapsed=elapsed, tuning=tuning)

    def compress(self, input_path: PathLike, output_path: PathLike,
                 gif_path: Optional[PathLike] = None) -> CompressionStats:
        start = time.perf_counter()
        img = load_image(input_path)
        h, w = img.shape[:2]
        if w * h > MAX_INPUT_PIXELS:
            log.warning("image is very large (%dx%d), scaling down for processing", w, h)
            img = fit_to_pixels(img, MAX_INPUT_PIXELS)

        capture = self.params.capture_frames or gif_path is not None
        result = self.compress_array(img, capture_frames=capture)
        save_image(result.image, output_path)
        if gif_path is not None and result.frames:
            save_gif(result.frames, gif_path)

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        return CompressionStats(
            original_size=Path(input_path).stat().st_size,
            compressed_size=Path(output_path).stat().st_size,
            depth=result.tree.depth,
            node_count=result.tree.node_count,
            elapsed_ms=elapsed_ms,
            psnr=result.psnr,
            threshold=result.threshold,
        )
