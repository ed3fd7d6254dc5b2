# qtcompress/snapshots.py
import logging
from typing import List

import numpy as np

from .exceptions import InvalidParameterError
from .params import MAX_FRAMES

log = logging.getLogger(__name__)


def capture_frequency(depth: int, total_pixels: int) -> int:
    """Capture every n-th split: early splits always, deeper ones sparser on big images."""
    if depth <= 2:
        return 1
    if total_pixels < 250_000:
        return 2
    if total_pixels < 1_000_000:
        return 4
    return 8


class SnapshotRecorder:
    """Collects renderings of the tree while it is being built.

    The recorder keeps its own canvas. The builder reports every node as soon as
    its average color is known, and nodes arrive in pre-order, so a child always
    overwrites its parent: the canvas is the rendering of the tree built so far.
    The last of the max_frames slots is kept for the final rendering.
    """

    def __init__(self, pixels: np.ndarray, max_frames: int = MAX_FRAMES):
        if max_frames < 2:
            raise InvalidParameterError(f"max_frames must be >= 2 (original and final frame), got {max_frames}")
        self.max_frames = max_frames
        self.total_pixels = int(pixels.shape[0] * pixels.shape[1])
        self.frames: List[np.ndarray] = [pixels.copy()]
        self.canvas = np.zeros_like(pixels)
        self.enabled = True
        self._splits = 0

    def paint(self, node) -> None:
        x, y, w, h = node.region
        self.canvas[y:y+h, x:x+w] = node.avg_color

    def on_split(self, depth: int) -> None:
        freq = capture_frequency(depth, self.total_pixels)
        if self.enabled and self._splits % freq == 0 and len(self.frames) < self.max_frames - 1:
            self.capture()
        self._splits += 1

    def capture(self) -> None:
        try:
            self.frames.append(self.canvas.copy())
        except MemoryError:
            log.warning("memory limit reached, stopping frame capture after %d frames", len(self.frames))
            self.enabled = False

    def finish(self) -> List[np.ndarray]:
        """Append the final rendering and hand the frames over."""
        try:
            self.frames.append(self.canvas.copy())
        except MemoryError:
            log.warning("memory limit reached, final frame dropped")
        self.enabled = False
        return self.frames
