# qtcompress/quadtree_core.py
import logging
import multiprocessing
from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Tuple

import numpy as np
from PIL import Image

from .exceptions import InvalidParameterError, InvariantViolation
from .metrics import Color, ErrorMethod, measure_block
from .snapshots import SnapshotRecorder

log = logging.getLogger(__name__)


class Region(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def quadrants(self) -> Tuple["Region", "Region", "Region", "Region"]:
        """Top-left, top-right, bottom-left, bottom-right.

        Odd remainders go to the right column and the bottom row so the four
        quadrants always tile the region exactly.
        """
        hw, hh = self.width // 2, self.height // 2
        rw, rh = self.width - hw, self.height - hh
        return (
            Region(self.x,      self.y,      hw, hh),
            Region(self.x + hw, self.y,      rw, hh),
            Region(self.x,      self.y + hh, hw, rh),
            Region(self.x + hw, self.y + hh, rw, rh),
        )

    def intersects(self, other: "Region") -> bool:
        return (self.x < other.right and other.x < self.right and
                self.y < other.bottom and other.y < self.bottom)

    def intersection(self, other: "Region") -> Optional["Region"]:
        x0, y0 = max(self.x, other.x), max(self.y, other.y)
        x1, y1 = min(self.right, other.right), min(self.bottom, other.bottom)
        if x1 <= x0 or y1 <= y0:
            return None
        return Region(x0, y0, x1 - x0, y1 - y0)


@dataclass
class QuadNode:
    region: Region
    avg_color: Color
    error: float
    children: Optional[Tuple["QuadNode", "QuadNode", "QuadNode", "QuadNode"]] = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    @property
    def top_left(self) -> Optional["QuadNode"]:
        return None if self.children is None else self.children[0]

    @property
    def top_right(self) -> Optional["QuadNode"]:
        return None if self.children is None else self.children[1]

    @property
    def bottom_left(self) -> Optional["QuadNode"]:
        return None if self.children is None else self.children[2]

    @property
    def bottom_right(self) -> Optional["QuadNode"]:
        return None if self.children is None else self.children[3]

    def split(self, top_left: "QuadNode", top_right: "QuadNode",
              bottom_left: "QuadNode", bottom_right: "QuadNode") -> None:
        if self.children is not None:
            raise InvariantViolation(f"node {self.region} is already split")
        children = (top_left, top_right, bottom_left, bottom_right)
        if tuple(c.region for c in children) != self.region.quadrants():
            raise InvariantViolation(f"children do not partition {self.region}")
        self.children = children


@dataclass
class Quadtree:
    root: QuadNode
    width: int
    height: int
    depth: int
    node_count: int
    threshold: float
    min_block_size: int
    method: ErrorMethod
    frames: List[np.ndarray] = field(default_factory=list)

    def leaves(self) -> Iterator[QuadNode]:
        return iter_leaves(self.root)

    @property
    def leaf_count(self) -> int:
        return sum(1 for _ in self.leaves())

    @property
    def compression_ratio(self) -> float:
        return 1.0 - self.node_count / (self.width * self.height)


# ---------------- input checks ----------------
def as_rgb_array(img) -> np.ndarray:
    arr = np.asarray(img)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise InvalidParameterError("img must be HxW x 3 RGB")
    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise InvalidParameterError("image must not be empty")
    if arr.dtype != np.uint8:
        if not np.issubdtype(arr.dtype, np.integer) or arr.min() < 0 or arr.max() > 255:
            raise InvalidParameterError(f"pixel values must be integers in 0..255, got dtype {arr.dtype}")
        arr = arr.astype(np.uint8)
    return arr


def _check_build_params(threshold: float, min_block_size: int) -> None:
    if threshold < 0:
        raise InvalidParameterError(f"threshold must not be negative, got {threshold}")
    if min_block_size < 1:
        raise InvalidParameterError(f"minimum block size must be >= 1, got {min_block_size}")


# ---------------- builder ----------------
class _Builder:
    """Depth-first construction. Each call returns its subtree's node count and depth."""

    def __init__(self, img: np.ndarray, threshold: float, min_block_size: int,
                 method: ErrorMethod, recorder: Optional[SnapshotRecorder] = None):
        self.img = img
        self.threshold = threshold
        self.min_block_size = min_block_size
        self.method = method
        self.recorder = recorder

    def is_final(self, node: QuadNode) -> bool:
        r = node.region
        return (node.error <= self.threshold or
                r.width <= self.min_block_size or r.height <= self.min_block_size)

    def measure(self, region: Region) -> QuadNode:
        avg, err = measure_block(self.img, region, self.method)
        node = QuadNode(region=region, avg_color=avg, error=err)
        if self.recorder is not None:
            self.recorder.paint(node)
        return node

    def build(self, region: Region, cur_depth: int = 0) -> Tuple[QuadNode, int, int]:
        node = self.measure(region)
        if self.is_final(node):
            return node, 1, cur_depth
        count, depth = 1, cur_depth
        children = []
        for quadrant in region.quadrants():
            child, c, d = self.build(quadrant, cur_depth + 1)
            children.append(child)
            count += c
            depth = max(depth, d)
        node.split(*children)
        if self.recorder is not None:
            self.recorder.on_split(cur_depth)
        return node, count, depth


# ---------------- multiprocessed build ----------------
def _build_subtree_worker(args):
    img, region, threshold, min_block_size, method = args
    # every worker reads the same image but only builds its own quadrant
    return _Builder(img, threshold, min_block_size, method).build(region, 1)


def _parallel_build(builder: _Builder, workers: int) -> Tuple[QuadNode, int, int]:
    """Split the root into four and build the quadrants in parallel; reduce counts after join."""
    root = builder.measure(Region(0, 0, builder.img.shape[1], builder.img.shape[0]))
    if builder.is_final(root):
        return root, 1, 0
    tasks = [(builder.img, q, builder.threshold, builder.min_block_size, builder.method)
             for q in root.region.quadrants()]
    pool_size = min(4, workers, max(1, multiprocessing.cpu_count()))
    with multiprocessing.Pool(processes=pool_size) as pool:
        results = pool.map(_build_subtree_worker, tasks)
    root.split(*(r[0] for r in results))
    return root, 1 + sum(r[1] for r in results), max(r[2] for r in results)


def build_quadtree(img: np.ndarray, threshold: float, min_block_size: int,
                   method: ErrorMethod = ErrorMethod.VARIANCE,
                   capture_frames: bool = False, workers: int = 1,
                   max_frames: Optional[int] = None) -> Quadtree:
    """Build the quadtree of img.

    A threshold of 0 is accepted: every block with any error is split down to
    min_block_size. It is the lower end of the tuner's search range. Entry
    points taking user input go through CompressionParams, which requires a
    positive threshold.
    """
    img = as_rgb_array(img)
    _check_build_params(threshold, min_block_size)
    h, w = img.shape[:2]
    recorder = None
    if capture_frames:
        recorder = SnapshotRecorder(img) if max_frames is None else SnapshotRecorder(img, max_frames)
        if workers > 1:
            log.info("frame capture requested, building serially")
            workers = 1
    builder = _Builder(img, threshold, min_block_size, method, recorder)
    if workers > 1:
        root, count, depth = _parallel_build(builder, workers)
    else:
        root, count, depth = builder.build(Region(0, 0, w, h))
    frames = recorder.finish() if recorder is not None else []
    log.debug("built quadtree %dx%d: nodes=%d depth=%d threshold=%.4f method=%s",
              w, h, count, depth, threshold, method.name)
    return Quadtree(root=root, width=w, height=h, depth=depth, node_count=count,
                    threshold=threshold, min_block_size=min_block_size,
                    method=method, frames=frames)


# ---------------- downscale-for-search helper ----------------
def downscale_image(img: np.ndarray, factor: int) -> np.ndarray:
    if factor <= 1:
        return img
    pil = Image.fromarray(img)
    w, h = pil.size
    neww = max(1, w // factor)
    newh = max(1, h // factor)
    small = pil.resize((neww, newh), Image.BILINEAR)
    return np.array(small)


def fit_to_pixels(img: np.ndarray, max_pixels: int) -> np.ndarray:
    """Shrink an image, keeping its aspect ratio, until it holds at most max_pixels."""
    h, w = img.shape[:2]
    if w * h <= max_pixels:
        return img
    scale = (max_pixels / (w * h)) ** 0.5
    neww, newh = max(1, int(w * scale)), max(1, int(h * scale))
    return np.array(Image.fromarray(img).resize((neww, newh), Image.BILINEAR))


# ---------------- tree walkers ----------------
def iter_leaves(node: QuadNode) -> Iterator[QuadNode]:
    stack = [node]
    while stack:
        cur = stack.pop()
        if cur.is_leaf:
            yield cur
        else:
            stack.extend(c for c in reversed(cur.children) if c is not None)


def count_nodes(node: QuadNode) -> int:
    if node.is_leaf:
        return 1
    return 1 + sum(count_nodes(c) for c in node.children)


def tree_depth(node: QuadNode) -> int:
    if node.is_leaf:
        return 0
    return 1 + max(tree_depth(c) for c in node.children)
