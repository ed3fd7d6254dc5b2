# qtcompress/render.py
from typing import Optional

import numpy as np

from .params import TILE_SIZE, TILED_RENDER_PIXELS
from .quadtree_core import QuadNode, Quadtree, Region


def render_node(node: Optional[QuadNode], canvas: np.ndarray) -> None:
    """Paint every leaf below node with its average color."""
    if node is None:
        return
    if node.is_leaf:
        x, y, w, h = node.region
        canvas[y:y+h, x:x+w] = node.avg_color
        return
    for child in node.children:
        # children are attached all at once, a missing one is never expected
        if child is not None:
            render_node(child, canvas)


def render_tile(node: Optional[QuadNode], canvas: np.ndarray, tile: Region) -> None:
    """Paint only the part of each leaf that falls inside tile."""
    if node is None or not node.region.intersects(tile):
        return
    if node.is_leaf:
        part = node.region.intersection(tile)
        if part is not None:
            canvas[part.y:part.bottom, part.x:part.right] = node.avg_color
        return
    for child in node.children:
        render_tile(child, canvas, tile)


def render_tiled(node: QuadNode, canvas: np.ndarray, tile_size: int = TILE_SIZE) -> None:
    h, w = canvas.shape[:2]
    for y in range(0, h, tile_size):
        for x in range(0, w, tile_size):
            tile = Region(x, y, min(tile_size, w - x), min(tile_size, h - y))
            render_tile(node, canvas, tile)


def render_tree(tree: Quadtree, tiled: Optional[bool] = None, tile_size: int = TILE_SIZE) -> np.ndarray:
    """Reconstruct the compressed image. Large images are rendered tile by tile."""
    canvas = np.zeros((tree.height, tree.width, 3), dtype=np.uint8)
    if tiled is None:
        tiled = tree.width * tree.height > TILED_RENDER_PIXELS
    if tiled:
        render_tiled(tree.root, canvas, tile_size)
    else:
        render_node(tree.root, canvas)
    return canvas
