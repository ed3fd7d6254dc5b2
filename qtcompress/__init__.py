"""Quadtree image compression."""
from .compressor import CompressionResult, ImageCompressor, load_image, save_image
from .exceptions import ImageIOError, InvalidParameterError, InvariantViolation, QuadtreeError, describe_error
from .metrics import ErrorMethod, average_color, block_error, describe_methods, measure_block
from .params import CompressionParams
from .quadtree_core import QuadNode, Quadtree, Region, build_quadtree, count_nodes, downscale_image, iter_leaves
from .render import render_tiled, render_tree
from .stats import CompressionStats, psnr
from .tuner import TuningResult, find_threshold

__version__ = "0.2.0"
