# qtcompress/stats.py
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np


def psnr(orig_np: np.ndarray, recon_np: np.ndarray) -> float:
    mse = float(np.mean((orig_np.astype(np.float64) - recon_np.astype(np.float64))**2))
    if mse == 0:
        return float('inf')
    PIXEL_MAX = 255.0
    return 20.0 * math.log10(PIXEL_MAX / math.sqrt(mse))


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} bytes"
    if size < 1024 * 1024:
        return f"{size / 1024.0:.2f} KB"
    return f"{size / (1024.0 * 1024):.2f} MB"


def format_psnr(value: Optional[float]) -> str:
    if value is None or math.isnan(value):
        return "N/A"
    return "inf" if math.isinf(value) else f"{value:.2f} dB"


@dataclass
class CompressionStats:
    original_size: int
    compressed_size: int
    depth: int
    node_count: int
    elapsed_ms: float
    psnr: Optional[float] = None
    threshold: Optional[float] = None

    @property
    def compression_percentage(self) -> float:
        """Fraction of bytes saved, 0..1 (negative if the output grew)."""
        if self.original_size == 0:
            return 0.0
        return 1.0 - self.compressed_size / self.original_size

    @property
    def formatted_time(self) -> str:
        if self.elapsed_ms < 1000:
            return f"{int(self.elapsed_ms)} ms"
        return f"{self.elapsed_ms / 1000.0:.2f} seconds"

    def as_dict(self) -> dict:
        return {
            "original_size": self.original_size,
            "compressed_size": self.compressed_size,
            "compression_percentage": round(self.compression_percentage * 100, 2),
            "depth": self.depth,
            "nodes": self.node_count,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "psnr": format_psnr(self.psnr),
            "threshold": self.threshold,
        }

    def summary(self) -> str:
        lines = [
            "Compression Statistics:",
            "--------------------",
            f"Execution time: {self.formatted_time}",
            f"Original image size: {format_file_size(self.original_size)}",
            f"Compressed image size: {format_file_size(self.compressed_size)}",
            f"Compression percentage: {self.compression_percentage * 100:.2f}%",
            f"Quadtree depth: {self.depth}",
            f"Number of nodes: {self.node_count}",
        ]
        if self.threshold is not None:
            lines.append(f"Threshold used: {self.threshold:.4f}")
        if self.psnr is not None:
            lines.append(f"PSNR: {format_psnr(self.psnr)}")
        return "\n".join(lines)
