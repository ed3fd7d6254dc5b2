# qtcompress/params.py
from dataclasses import dataclass
from typing import Union

from .exceptions import InvalidParameterError
from .metrics import ErrorMethod

# inputs larger than this are scaled down before building
MAX_INPUT_PIXELS = 10_000_000
# outputs larger than this are rendered tile by tile
TILED_RENDER_PIXELS = 8_000_000
TILE_SIZE = 512

# snapshot / gif
MAX_FRAMES = 25
GIF_MAX_PIXELS = 1_000_000
GIF_FRAME_MS = 300
GIF_FINAL_FRAME_MS = 3000

# threshold search
TUNER_TOLERANCE = 0.05
TUNER_MAX_ITERATIONS = 8
TUNER_SEARCH_FACTOR = 2

DEFAULT_METHOD = ErrorMethod.VARIANCE
DEFAULT_THRESHOLD = 100.0
DEFAULT_MIN_BLOCK_SIZE = 4


@dataclass
class CompressionParams:
    method: ErrorMethod = DEFAULT_METHOD
    threshold: float = DEFAULT_THRESHOLD
    min_block_size: int = DEFAULT_MIN_BLOCK_SIZE
    target_ratio: float = 0.0  # 0 = keep the threshold as given
    capture_frames: bool = False
    workers: int = 1
    tuner_iterations: int = TUNER_MAX_ITERATIONS
    tuner_tolerance: float = TUNER_TOLERANCE
    tuner_search_factor: int = TUNER_SEARCH_FACTOR

    @classmethod
    def create(cls, method: Union[ErrorMethod, int, str] = DEFAULT_METHOD, **kwargs) -> "CompressionParams":
        params = cls(method=ErrorMethod.parse(method), **kwargs)
        params.validate()
        return params

    @property
    def auto_threshold(self) -> bool:
        return self.target_ratio > 0

    def validate(self) -> "CompressionParams":
        self.method = ErrorMethod.parse(self.method)
        if not self.threshold > 0:
            raise InvalidParameterError(f"threshold must be positive, got {self.threshold}")
        if int(self.min_block_size) != self.min_block_size or self.min_block_size < 1:
            raise InvalidParameterError(f"minimum block size must be an integer >= 1, got {self.min_block_size}")
        if not 0.0 <= self.target_ratio <= 1.0:
            raise InvalidParameterError(f"target compression ratio must be within [0, 1], got {self.target_ratio}")
        if self.workers < 1:
            raise InvalidParameterError(f"workers must be >= 1, got {self.workers}")
        if self.tuner_iterations < 1:
            raise InvalidParameterError("tuner needs at least one iteration")
        if self.tuner_search_factor < 1:
            raise InvalidParameterError("tuner search factor must be >= 1")
        self.min_block_size = int(self.min_block_size)
        return self
