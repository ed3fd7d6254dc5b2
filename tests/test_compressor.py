import math

import numpy as np
import pytest
from PIL import Image

from qtcompress.compressor import ImageCompressor, load_image, save_image
from qtcompress.exceptions import ImageIOError, InvalidParameterError
from qtcompress.metrics import ErrorMethod
from qtcompress.params import CompressionParams


@pytest.fixture
def gradient_png(tmp_path, gradient):
    path = tmp_path / "in.png"
    Image.fromarray(gradient).save(path)
    return path


def test_compress_array_uniform(uniform4):
    res = ImageCompressor(CompressionParams.create("mad", threshold=1.0, min_block_size=1)).compress_array(uniform4)
    assert np.array_equal(res.image, uniform4)
    assert math.isinf(res.psnr)
    assert res.tree.node_count == 1
    assert res.tuning is None
    assert res.frames == []


def test_compress_array_with_target_ratio(gradient):
    params = CompressionParams.create(ErrorMethod.VARIANCE, threshold=10.0, min_block_size=2, target_ratio=0.9)
    res = ImageCompressor(params).compress_array(gradient)
    assert res.tuning is not None
    assert res.threshold == res.tuning.threshold
    assert res.tree.threshold == res.threshold
    assert res.image.shape == gradient.shape


def test_compress_files(tmp_path, gradient_png, gradient):
    out = tmp_path / "nested" / "out.png"
    params = CompressionParams.create("variance", threshold=50.0, min_block_size=2)
    stats = ImageCompressor(params).compress(gradient_png, out)
    assert out.is_file()
    assert load_image(out).shape == gradient.shape
    assert stats.original_size == gradient_png.stat().st_size
    assert stats.compressed_size == out.stat().st_size
    assert stats.node_count >= 1
    assert stats.threshold == 50.0
    assert stats.psnr > 0
    assert "Number of nodes" in stats.summary()


def test_compress_with_gif(tmp_path, gradient_png):
    out = tmp_path / "out.bmp"
    gif = tmp_path / "gif" / "steps.gif"
    params = CompressionParams.create("max_diff", threshold=10.0, min_block_size=1)
    ImageCompressor(params).compress(gradient_png, out, gif_path=gif)
    assert out.is_file()
    with Image.open(gif) as img:
        assert img.format == "GIF"


def test_missing_input(tmp_path):
    with pytest.raises(ImageIOError):
        ImageCompressor(CompressionParams()).compress(tmp_path / "nope.png", tmp_path / "out.png")


def test_unreadable_input(tmp_path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"not an image")
    with pytest.raises(ImageIOError):
        load_image(bad)


def test_unknown_output_format(tmp_path, gradient):
    with pytest.raises(ImageIOError):
        save_image(gradient, tmp_path / "out.unknownext")


@pytest.mark.parametrize("kwargs", [
    {"threshold": 0.0},
    {"threshold": -5.0},
    {"min_block_size": 0},
    {"target_ratio": 1.5},
    {"workers": 0},
])
def test_invalid_params(kwargs):
    with pytest.raises(InvalidParameterError):
        CompressionParams.create("variance", **kwargs)


def test_params_defaults():
    params = CompressionParams.create()
    assert params.method is ErrorMethod.VARIANCE
    assert not params.auto_threshold
    assert CompressionParams.create(target_ratio=0.5).auto_threshold
