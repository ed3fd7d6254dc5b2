import numpy as np
import pytest
from PIL import Image

from qtcompress.exceptions import InvalidParameterError
from qtcompress.gif import annotate_frame, save_gif, select_frames


def frames(n, size=(8, 8)):
    return [np.full((size[1], size[0], 3), i * 5, dtype=np.uint8) for i in range(n)]


def test_select_frames_keeps_ends():
    fs = frames(40)
    chosen = select_frames(fs, 25)
    assert len(chosen) <= 25
    assert chosen[0] is fs[0]
    assert chosen[-1] is fs[-1]


@pytest.mark.parametrize("limit", [2, 3, 7])
def test_select_frames_honours_limit(limit):
    fs = frames(20)
    chosen = select_frames(fs, limit)
    assert len(chosen) == limit
    assert chosen[0] is fs[0] and chosen[-1] is fs[-1]


@pytest.mark.parametrize("limit", [0, 1])
def test_select_frames_rejects_tiny_limit(limit):
    with pytest.raises(InvalidParameterError):
        select_frames(frames(5), limit)


def test_select_frames_short_sequences_untouched():
    fs = frames(5)
    assert select_frames(fs, 25) == fs


def test_annotate_frame_draws_box():
    img = Image.new("RGB", (320, 120), (255, 255, 255))
    out = annotate_frame(img, 0, 3)
    assert out.size == img.size
    assert out.getpixel((15, 15)) != (255, 255, 255)


def test_annotate_skips_small_frames():
    img = Image.new("RGB", (16, 16))
    assert annotate_frame(img, 1, 3) is img


def test_save_gif(tmp_path):
    path = tmp_path / "out.gif"
    written = save_gif(frames(30), path, max_frames=10)
    assert written == 10
    with Image.open(path) as img:
        assert img.format == "GIF"
        assert img.size == (8, 8)


def test_save_gif_scales_large_frames(tmp_path):
    path = tmp_path / "big.gif"
    save_gif(frames(3, size=(200, 100)), path, max_pixels=5000, annotate=False)
    with Image.open(path) as img:
        assert img.size == (100, 50)


def test_save_gif_needs_frames(tmp_path):
    with pytest.raises(InvalidParameterError):
        save_gif([], tmp_path / "x.gif")
