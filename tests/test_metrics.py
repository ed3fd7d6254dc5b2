import numpy as np
import pytest

from qtcompress.exceptions import InvalidParameterError
from qtcompress.metrics import SSIM_C2, ErrorMethod, average_color, block_error, describe_methods, measure_block
from qtcompress.quadtree_core import Region


def two_pixels(a, b):
    img = np.zeros((1, 2, 3), dtype=np.uint8)
    img[0, 0] = a
    img[0, 1] = b
    return img


def test_average_color_truncates():
    img = two_pixels((0, 0, 0), (1, 3, 255))
    assert average_color(img, Region(0, 0, 2, 1)) == (0, 1, 127)


@pytest.mark.parametrize("method", list(ErrorMethod))
def test_uniform_block_has_no_error(uniform4, method):
    avg, err = measure_block(uniform4, Region(0, 0, 4, 4), method)
    assert avg == (40, 120, 200)
    assert err == 0


@pytest.mark.parametrize("method", list(ErrorMethod))
def test_single_pixel_region(noise, method):
    assert block_error(noise, Region(3, 5, 1, 1), method) == 0


def test_known_values():
    img = two_pixels((0, 0, 0), (10, 10, 10))
    r = Region(0, 0, 2, 1)
    assert block_error(img, r, ErrorMethod.VARIANCE) == pytest.approx(25.0)
    assert block_error(img, r, ErrorMethod.MAD) == pytest.approx(5.0)
    assert block_error(img, r, ErrorMethod.MAX_DIFF) == pytest.approx(10.0)
    assert block_error(img, r, ErrorMethod.ENTROPY) == pytest.approx(1.0)
    assert block_error(img, r, ErrorMethod.SSIM) == pytest.approx(1 - SSIM_C2 / (25.0 + SSIM_C2))


def test_max_diff_does_not_overflow():
    img = two_pixels((0, 255, 0), (255, 0, 0))
    assert block_error(img, Region(0, 0, 2, 1), ErrorMethod.MAX_DIFF) == pytest.approx(170.0)


def test_entropy_of_four_distinct_values():
    img = np.zeros((2, 2, 3), dtype=np.uint8)
    img[..., 0] = [[0, 1], [2, 3]]
    img[..., 1] = [[5, 6], [7, 8]]
    img[..., 2] = [[9, 9], [9, 9]]
    # (2 + 2 + 0) / 3
    assert block_error(img, Region(0, 0, 2, 2), ErrorMethod.ENTROPY) == pytest.approx(4 / 3)


@pytest.mark.parametrize("method", list(ErrorMethod))
def test_errors_stay_within_method_bound(noise, method):
    err = block_error(noise, Region(0, 0, 23, 37), method)
    assert 0 <= err <= method.max_error


def test_ssim_is_bounded_and_grows_with_spread():
    low = two_pixels((100, 100, 100), (104, 104, 104))
    high = two_pixels((0, 0, 0), (200, 200, 200))
    r = Region(0, 0, 2, 1)
    a = block_error(low, r, ErrorMethod.SSIM)
    b = block_error(high, r, ErrorMethod.SSIM)
    assert 0 < a < b < 1


def test_zero_area_region_rejected(uniform4):
    with pytest.raises(InvalidParameterError):
        block_error(uniform4, Region(0, 0, 0, 2), ErrorMethod.VARIANCE)


@pytest.mark.parametrize("value,expected", [
    ("variance", ErrorMethod.VARIANCE),
    ("MAD", ErrorMethod.MAD),
    ("max-diff", ErrorMethod.MAX_DIFF),
    (4, ErrorMethod.ENTROPY),
    ("5", ErrorMethod.SSIM),
    (ErrorMethod.MAD, ErrorMethod.MAD),
])
def test_parse_method(value, expected):
    assert ErrorMethod.parse(value) is expected


@pytest.mark.parametrize("value", ["bogus", 0, "6", ""])
def test_parse_unknown_method(value):
    with pytest.raises(InvalidParameterError):
        ErrorMethod.parse(value)


def test_describe_methods_lists_all():
    text = describe_methods()
    for m in ErrorMethod:
        assert f"{m.id}. {m.label}" in text
    assert ErrorMethod.ENTROPY.hint == "Suggested range: 0.1-5"
