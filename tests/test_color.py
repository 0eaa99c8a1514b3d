"""Unit tests for ov_color."""

import pytest

from ov_color import ANSI_16_COLORS, color_name, color_to_rgb, lookup_color, rgb_hex


# ─── Palette ──────────────────────────────────────────────────────────────────


NAMED = [
    "black", "maroon", "green", "olive", "navy", "purple", "teal", "silver",
    "gray", "red", "lime", "yellow", "blue", "fuchsia", "aqua", "white",
]


@pytest.mark.parametrize("index,name", list(enumerate(NAMED)))
def test_low_indices_are_named(index, name):
    assert color_name(index) == name
    assert ANSI_16_COLORS[index]['name'] == name


def test_lookup_out_of_range_is_black():
    assert lookup_color(16) == "black"
    assert lookup_color(-3) == "black"
    assert color_name(-1) == "black"


# ─── 256-color cube and grey ramp ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "index,expected",
    [
        pytest.param(16, "#000000", id="cube-start"),
        pytest.param(231, "#ffffff", id="cube-end"),
        pytest.param(232, "#000000", id="grey-start"),
        pytest.param(255, "#ffffff", id="grey-end"),
        pytest.param(196, "#ff0000", id="cube-red"),
        pytest.param(21, "#0000ff", id="cube-blue"),
        pytest.param(67, "#336699", id="cube-mixed"),
        pytest.param(244, "#858585", id="grey-mid"),
    ],
)
def test_extended_indices(index, expected):
    assert color_name(index) == expected


def test_out_of_range_is_unset():
    assert color_name(256) == ""
    assert color_name(1000) == ""


# ─── 24-bit ───────────────────────────────────────────────────────────────────


def test_rgb_hex_formats_lowercase():
    assert rgb_hex(255, 128, 0) == "#ff8000"
    assert rgb_hex(1, 2, 3) == "#010203"


def test_rgb_hex_clamps_components():
    assert rgb_hex(300, -5, 16) == "#ff0010"


# ─── Reverse mapping ──────────────────────────────────────────────────────────


def test_color_to_rgb():
    assert color_to_rgb("maroon") == (128, 0, 0)
    assert color_to_rgb("#ff8000") == (255, 128, 0)
    assert color_to_rgb(color_name(231)) == (255, 255, 255)
    assert color_to_rgb("") is None
    assert color_to_rgb("not-a-color") is None
