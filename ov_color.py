#!/usr/bin/env python3
"""
OV Core - Color Mapping Module
==============================
Copyright (c) 2025 PNGN-Tec LLC

Color System
============
Maps ANSI color numbers and 24-bit triples to portable color strings:
- Indices 0-15: named 16-color palette ("black" ... "white")
- Indices 16-231: 6x6x6 color cube as "#rrggbb"
- Indices 232-255: 24-step grayscale ramp as "#rrggbb"
- 24-bit: direct "#rrggbb"

An empty string means "unset" and lets the terminal default show through.
All functions are pure.
"""

import re
from typing import Tuple, Optional

# Type alias for RGB colors
RGBColor = Tuple[int, int, int]

# ============================================================================
# ANSI 16-COLOR PALETTE
# ============================================================================

ANSI_16_COLORS = {
    # Normal (0-7)
    0: {'name': 'black', 'rgb': (0, 0, 0)},
    1: {'name': 'maroon', 'rgb': (128, 0, 0)},
    2: {'name': 'green', 'rgb': (0, 128, 0)},
    3: {'name': 'olive', 'rgb': (128, 128, 0)},
    4: {'name': 'navy', 'rgb': (0, 0, 128)},
    5: {'name': 'purple', 'rgb': (128, 0, 128)},
    6: {'name': 'teal', 'rgb': (0, 128, 128)},
    7: {'name': 'silver', 'rgb': (192, 192, 192)},

    # Bright (8-15)
    8: {'name': 'gray', 'rgb': (128, 128, 128)},
    9: {'name': 'red', 'rgb': (255, 0, 0)},
    10: {'name': 'lime', 'rgb': (0, 255, 0)},
    11: {'name': 'yellow', 'rgb': (255, 255, 0)},
    12: {'name': 'blue', 'rgb': (0, 0, 255)},
    13: {'name': 'fuchsia', 'rgb': (255, 0, 255)},
    14: {'name': 'aqua', 'rgb': (0, 255, 255)},
    15: {'name': 'white', 'rgb': (255, 255, 255)},
}

_NAME_TO_RGB = {entry['name']: entry['rgb'] for entry in ANSI_16_COLORS.values()}

_HEX_COLOR = re.compile(r'^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$')


def lookup_color(color_number: int) -> str:
    """Named color for 0-15; anything else falls back to black."""
    entry = ANSI_16_COLORS.get(color_number)
    if entry is None:
        return ANSI_16_COLORS[0]['name']
    return entry['name']


def rgb_hex(red: int, green: int, blue: int) -> str:
    """Format a 24-bit color as "#rrggbb", clamping each component to 0-255."""
    red, green, blue = (max(0, min(255, c)) for c in (red, green, blue))
    return f"#{red:02x}{green:02x}{blue:02x}"


def color_name(color_number: int) -> str:
    """
    Convert an ANSI 256-color index to a color string.

    Args:
        color_number: Palette index

    Returns:
        Named color, "#rrggbb", or "" for indices above 255

    Examples:
        >>> color_name(1)
        'maroon'
        >>> color_name(196)
        '#ff0000'
        >>> color_name(244)
        '#858585'
    """
    if color_number <= 15:
        return lookup_color(color_number)
    if color_number <= 231:
        red = (color_number - 16) // 36
        green = ((color_number - 16) // 6) % 6
        blue = (color_number - 16) % 6
        return rgb_hex(255 * red // 5, 255 * green // 5, 255 * blue // 5)
    if color_number <= 255:
        grey = 255 * (color_number - 232) // 23
        return rgb_hex(grey, grey, grey)
    return ""


def color_to_rgb(color: str) -> Optional[RGBColor]:
    """
    Convert a color string produced by this module back to an RGB tuple.

    Returns None for "" (unset) and for strings that are neither a
    palette name nor "#rrggbb".
    """
    if not color:
        return None
    rgb = _NAME_TO_RGB.get(color.lower())
    if rgb is not None:
        return rgb
    match = _HEX_COLOR.match(color)
    if match is None:
        return None
    return tuple(int(part, 16) for part in match.groups())
