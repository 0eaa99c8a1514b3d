#!/usr/bin/env python3
"""
OV Core - SGR Style Module
==========================
Copyright (c) 2025 PNGN-Tec LLC

Select Graphic Rendition Resolution
===================================
Translates the parameter string of an ANSI "CSI ... m" sequence into text
attributes and colors.

Core Features
=============
- Immutable Style record; new styles are always derived
- SGR parameters parsed once into a StyleDelta and memoized per string
- 16-color, 256-color and 24-bit foreground/background support
- Thread-safe bounded memo table owned by a resolver instance

Attribute Reset Codes
=====================
22 clears bold and dim, 23 italic, 24 underline, 25 blink, 27 reverse and
29 strikethrough. A "0" parameter (or an empty/";" string on its own)
clears everything.

Module Interface
================
- Style / DEFAULT_STYLE: resolved attribute record
- StyleDelta: parsed form of one parameter string
- parse_sgr(): parameter string to StyleDelta (no caching)
- StyleResolver: memoizing resolver
- resolve_style(): convenience wrapper over a shared resolver
"""

import threading
import logging
from dataclasses import dataclass, fields, replace
from typing import Optional, Dict, List, Tuple, Union
from collections import OrderedDict

from ov_color import color_name, rgb_hex
from ov_config import get_parser_config

# Configure logging
logger = logging.getLogger('ov_style')

# ============================================================================
# STYLE RECORDS
# ============================================================================

@dataclass(frozen=True)
class Style:
    """Resolved text attributes of one cell. Empty colors mean unset."""
    bold: bool = False
    dim: bool = False
    italic: bool = False
    underline: bool = False
    blink: bool = False
    reverse: bool = False
    strike_through: bool = False
    foreground: str = ""
    background: str = ""

    def apply(self, delta: 'StyleDelta') -> 'Style':
        """Return a new style with every assignment in delta applied."""
        changes = {
            f.name: getattr(delta, f.name)
            for f in fields(delta)
            if getattr(delta, f.name) is not None
        }
        if not changes:
            return self
        return replace(self, **changes)

    def with_reverse(self) -> 'Style':
        return replace(self, reverse=True)


DEFAULT_STYLE = Style()


@dataclass(frozen=True)
class StyleDelta:
    """
    Attribute assignments parsed from one SGR parameter string.

    None leaves the attribute of the base style untouched; any other
    value replaces it. A foreground/background of "" resets the color.
    """
    bold: Optional[bool] = None
    dim: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    blink: Optional[bool] = None
    reverse: Optional[bool] = None
    strike_through: Optional[bool] = None
    foreground: Optional[str] = None
    background: Optional[str] = None


_RESET_ALL = {
    'bold': False, 'dim': False, 'italic': False, 'underline': False,
    'blink': False, 'reverse': False, 'strike_through': False,
    'foreground': "", 'background': "",
}

# ============================================================================
# SGR TOKEN TABLES
# ============================================================================

_ATTRIBUTE_ON = {
    "1": 'bold', "01": 'bold',
    "2": 'dim', "02": 'dim',
    "3": 'italic', "03": 'italic',
    "4": 'underline', "04": 'underline',
    "5": 'blink', "05": 'blink',
    "6": 'blink', "06": 'blink',
    "7": 'reverse', "07": 'reverse',
    "8": 'reverse', "08": 'reverse',
    "9": 'strike_through', "09": 'strike_through',
}

_ATTRIBUTE_OFF = {
    "22": ('bold', 'dim'),
    "23": ('italic',),
    "24": ('underline',),
    "25": ('blink',),
    "27": ('reverse',),
    "29": ('strike_through',),
}

# token -> (attribute, palette offset)
_PALETTE_COLORS = {}
for _code in range(30, 38):
    _PALETTE_COLORS[str(_code)] = ('foreground', 30)
for _code in range(40, 48):
    _PALETTE_COLORS[str(_code)] = ('background', 40)
for _code in range(90, 98):
    _PALETTE_COLORS[str(_code)] = ('foreground', 82)
for _code in range(100, 108):
    _PALETTE_COLORS[str(_code)] = ('background', 92)

_EXTENDED_COLORS = {"38": 'foreground', "48": 'background'}


def _atoi(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        return 0


def _extended_color(tokens: List[str]) -> Tuple[int, str]:
    """
    Parse an 8-bit ("5;n") or 24-bit ("2;r;g;b") color.

    tokens starts at the "38"/"48" introducer. Returns the number of
    tokens consumed after the introducer and the color ("" if none).
    """
    if len(tokens) < 2:
        return 1, ""

    mode = tokens[1]
    if mode == "5" and len(tokens) > 2:
        return 2, color_name(_atoi(tokens[2]))
    if mode == "2" and len(tokens) > 4:
        red, green, blue = (_atoi(t) for t in tokens[2:5])
        return 4, rgb_hex(red, green, blue)
    return 1, ""


def parse_sgr(params: str) -> StyleDelta:
    """
    Parse a semicolon-delimited SGR parameter string.

    Unknown or malformed tokens are skipped; this never raises.

    Examples:
        >>> parse_sgr("1;31")
        StyleDelta(bold=True, dim=None, italic=None, underline=None, blink=None, reverse=None, strike_through=None, foreground='maroon', background=None)
    """
    changes = {}
    tokens = params.split(";")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token in ("0", "00"):
            changes.update(_RESET_ALL)
        elif token in _ATTRIBUTE_ON:
            changes[_ATTRIBUTE_ON[token]] = True
        elif token in _ATTRIBUTE_OFF:
            for name in _ATTRIBUTE_OFF[token]:
                changes[name] = False
        elif token in _PALETTE_COLORS:
            name, offset = _PALETTE_COLORS[token]
            changes[name] = color_name(int(token) - offset)
        elif token == "39":
            changes['foreground'] = ""
        elif token == "49":
            changes['background'] = ""
        elif token in _EXTENDED_COLORS:
            consumed, color = _extended_color(tokens[index:])
            if color:
                changes[_EXTENDED_COLORS[token]] = color
            index += consumed
        index += 1
    return StyleDelta(**changes)


# ============================================================================
# RESOLVER
# ============================================================================

class StyleResolver:
    """
    Memoizing SGR resolver.

    The memo maps the exact parameter string to its StyleDelta. It is
    bounded and guarded by a lock, so one resolver can be shared by any
    number of parsing threads.
    """

    def __init__(self, cache_size: Optional[int] = None):
        if cache_size is None:
            cache_size = get_parser_config().style_cache_size

        self._cache = OrderedDict()
        self._cache_size = cache_size
        self._lock = threading.Lock()

        self.stats = {
            'cache_hits': 0,
            'cache_misses': 0,
            'resets': 0,
        }

        logger.info(f"StyleResolver initialized with cache_size={cache_size}")

    def resolve(self, base: Style, params: str) -> Style:
        """
        Apply an SGR parameter string to base.

        Args:
            base: Style in effect before the sequence
            params: Characters between "CSI" and the final "m"

        Returns:
            The resulting style
        """
        if params in ("", "0", ";"):
            with self._lock:
                self.stats['resets'] += 1
            return DEFAULT_STYLE
        return base.apply(self.parse(params))

    def parse(self, params: str) -> StyleDelta:
        """Memoized parse_sgr()."""
        with self._lock:
            delta = self._cache.get(params)
            if delta is not None:
                self._cache.move_to_end(params)
                self.stats['cache_hits'] += 1
                return delta
            self.stats['cache_misses'] += 1

        delta = parse_sgr(params)

        with self._lock:
            self._cache[params] = delta
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)

        return delta

    def clear_cache(self):
        with self._lock:
            self._cache.clear()

    def get_stats(self) -> Dict[str, Union[int, float]]:
        with self._lock:
            stats = self.stats.copy()
            stats['cache_entries'] = len(self._cache)
        return stats


_default_resolver = None
_resolver_lock = threading.Lock()

def get_default_resolver() -> StyleResolver:
    """Return the shared resolver, creating it on first use."""
    global _default_resolver

    if _default_resolver is None:
        with _resolver_lock:
            if _default_resolver is None:
                _default_resolver = StyleResolver()

    return _default_resolver


def resolve_style(base: Style, params: str) -> Style:
    """Resolve params against base using the shared resolver."""
    return get_default_resolver().resolve(base, params)
