#!/usr/bin/env python3
"""
OV Core - Width Calculation Module
==================================
Copyright (c) 2025 PNGN-Tec LLC

Cell Width Calculation System
=============================
Terminal column width of individual code points, the measurement the line
parser uses to decide whether a character occupies one cell, two cells, or
attaches to the previous cell as a combining mark.

Core Features
=============
- Unicode-aware width via wcwidth (CJK, emoji, combining marks)
- Control characters folded to zero width
- Thread-safe per-codepoint cache with a size bound
- Pre-seeded cache for ASCII and combining mark ranges

Module Interface
================
- WidthCalculator: Main class with caching and statistics
- char_width(): Width of one code point using the default calculator
- get_width(): Width of a string using the default calculator
- clear_default_cache(): Clear the default calculator cache

Example Usage
=============
```python
from ov_width import char_width, get_width

char_width(ord("a"))      # 1
char_width(ord("你"))     # 2
char_width(0x0301)        # 0 (combining acute accent)
get_width("你好")          # 4
```
"""

import threading
import logging
from typing import Optional, Dict, Union
from collections import OrderedDict

from wcwidth import wcwidth

from ov_config import get_parser_config

# Configure logging
logger = logging.getLogger('ov_width')


class WidthCalculator:
    """
    Thread-safe code point width calculator with caching.

    Widths are always 0, 1 or 2. wcwidth reports -1 for control
    characters; those are treated as zero width so that the parser
    handles them like any other non-advancing code point.

    Cache Behavior:
    - Static seed table for ASCII and combining marks (never evicted)
    - LRU cache for everything else, bounded by cache_size
    """

    def __init__(self, cache_size: Optional[int] = None):
        """
        Initialize width calculator.

        Args:
            cache_size: Maximum number of cached code points beyond the
                static seed table (uses config if None)
        """
        if cache_size is None:
            cache_size = get_parser_config().width_cache_size

        self._cache_size = cache_size
        self._seed = self._build_codepoint_cache()
        self._cache = OrderedDict()
        self._lock = threading.Lock()

        self.stats = {
            'cache_hits': 0,
            'cache_misses': 0,
            'calculations': 0,
            'cache_evictions': 0,
        }

        logger.info(f"WidthCalculator initialized with cache_size={cache_size}")

    def char_width(self, codepoint: int) -> int:
        """
        Get display width of a single code point in terminal columns.

        Args:
            codepoint: Unicode code point

        Returns:
            0, 1 or 2
        """
        width = self._seed.get(codepoint)
        if width is not None:
            return width

        with self._lock:
            width = self._cache.get(codepoint)
            if width is not None:
                self._cache.move_to_end(codepoint)
                self.stats['cache_hits'] += 1
                return width
            self.stats['cache_misses'] += 1

        width = self._calculate(codepoint)

        with self._lock:
            self.stats['calculations'] += 1
            self._cache[codepoint] = width
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
                self.stats['cache_evictions'] += 1

        return width

    def get_width(self, text: str) -> int:
        """
        Get visual width of text, ignoring control characters.

        Args:
            text: Text to measure

        Returns:
            Visual width in columns
        """
        return sum(self.char_width(ord(char)) for char in text)

    @staticmethod
    def _calculate(codepoint: int) -> int:
        try:
            width = wcwidth(chr(codepoint))
        except ValueError:
            # Surrogates and out-of-range values
            return 0
        if width < 0:
            return 0
        return min(width, 2)

    @staticmethod
    def _build_codepoint_cache() -> Dict[int, int]:
        """
        Build cache for common codepoints.

        Returns:
            Dictionary mapping codepoint to width
        """
        cache = {}

        # ASCII printable characters
        for code in range(32, 127):
            cache[code] = 1

        # Common zero-width characters
        zero_width_ranges = [
            (0x0300, 0x036F),  # Combining diacritical marks
            (0x1AB0, 0x1AFF),  # Combining diacritical marks extended
            (0x1DC0, 0x1DFF),  # Combining diacritical marks supplement
            (0x20D0, 0x20FF),  # Combining diacritical marks for symbols
            (0xFE20, 0xFE2F),  # Combining half marks
        ]

        for start, end in zero_width_ranges:
            for code in range(start, end + 1):
                cache[code] = 0

        # Control characters
        for code in range(0, 32):
            cache[code] = 0
        for code in range(0x7F, 0xA0):
            cache[code] = 0

        return cache

    def clear_cache(self):
        """Clear all cached widths (the static seed table is kept)."""
        with self._lock:
            self._cache.clear()

    def get_stats(self) -> Dict[str, Union[int, float]]:
        """
        Get calculator statistics.

        Returns:
            Dictionary of statistics including hit rate and cache size
        """
        with self._lock:
            stats = self.stats.copy()
            stats['cache_entries'] = len(self._cache)

        total_requests = stats['cache_hits'] + stats['cache_misses']
        if total_requests > 0:
            stats['cache_hit_rate'] = stats['cache_hits'] / total_requests
        else:
            stats['cache_hit_rate'] = 0.0

        return stats


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_calculator = None
_calculator_lock = threading.Lock()

def get_default_calculator() -> WidthCalculator:
    """Return the shared calculator, creating it on first use."""
    global _default_calculator

    if _default_calculator is None:
        with _calculator_lock:
            if _default_calculator is None:
                _default_calculator = WidthCalculator()

    return _default_calculator


def char_width(codepoint: int) -> int:
    """
    Get display width of one code point using the default calculator.

    Example:
        >>> char_width(ord("A"))
        1
        >>> char_width(ord("你"))
        2
    """
    return get_default_calculator().char_width(codepoint)


def get_width(text: str) -> int:
    """
    Get visual width of text using the default calculator.

    Example:
        >>> get_width("Hello")
        5
        >>> get_width("你好")
        4
    """
    return get_default_calculator().get_width(text)


def clear_default_cache():
    """Clear the default calculator's cache."""
    if _default_calculator is not None:
        _default_calculator.clear_cache()
