#!/usr/bin/env python3
"""
OV Core - Line Content Parser
=============================
Copyright (c) 2025 PNGN-Tec LLC

Terminal Cell Model
===================
Converts one raw line of text into the cells a terminal would display:
one Content per screen column, in order, with escape sequences removed
and their styling applied.

Parsing Rules
=============
- Input is walked one grapheme cluster at a time, so combining marks stay
  with their base character
- ESC starts an escape; "CSI ... m" updates the style, other CSI commands,
  device control strings (ESC P/]/X/^/_) and "ESC c" are consumed
- Tabs expand to the next tab stop (tab_width > 0), render as a reversed
  "\\t" (tab_width < 0), or are dropped (tab_width == 0)
- Backspace implements overstrike: "A\\bA" is a bold A, "_\\bA" an
  underlined A
- A double-width character is followed by an empty placeholder cell so
  that cell index == screen column
- Escape state never carries over to the next line

Module Interface
================
- Content / LineContents: cell model
- ContentParser: parser with its own style resolver and width calculator
- str_to_contents(): parse with the shared default parser
- contents_to_str(): cells back to plain text plus a byte-offset map
"""

import threading
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

import grapheme

from ov_config import get_parser_config
from ov_style import Style, StyleResolver, DEFAULT_STYLE
from ov_width import WidthCalculator, get_default_calculator

# Configure logging
logger = logging.getLogger('ov_content')

# ============================================================================
# CELL MODEL
# ============================================================================

@dataclass(frozen=True)
class Content:
    """One character cell on the terminal."""
    mainc: int = 0
    combc: Tuple[int, ...] = ()
    width: int = 0
    style: Style = DEFAULT_STYLE


LineContents = List[Content]

# Blank cell, also used as the placeholder after a wide character
DEFAULT_CONTENT = Content()

# Drawn on rows past the end of input
EOF_CONTENT = Content(mainc=ord('~'), width=1, style=Style(foreground='gray'))

ESC = 0x1B


class ParseState(Enum):
    TEXT = "text"
    ESCAPE = "escape"
    SUBSTRING = "substring"
    CONTROL_SEQUENCE = "control_sequence"


# ESC P (DCS), ESC ] (OSC), ESC X (SOS), ESC ^ (PM), ESC _ (APC)
_SUBSTRING_INTRODUCERS = frozenset('P]X^_')


def _last_content(lc: LineContents) -> Tuple[int, Content]:
    """Index and value of the last base cell, skipping a wide placeholder."""
    n = len(lc)
    if n > 1 and lc[n - 2].width > 1:
        return n - 2, lc[n - 2]
    return n - 1, lc[n - 1]


# ============================================================================
# PARSER
# ============================================================================

class ContentParser:
    """
    Escape- and Unicode-aware line parser.

    A parser owns its StyleResolver (and the resolver's memo table) and
    may be shared between threads; parse() keeps all per-line state in
    local variables.
    """

    def __init__(self,
                 resolver: Optional[StyleResolver] = None,
                 width_calculator: Optional[WidthCalculator] = None,
                 overstrike_style: Optional[Style] = None,
                 overline_style: Optional[Style] = None):
        """
        Initialize parser.

        Args:
            resolver: SGR resolver (a new one if None)
            width_calculator: Code point width source (shared default if None)
            overstrike_style: Style for "X\\bX" (config overstrike_sgr if None)
            overline_style: Style for "_\\bX" (config overline_sgr if None)
        """
        parser_config = get_parser_config()

        self.resolver = resolver if resolver is not None else StyleResolver()
        self._width = width_calculator if width_calculator is not None else get_default_calculator()

        if overstrike_style is None:
            overstrike_style = self.resolver.resolve(DEFAULT_STYLE, parser_config.overstrike_sgr)
        if overline_style is None:
            overline_style = self.resolver.resolve(DEFAULT_STYLE, parser_config.overline_sgr)
        self.overstrike_style = overstrike_style
        self.overline_style = overline_style

        logger.info(f"ContentParser initialized: overstrike={overstrike_style}, "
                   f"overline={overline_style}")

    def parse(self, line: str, tab_width: int) -> LineContents:
        """
        Convert one line to cells.

        Args:
            line: Raw line, may contain escape sequences
            tab_width: Tab stop width (see module docstring)

        Returns:
            List of Content, one per screen column
        """
        lc: LineContents = []
        state = ParseState.TEXT
        params: List[str] = []
        style = DEFAULT_STYLE
        overstrike_pending = False
        overstruck = 0

        for cluster in grapheme.graphemes(line):
            char = cluster[0]
            codepoint = ord(char)

            if state is ParseState.ESCAPE:
                if char == '[':
                    params = []
                    state = ParseState.CONTROL_SEQUENCE
                    continue
                if char == 'c':
                    style = DEFAULT_STYLE
                    state = ParseState.TEXT
                    continue
                if char in _SUBSTRING_INTRODUCERS:
                    state = ParseState.SUBSTRING
                    continue
                # Unknown escape: drop the ESC, keep the character as text
                state = ParseState.TEXT
            elif state is ParseState.SUBSTRING:
                if codepoint == ESC:
                    params = []
                    state = ParseState.CONTROL_SEQUENCE
                continue
            elif state is ParseState.CONTROL_SEQUENCE:
                if char == 'm':
                    style = self.resolver.resolve(style, ''.join(params))
                elif 'A' <= char <= 'T':
                    pass
                elif 0x30 <= codepoint <= 0x3F:
                    params.append(char)
                    continue
                state = ParseState.TEXT
                continue

            if codepoint == ESC:
                state = ParseState.ESCAPE
                continue
            if char == '\n':
                continue

            width = self._width.char_width(codepoint)

            if width == 0:
                if char == '\t':
                    self._expand_tab(lc, style, tab_width)
                elif char == '\b':
                    if not lc:
                        continue
                    index, last = _last_content(lc)
                    overstrike_pending = True
                    overstruck = last.mainc
                    del lc[index:]
                elif lc:
                    index, last = _last_content(lc)
                    lc[index] = replace(last, combc=last.combc + tuple(ord(c) for c in cluster))
                continue

            cell_style = style
            if overstrike_pending:
                cell_style = self._overstrike(overstruck, codepoint, style)
                overstrike_pending = False
                overstruck = 0

            lc.append(Content(
                mainc=codepoint,
                combc=tuple(ord(c) for c in cluster[1:]),
                width=width,
                style=cell_style,
            ))
            if width == 2:
                lc.append(DEFAULT_CONTENT)

        return lc

    @staticmethod
    def _expand_tab(lc: LineContents, style: Style, tab_width: int):
        if tab_width > 0:
            tab_stop = tab_width - (len(lc) % tab_width)
            lc.append(Content(mainc=ord('\t'), width=1, style=style))
            fill = Content(mainc=0, width=1, style=style)
            lc.extend([fill] * (tab_stop - 1))
        elif tab_width < 0:
            reversed_style = style.with_reverse()
            lc.append(Content(mainc=ord('\\'), width=1, style=reversed_style))
            lc.append(Content(mainc=ord('t'), width=1, style=reversed_style))

    def _overstrike(self, previous: int, current: int, style: Style) -> Style:
        if previous == current:
            return self.overstrike_style
        if previous == ord('_'):
            return self.overline_style
        return style


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_parser = None
_parser_lock = threading.Lock()

def get_default_parser() -> ContentParser:
    """Return the shared parser, creating it on first use."""
    global _default_parser

    if _default_parser is None:
        with _parser_lock:
            if _default_parser is None:
                _default_parser = ContentParser()

    return _default_parser


def str_to_contents(line: str, tab_width: int) -> LineContents:
    """
    Convert a single-line string into one line of contents.

    Example:
        >>> [chr(c.mainc) for c in str_to_contents("\\x1b[31mok\\x1b[0m", 8)]
        ['o', 'k']
    """
    return get_default_parser().parse(line, tab_width)


def contents_to_str(lc: LineContents) -> Tuple[str, Dict[int, int]]:
    """
    Convert contents back to a plain string.

    Placeholder cells (mainc == 0) are skipped. The returned map takes
    the UTF-8 byte offset at which each cell's main character starts to
    that cell's index; the offset just past the end maps to len(lc).

    Returns:
        (text, byte offset -> cell index)
    """
    parts = []
    positions = {}
    offset = 0
    for index, content in enumerate(lc):
        if content.mainc == 0:
            continue
        positions[offset] = index
        text = chr(content.mainc) + ''.join(chr(c) for c in content.combc)
        parts.append(text)
        offset += len(text.encode('utf-8', errors='surrogatepass'))
    positions[offset] = len(lc)
    return ''.join(parts), positions
