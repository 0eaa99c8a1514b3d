#!/usr/bin/env python3
"""
OV Core - Line Buffer Model
===========================
Copyright (c) 2025 PNGN-Tec LLC

Lazy Line Storage
=================
Holds the raw lines read so far, the number of lines and the end-of-input
flag, and hands out parsed cells for any line on demand.

Concurrency Model
=================
- One producer (read_all() and its reader thread) appends lines and marks
  EOF; any number of consumers read concurrently
- Buffer, line count and EOF flag share a single lock that is only held
  for bookkeeping, never while a line is parsed
- Parsed cells live in a ContentCache with its own lock; a cached entry
  remembers the tab width it was parsed with and is ignored for any other

Errors
======
- OutOfRangeError: line number outside [0, line_count())
- FatalCacheError: the cache holds something that is not a parsed line;
  this is a bug (another writer sharing the cache), not a runtime condition
"""

import threading
import logging
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, NamedTuple, Optional, Tuple, Union

from ov_cache import ContentCache
from ov_config import (
    CoreConfig, get_model_config,
    register_config_callback, unregister_config_callback,
)
from ov_content import Content, ContentParser

# Configure logging
logger = logging.getLogger('ov_model')

_END = object()

# Parsed cells as handed to readers
SharedContents = Tuple[Content, ...]

# ============================================================================
# ERRORS
# ============================================================================

class ModelError(Exception):
    """Base class for line buffer errors."""


class OutOfRangeError(ModelError, IndexError):
    """Requested line is not in the buffer."""


class FatalCacheError(ModelError):
    """Content cache entry has an unexpected type."""


class CachedLine(NamedTuple):
    """Cache value: parsed cells and the tab width they were parsed with."""
    tab_width: int
    contents: SharedContents


def _normalize_line(line: Union[str, bytes]) -> str:
    if isinstance(line, bytes):
        line = line.decode('utf-8', errors='replace')
    if line.endswith('\n'):
        line = line[:-1]
    if line.endswith('\r'):
        line = line[:-1]
    return line


# ============================================================================
# MODEL
# ============================================================================

class Model:
    """
    Growing buffer of raw lines with cached, lazily parsed contents.

    Example:
        >>> model = Model()
        >>> model.read_all(["hello\\n", "\\x1b[1mworld\\x1b[0m\\n"])
        >>> model.line_count()
        2
        >>> [chr(c.mainc) for c in model.line_contents_at(1, 8)]
        ['w', 'o', 'r', 'l', 'd']
    """

    def __init__(self,
                 cache: Optional[ContentCache] = None,
                 parser: Optional[ContentParser] = None):
        """
        Initialize model.

        Args:
            cache: Parsed content cache (a new one from config if None)
            parser: Line parser (a new one if None)
        """
        self._buffer = []
        self._end_num = 0
        self._eof = False
        self._lock = threading.Lock()
        self._eof_event = threading.Event()
        self._reader_thread = None

        self.cache = cache if cache is not None else ContentCache()
        self.parser = parser if parser is not None else ContentParser()

        register_config_callback(self._on_config_change)

        logger.info("Model initialized")

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def append_line(self, text: str):
        """Append one raw line (without its newline)."""
        with self._lock:
            self._buffer.append(text)
            self._end_num += 1

    def mark_eof(self):
        """Record that no more lines will be appended. Idempotent."""
        with self._lock:
            if self._eof:
                return
            self._eof = True
            count = self._end_num
        self._eof_event.set()
        logger.debug(f"EOF reached after {count} lines")

    def read_all(self, stream: Iterable[Union[str, bytes]],
                 before_size: Optional[int] = None) -> Optional[threading.Thread]:
        """
        Read lines from stream into the buffer.

        The first before_size lines are read before returning so the first
        screen can be drawn at once; the rest is read by a daemon thread.
        EOF is marked when the stream is exhausted or fails.

        Args:
            stream: Iterable of lines, str or bytes (decoded as UTF-8)
            before_size: Lines to read synchronously (uses config if None)

        Returns:
            The reader thread, or None if the stream ended synchronously

        Raises:
            Whatever the stream raises while being read synchronously
        """
        if before_size is None:
            before_size = get_model_config().before_size

        lines = iter(stream)
        try:
            for line in islice(lines, before_size):
                self.append_line(_normalize_line(line))
            following = next(lines, _END)
        except Exception as e:
            logger.error(f"Read failed after {self.line_count()} lines: {e}")
            self.mark_eof()
            raise

        if following is _END:
            self.mark_eof()
            return None

        self.append_line(_normalize_line(following))
        thread = threading.Thread(
            target=self._read_rest, args=(lines,),
            name='ov-reader', daemon=True,
        )
        self._reader_thread = thread
        thread.start()
        return thread

    def _read_rest(self, lines: Iterator[Union[str, bytes]]):
        try:
            for line in lines:
                self.append_line(_normalize_line(line))
        except Exception as e:
            logger.error(f"Background read failed after {self.line_count()} lines: {e}")
        finally:
            self.mark_eof()

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def get_line(self, line_num: int) -> str:
        """Raw line at line_num, or "" when out of range."""
        with self._lock:
            if line_num < 0 or line_num >= len(self._buffer):
                return ""
            return self._buffer[line_num]

    def line_count(self) -> int:
        """Number of lines read so far."""
        with self._lock:
            return self._end_num

    def is_eof(self) -> bool:
        with self._lock:
            return self._eof

    def wait_eof(self, timeout: Optional[float] = None) -> bool:
        """Block until EOF or timeout; returns whether EOF was reached."""
        return self._eof_event.wait(timeout)

    def line_contents_at(self, line_num: int, tab_width: int) -> SharedContents:
        """
        Parsed cells of one line, from the cache when possible.

        The returned tuple is shared with other readers of the same line.

        Raises:
            OutOfRangeError: line_num outside [0, line_count())
            FatalCacheError: cache entry of unexpected type
        """
        if line_num < 0 or line_num >= self.line_count():
            raise OutOfRangeError(f"line {line_num} out of range [0, {self.line_count()})")

        value, found = self.cache.get(line_num)
        if found:
            if not isinstance(value, CachedLine):
                raise FatalCacheError(
                    f"cache entry for line {line_num} is {type(value).__name__}, not CachedLine"
                )
            if value.tab_width == tab_width:
                return value.contents

        lc = tuple(self.parser.parse(self.get_line(line_num), tab_width))
        self.cache.set(line_num, CachedLine(tab_width, lc), 1)
        return lc

    def get_contents(self, line_num: int, tab_width: int) -> SharedContents:
        """Like line_contents_at() but returns () for out-of-range lines."""
        try:
            return self.line_contents_at(line_num, tab_width)
        except OutOfRangeError:
            return ()

    def clear_cache(self):
        """Drop all parsed contents (e.g. after a tab width change)."""
        self.cache.clear()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _on_config_change(self, old_config: CoreConfig, new_config: CoreConfig):
        """Handle configuration changes"""
        if old_config.parser.tab_width != new_config.parser.tab_width:
            self.clear_cache()
            logger.info(f"Tab width changed {old_config.parser.tab_width} -> "
                       f"{new_config.parser.tab_width}, content cache cleared")
        if old_config.cache.max_cost != new_config.cache.max_cost:
            self.cache.set_max_cost(new_config.cache.max_cost)

    def close(self, timeout: Optional[float] = None):
        """Stop listening for configuration changes and join the reader."""
        unregister_config_callback(self._on_config_change)

        thread = self._reader_thread
        if thread is not None and thread.is_alive():
            if timeout is None:
                timeout = get_model_config().reader_join_timeout
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Reader thread did not finish before close")

    def get_stats(self) -> Dict[str, Any]:
        """Line count, EOF state and cache statistics."""
        with self._lock:
            stats = {
                'lines': self._end_num,
                'eof': self._eof,
            }
        stats['cache'] = self.cache.get_stats()
        return stats
