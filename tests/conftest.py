"""Pytest configuration and shared fixtures for ov-core tests."""

import pytest

import ov_config
import ov_content
import ov_style
import ov_width
from ov_config import CoreConfig
from ov_model import Model


def reset_defaults():
    """Drop the lazily created shared parser, resolver and calculator."""
    ov_content._default_parser = None
    ov_style._default_resolver = None
    ov_width._default_calculator = None


@pytest.fixture(autouse=True)
def reset_config():
    """Restore default configuration and drop state left by a test."""
    yield
    ov_config._manager._callbacks.clear()
    ov_config.reload_config(CoreConfig())
    reset_defaults()


@pytest.fixture
def model():
    """Empty model, closed after the test."""
    m = Model()
    yield m
    m.close(timeout=1.0)


def make_model(lines):
    """Model pre-filled with lines and EOF marked."""
    m = Model()
    for line in lines:
        m.append_line(line)
    m.mark_eof()
    return m


def chars(lc):
    """Main characters of a cell list, placeholders as ''."""
    return [chr(c.mainc) if c.mainc else '' for c in lc]
