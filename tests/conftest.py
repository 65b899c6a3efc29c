"""
Pytest configuration for export engine tests.

Shared fixtures; surface and renderer fakes live in tests/fakes.py.
"""

import pytest

from roadmap_export.config.loader import ExportSettings
from roadmap_export.core.overlay import InMemoryOverlayHost
from roadmap_export.core.sinks import MemorySink


@pytest.fixture
def settings():
    """Default settings without the settle delay."""
    return ExportSettings(settle_delay_ms=0)


@pytest.fixture
def overlay_host():
    return InMemoryOverlayHost()


@pytest.fixture
def sink():
    return MemorySink()
