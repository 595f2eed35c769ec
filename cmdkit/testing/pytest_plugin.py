from __future__ import annotations

from collections.abc import Iterator

import pytest

from cmdkit.application.process_factory import Factory


@pytest.fixture
def process_factory() -> Iterator[Factory]:
    """A recording factory that refuses to spawn unfaked processes."""
    factory = Factory().prevent_stray_processes()
    yield factory
    factory.reset()
