from __future__ import annotations

from collections.abc import Iterator

import pytest

from pyrelcache.registry import reset_all


@pytest.fixture(autouse=True)
def _isolated_namespaces() -> Iterator[None]:
    reset_all()
    yield
    reset_all()
