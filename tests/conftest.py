from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    # main() reconfigures structlog with a level filter; keep tests independent.
    yield
    structlog.reset_defaults()
