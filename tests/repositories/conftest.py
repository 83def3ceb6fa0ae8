from __future__ import annotations

from typing import Iterator

import pytest
from repo_fakes import FakeRemote, FlakyStore


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def store() -> Iterator[FlakyStore]:
    s = FlakyStore()
    yield s
    s.close()
