# tests/unit/application/use_cases/conftest.py
from __future__ import annotations

import pytest
from rulebook_fakes import FakeWorld, RecordingObserver


@pytest.fixture
def world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()
