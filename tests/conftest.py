# tests/conftest.py
from __future__ import annotations

import pytest

from seqclass.registry import discover
from seqclass.runtime import reset


@pytest.fixture(autouse=True)
def _isolated_workspace(tmp_path, monkeypatch):
    """Every test gets its own workspace and a fresh runtime."""
    monkeypatch.setenv("SEQCLASS_HOME", str(tmp_path / "ws"))
    reset()
    yield
    reset()


@pytest.fixture(scope="session")
def index():
    """Packaged predicates, discovered once."""
    return discover()
