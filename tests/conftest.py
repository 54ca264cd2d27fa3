"""
Pytest configuration and shared fixtures for test isolation.
"""
import time

import pytest

from alignengine.api import Engine
from alignengine.config import Configuration
from alignengine.graph import ConnectionEdge, TableScorer
from alignengine.history import ResultHistory


# Environment overrides leak into Configuration defaults
@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ALIGNENGINE_STRICT", "ALIGNENGINE_TOLERANCE", "ALIGNENGINE_MARGIN_RATE"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def config():
    return Configuration()


@pytest.fixture
def table_scorer():
    """Fixed edges for "alpha and gamma meet delta"."""
    return TableScorer({
        "alpha": [("gamma", 0.9, 1), ("delta", 0.3, 2)],
        "gamma": [("delta", 0.7, 1)],
        "delta": [("alpha", 0.5, 4)],
    })


@pytest.fixture
def history():
    return ResultHistory()


@pytest.fixture
def engine(table_scorer, history):
    eng = Engine(scorer=table_scorer, sinks=[history])
    eng.initialize()
    return eng


@pytest.fixture
def make_edges():
    def _make(strengths, jump=1):
        ts = time.time()
        return [
            ConnectionEdge(f"c{i}", f"c{i + 1}", s, jump, ts)
            for i, s in enumerate(strengths)
        ]
    return _make
