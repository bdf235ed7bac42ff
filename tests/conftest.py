"""
Shared fixtures for the vector core test suite.
"""

import pytest

from vectorcore.core import config

from helpers import make_chunk


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the durable store at a temporary directory."""
    monkeypatch.setattr(config, "DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def chunks():
    return [make_chunk(i) for i in range(7)]
