import pytest

from amaru_beacon.services import node as node_module


@pytest.fixture(autouse=True)
def reset_native_logging(monkeypatch):
    monkeypatch.setattr(node_module, "_logging_initialized", False)
