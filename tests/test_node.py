import pytest

from amaru_beacon.services.errors import (
    InvalidDataDirArg,
    InvalidNetworkArg,
    MalformedStatus,
    NodeUnavailable,
    PollError,
    RuntimeInitFailure,
    StartError,
    UnknownStartError,
    UnsupportedNetwork,
)
from amaru_beacon.services.node import NodeHandle
from tests.fakes import FakeNode, status_json


@pytest.mark.parametrize(
    "code,error_type,reason",
    [
        (-1, InvalidNetworkArg, "Failed to get network name"),
        (-2, InvalidDataDirArg, "Failed to get data directory"),
        (-3, UnsupportedNetwork, "Invalid network name"),
        (-4, RuntimeInitFailure, "Failed to create runtime"),
        (-6, UnknownStartError, "Unknown error: -6"),
        (7, UnknownStartError, "Unknown error: 7"),
    ],
)
def test_start_error_codes(code, error_type, reason):
    handle = NodeHandle(FakeNode(start_code=code))
    with pytest.raises(error_type) as info:
        handle.start("preprod", "/data")
    assert info.value.code == code
    assert info.value.reason == reason
    assert isinstance(info.value, StartError)
    assert handle.running is False


def test_start_passes_arguments_through():
    fake = FakeNode()
    handle = NodeHandle(fake)
    handle.start("preview", "/var/lib/amaru")
    assert fake.calls == [("start", "preview", "/var/lib/amaru")]
    assert handle.running is True


def test_status_requires_running_node():
    handle = NodeHandle(FakeNode())
    with pytest.raises(NodeUnavailable):
        handle.get_status()


def test_status_is_decoded():
    handle = NodeHandle(FakeNode(statuses=[status_json(slot=10, status="Syncing")]))
    handle.start("preprod", "/data")
    status = handle.get_status()
    assert status.slot == 10
    assert status.status == "Syncing"


def test_malformed_status():
    handle = NodeHandle(FakeNode(statuses=['{"slot": 1}']))
    handle.start("preprod", "/data")
    with pytest.raises(MalformedStatus):
        handle.get_status()


def test_backend_failure_becomes_poll_error():
    handle = NodeHandle(FakeNode(statuses=[OSError("broken pipe")]))
    handle.start("preprod", "/data")
    with pytest.raises(PollError, match="broken pipe"):
        handle.get_status()


def test_stop_is_idempotent():
    fake = FakeNode()
    handle = NodeHandle(fake)
    handle.stop()
    handle.start("preprod", "/data")
    handle.stop()
    handle.stop()
    assert fake.calls.count("stop") == 1
    with pytest.raises(NodeUnavailable):
        handle.get_status()


def test_stop_swallows_backend_errors():
    fake = FakeNode()

    def boom() -> int:
        raise RuntimeError("runtime gone")

    fake.stop_node = boom
    handle = NodeHandle(fake)
    handle.start("preprod", "/data")
    handle.stop()
    assert handle.running is False


def test_native_logging_initialised_once_per_process():
    first, second = FakeNode(), FakeNode()
    NodeHandle(first).init_logging()
    NodeHandle(first).init_logging()
    NodeHandle(second).init_logging()
    assert first.calls == ["init_logger"]
    assert second.calls == []
