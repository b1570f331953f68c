import asyncio
import json
import threading


def status_json(**overrides) -> str:
    payload = {
        "slot": 0,
        "blockHash": "pending",
        "blockNumber": 0,
        "epoch": 0,
        "isSyncing": True,
        "status": "Bootstrapping",
    }
    payload.update(overrides)
    return json.dumps(payload)

class FakeNode:
    """In-memory stand-in for the node library.

    statuses are served in order; the last one repeats. An Exception item is
    raised instead of returned.
    """

    def __init__(self, start_code: int = 0, statuses: list | None = None) -> None:
        self.start_code = start_code
        self.statuses = list(statuses or [status_json()])
        self.calls: list = []
        self.polls = 0
        self._lock = threading.Lock()

    def init_logger(self) -> None:
        self.calls.append("init_logger")

    def start_node(self, network: str, data_dir: str) -> int:
        self.calls.append(("start", network, data_dir))
        return self.start_code

    def get_latest_tip(self) -> str:
        with self._lock:
            self.polls += 1
            item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return item

    def stop_node(self) -> int:
        self.calls.append("stop")
        return 0


async def wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)

