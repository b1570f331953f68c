import threading
from typing import Protocol

from loguru import logger

from amaru_beacon.services.errors import NodeError, NodeUnavailable, PollError, StartError
from amaru_beacon.services.models import RawStatus

_logging_lock = threading.Lock()
_logging_initialized = False


class NodeBackend(Protocol):
    def init_logger(self) -> None: ...

    def start_node(self, network: str, data_dir: str) -> int: ...

    def get_latest_tip(self) -> str: ...

    def stop_node(self) -> int: ...


class NodeHandle:
    """Synchronous façade over the external node.

    start() may block on disk or network I/O inside the node and is
    serialised per instance. get_status() and stop() share a lock, so a
    poll racing a stop either finishes against the live node or raises
    NodeUnavailable.
    """

    def __init__(self, backend: NodeBackend) -> None:
        self.backend = backend
        self._start_lock = threading.Lock()
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def init_logging(self) -> None:
        """Initialise the node's own logger once per process."""
        global _logging_initialized
        with _logging_lock:
            if _logging_initialized:
                return
            self.backend.init_logger()
            _logging_initialized = True

    def start(self, network: str, data_dir: str) -> None:
        with self._start_lock:
            logger.info(f"Starting node: network={network} data_dir={data_dir}")
            code = self.backend.start_node(network, data_dir)
            if code != 0:
                error = StartError.from_code(code)
                logger.error(f"Node start failed with code {code}: {error.reason}")
                raise error
            with self._lock:
                self._running = True
            logger.info("Node started")

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            try:
                code = self.backend.stop_node()
            except Exception as exc:
                logger.warning(f"Node stop raised: {exc}")
                return
        if code != 0:
            logger.debug(f"Node stop returned {code}: no runtime was active")
        else:
            logger.info("Node stopped")

    def get_status(self) -> RawStatus:
        with self._lock:
            if not self._running:
                raise NodeUnavailable()
            try:
                payload = self.backend.get_latest_tip()
            except NodeError:
                raise
            except Exception as exc:
                raise PollError(f"status query failed: {exc}") from exc
        return RawStatus.from_json(payload)
