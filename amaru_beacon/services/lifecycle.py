import asyncio
import threading
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Callable

from loguru import logger

from amaru_beacon.services.errors import PollError, StartError
from amaru_beacon.services.models import IDLE, Bootstrapping, Failed, NodeState
from amaru_beacon.services.node import NodeHandle
from amaru_beacon.services.status import STARTING_MESSAGE, classify

StateCallback = Callable[[NodeState], None]


class Lifecycle(Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class StatePublisher:
    """Holds the latest NodeState and fans it out to subscribers.

    States are immutable, so swapping the reference under the lock is all a
    reader can ever observe. Callbacks run outside the lock on the publishing
    thread; async consumers get their own queue fed through their loop.
    """

    def __init__(self, initial: NodeState = IDLE) -> None:
        self._lock = threading.Lock()
        self._state: NodeState = initial
        self._callbacks: list[StateCallback] = []
        self._queues: list[tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = []

    @property
    def state(self) -> NodeState:
        with self._lock:
            return self._state

    def publish(self, state: NodeState) -> None:
        with self._lock:
            self._state = state
            callbacks = list(self._callbacks)
            queues = list(self._queues)
        for callback in callbacks:
            self._notify(callback, state)
        for loop, queue in queues:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, state)
            except RuntimeError:
                # consumer loop already closed; its generator cleanup will drop the entry
                continue

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register callback, call it with the current state, return an unsubscribe function."""
        with self._lock:
            self._callbacks.append(callback)
            current = self._state
        self._notify(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    async def updates(self) -> AsyncIterator[NodeState]:
        """Yield the current state, then every state published afterwards.

        Consumers that may leave early should wrap this in contextlib.aclosing
        so their queue is dropped at once instead of at garbage collection.
        """
        queue: asyncio.Queue = asyncio.Queue()
        entry = (asyncio.get_running_loop(), queue)
        with self._lock:
            self._queues.append(entry)
            queue.put_nowait(self._state)
        try:
            while True:
                yield await queue.get()
        finally:
            with self._lock:
                if entry in self._queues:
                    self._queues.remove(entry)

    @staticmethod
    def _notify(callback: StateCallback, state: NodeState) -> None:
        try:
            callback(state)
        except Exception as exc:
            logger.warning(f"State subscriber {callback!r} failed: {exc}")


class LifecycleController:
    """Owns the node session: start, stop, and the polling loop between them.

    request_start, request_stop and the loop's own teardown are serialised by
    one asyncio lock. Every state change goes through the publisher.
    """

    def __init__(
        self,
        handle: NodeHandle,
        data_dir: str,
        poll_interval: float = 1.0,
        max_poll_failures: int = 0,
        publisher: StatePublisher | None = None,
    ) -> None:
        self.handle = handle
        self.data_dir = data_dir
        self.poll_interval = poll_interval
        self.max_poll_failures = max_poll_failures
        self.publisher = publisher or StatePublisher()
        self.lifecycle = Lifecycle.NOT_STARTED
        self._run_flag = False
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._poll_task: asyncio.Task | None = None
        self._cancel: asyncio.Event | None = None

    @property
    def state(self) -> NodeState:
        return self.publisher.state

    @property
    def running(self) -> bool:
        return self._run_flag

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        return self.publisher.subscribe(callback)

    async def request_start(self, network: str) -> None:
        async with self._lock:
            loop = asyncio.get_running_loop()
            self._loop = loop
            if self.lifecycle is Lifecycle.RUNNING:
                logger.info("Restart requested, stopping current session first")
                await self._teardown()
            self.lifecycle = Lifecycle.STARTING
            self.publisher.publish(IDLE)
            self.publisher.publish(Bootstrapping(STARTING_MESSAGE))
            try:
                await loop.run_in_executor(None, self._start_node, network)
            except StartError as exc:
                self.lifecycle = Lifecycle.STOPPED
                self.publisher.publish(Failed(exc.reason))
                return
            except Exception as exc:
                logger.error(f"Node start raised: {exc}")
                self.lifecycle = Lifecycle.STOPPED
                self.publisher.publish(Failed(f"Error: {exc}"))
                return
            self._run_flag = True
            self.lifecycle = Lifecycle.RUNNING
            self._cancel = asyncio.Event()
            self._poll_task = asyncio.create_task(self._poll_loop(self._cancel))

    async def request_stop(self) -> None:
        async with self._lock:
            if not self._run_flag:
                return
            await self._teardown()
            self.publisher.publish(IDLE)

    def request_stop_threadsafe(self, timeout: float | None = None) -> None:
        """Stop from a thread other than the one running the controller's loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.request_stop(), loop).result(timeout)

    def _start_node(self, network: str) -> None:
        Path(self.data_dir).mkdir(parents=True, exist_ok=True)
        self.handle.init_logging()
        self.handle.start(network, self.data_dir)

    async def _teardown(self) -> None:
        cancel, task = self._cancel, self._poll_task
        self._cancel = None
        self._poll_task = None
        if cancel is not None:
            cancel.set()
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await asyncio.get_running_loop().run_in_executor(None, self.handle.stop)
        self._run_flag = False
        self.lifecycle = Lifecycle.STOPPED
        logger.info("Node session closed")

    async def _poll_loop(self, cancel: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        failures = 0
        while self._run_flag and not cancel.is_set():
            try:
                raw = await loop.run_in_executor(None, self.handle.get_status)
            except Exception as exc:
                if cancel.is_set():
                    return
                detail = exc.detail if isinstance(exc, PollError) else str(exc)
                failures += 1
                logger.warning(f"Poll failed ({failures} in a row): {detail}")
                if self.max_poll_failures and failures >= self.max_poll_failures:
                    self.publisher.publish(
                        Failed(f"Polling stopped after {failures} consecutive errors: {detail}")
                    )
                    await self._abandon_session(cancel)
                    return
                self.publisher.publish(Failed(f"Polling error: {detail}"))
            else:
                if cancel.is_set():
                    return
                failures = 0
                self.publisher.publish(classify(raw))
            try:
                await asyncio.wait_for(cancel.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                continue
            return

    async def _abandon_session(self, cancel: asyncio.Event) -> None:
        async with self._lock:
            if self._cancel is not cancel:
                return
            # this task is the poller; keep teardown from waiting on itself
            self._poll_task = None
            await self._teardown()
