import asyncio
from contextlib import aclosing
from datetime import datetime

from loguru import logger
from textual.app import App, ComposeResult
from textual.containers import Container, VerticalScroll
from textual.theme import Theme
from textual.widgets import Footer, Static

from amaru_beacon import __version__ as BEACON_VERSION
from amaru_beacon.services.config import MonitorConfig
from amaru_beacon.services.lifecycle import LifecycleController
from amaru_beacon.services.logs import LogTailer, init_logging
from amaru_beacon.services.models import Bootstrapping, Failed, NodeState, Ready
from amaru_beacon.services.native import NativeNode
from amaru_beacon.services.node import NodeHandle

THEME_AMARU = Theme(
    name="amaru-dark",
    primary="#00d5ff",
    secondary="#0033a0",
    accent="#00d5ff",
    foreground="#e0e0e0",
    background="#0d0d0d",
    surface="#1a1a1a",
    panel="#252525",
    success="#00dd00",
    warning="#ffaa00",
    error="#ff3333",
    dark=True,
)


def short_hash(value: str) -> str:
    if len(value) > 16:
        return f"{value[:8]}...{value[-8:]}"
    if value and value != "pending":
        return value
    return "..."


def describe_state(state: NodeState) -> tuple[str, list[str]]:
    """Return (panel title, body lines) for a node state."""
    if isinstance(state, Ready):
        tip = state.tip
        lines = []
        if not tip.is_syncing:
            lines.append("✅ Caught Up")
        lines += [
            f"Slot:   {tip.slot}",
            f"Epoch:  {tip.epoch}",
            f"Block:  {tip.block_number}",
            f"Hash:   {short_hash(tip.block_hash)}",
        ]
        return "⛓ Chain Tip", lines
    if isinstance(state, Bootstrapping):
        return "🔄 Bootstrapping", [state.message]
    if isinstance(state, Failed):
        return "❌ Error", [state.message]
    return "⏳ Loading", ["Loading..."]


class CustomHeader(Static):
    """Header with title, session status and local time."""

    DEFAULT_CSS = """
    CustomHeader {
        dock: top;
        width: 100%;
        background: $boost;
        color: $text;
        height: 1;
    }
    """

    def on_mount(self) -> None:
        self.update_clock()
        self.set_interval(1.0, self.update_clock)

    def update_clock(self) -> None:
        time_str = datetime.now().strftime("%I:%M:%S %p")
        running = hasattr(self.app, "controller") and self.app.controller.running
        emoji, session = ("🟢", "running") if running else ("🔴", "stopped")
        self.update(f"{emoji} Node: {session}  |  {self.app.title}  |  {time_str}")


class CardPanel(Static):
    def __init__(self, title: str, accent_class: str, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.border_title = title
        self.lines: list[str] = []
        self.add_class("card")
        self.add_class(accent_class)

    def update_lines(self, lines: list[str], title: str | None = None) -> None:
        if title is not None:
            self.border_title = title
        self.lines = lines
        self.update(self.render())

    def render(self) -> str:
        return "\n".join(self.lines) if self.lines else "... loading"


class ActivityPanel(VerticalScroll):
    def __init__(self, title: str, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.border_title = title
        self.add_class("card")
        self._content = Static("")

    def compose(self) -> ComposeResult:
        yield self._content

    def update_lines(self, lines: list[str]) -> None:
        self._content.update("\n".join(lines))
        self.scroll_end(animate=False)


class BeaconApp(App):
    BINDINGS = [
        ("q", "quit", "Quit"),
        ("s", "toggle_node", "Start/Stop"),
        ("r", "restart_node", "Restart"),
    ]

    CSS = """
    Screen {
        layout: vertical;
    }
    #body {
        layout: vertical;
        height: 1fr;
    }
    .card {
        border: round $primary;
        padding: 0 1;
    }
    #node-state {
        height: 9;
        content-align: center middle;
    }
    .failed {
        border: round $error;
    }
    #activity {
        height: 1fr;
    }
    """

    def __init__(self, config: MonitorConfig | None = None, controller: LifecycleController | None = None) -> None:
        super().__init__()
        self.config = config or MonitorConfig.from_env()
        self.controller = controller or LifecycleController(
            NodeHandle(NativeNode(self.config.lib_path)),
            data_dir=self.config.data_dir,
            poll_interval=self.config.poll_interval,
            max_poll_failures=self.config.max_poll_failures,
        )
        self.logs = LogTailer()
        self.title = f"Amaru Beacon v{BEACON_VERSION} ({self.config.network})"
        self.header = CustomHeader()
        self.state_panel = CardPanel("⏳ Loading", "node", id="node-state")
        self.activity = ActivityPanel("📜 Activity", id="activity")

    def compose(self) -> ComposeResult:
        yield self.header
        with Container(id="body"):
            yield self.state_panel
            yield self.activity
        yield Footer()

    async def on_mount(self) -> None:
        self.register_theme(THEME_AMARU)
        self.theme = "amaru-dark"
        self.run_worker(self._follow_state(), exclusive=True, group="state")
        self.set_timer(0.1, self.action_start_node)
        self.set_interval(5, self.refresh_activity)

    async def on_unmount(self) -> None:
        await self.controller.request_stop()

    async def _follow_state(self) -> None:
        async with aclosing(self.controller.publisher.updates()) as updates:
            async for state in updates:
                self.show_state(state)

    def show_state(self, state: NodeState) -> None:
        title, lines = describe_state(state)
        self.state_panel.update_lines(lines, title=title)
        self.state_panel.set_class(isinstance(state, Failed), "failed")
        self.header.update_clock()

    async def refresh_activity(self) -> None:
        lines = await asyncio.get_event_loop().run_in_executor(None, self.logs.tail_lines, 50)
        self.activity.update_lines(lines)

    def action_start_node(self) -> None:
        self.run_worker(self.controller.request_start(self.config.network), group="lifecycle")

    def action_stop_node(self) -> None:
        self.run_worker(self.controller.request_stop(), group="lifecycle")

    def action_toggle_node(self) -> None:
        if self.controller.running:
            self.action_stop_node()
        else:
            self.action_start_node()

    def action_restart_node(self) -> None:
        self.notify(f"Restarting node on {self.config.network}...", timeout=4)
        self.action_start_node()

    async def action_quit(self) -> None:
        await self.controller.request_stop()
        self.exit()


def run() -> None:
    config = MonitorConfig.from_env()
    init_logging(config.log_dir, config.log_level)
    logger.info(f"Amaru Beacon {BEACON_VERSION} starting on {config.network}")
    BeaconApp(config).run()
