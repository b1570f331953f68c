import os
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

DEFAULT_NETWORK = "preprod"
DEFAULT_LIB = "libamaru_wear.so"
DEFAULT_POLL_INTERVAL = 1.0


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring {name}={raw!r}: must be positive, using {default}")
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not an integer, using {default}")
        return default
    if value < 0:
        logger.warning(f"Ignoring {name}={raw!r}: must not be negative, using {default}")
        return default
    return value


@dataclass(frozen=True)
class MonitorConfig:
    network: str = DEFAULT_NETWORK
    data_dir: str = str(Path.home() / ".amaru")
    lib_path: str = DEFAULT_LIB
    poll_interval: float = DEFAULT_POLL_INTERVAL
    # 0 keeps polling forever after errors
    max_poll_failures: int = 0
    # empty means <data_dir>/logs
    log_dir: str = ""
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.log_dir:
            object.__setattr__(self, "log_dir", os.path.join(self.data_dir, "logs"))

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """Build a config from AMARU_* environment variables, falling back to defaults."""
        data_dir = os.environ.get("AMARU_DATA_DIR") or str(Path.home() / ".amaru")
        return cls(
            network=os.environ.get("AMARU_NETWORK", DEFAULT_NETWORK).strip() or DEFAULT_NETWORK,
            data_dir=os.path.expanduser(data_dir),
            lib_path=os.environ.get("AMARU_LIB", DEFAULT_LIB),
            poll_interval=_env_float("AMARU_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            max_poll_failures=_env_int("AMARU_MAX_POLL_FAILURES", 0),
            log_dir=os.path.expanduser(os.environ.get("AMARU_LOG_DIR") or ""),
            log_level=(os.environ.get("AMARU_LOG_LEVEL") or "INFO").upper(),
        )
