from pathlib import Path

from loguru import logger

LOG_FILE_NAME = "amaru-beacon.log"

_log_path: Path | None = None


def init_logging(log_dir: str, level: str = "INFO") -> Path | None:
    """Route loguru output to a rotating file under log_dir.

    The default stderr sink is dropped because it would draw over the TUI.
    Calling this again returns the already configured path. Returns None
    when the directory cannot be created; the default sink is kept then.
    """
    global _log_path
    if _log_path is not None:
        return _log_path
    path = Path(log_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning(f"Cannot create log dir {path}: {exc}")
        return None
    log_path = path / LOG_FILE_NAME
    logger.remove()
    logger.add(
        log_path,
        level=level,
        rotation="5 MB",
        retention=3,
        enqueue=True,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}",
    )
    _log_path = log_path
    logger.info(f"Logging to {log_path}")
    return log_path


class LogTailer:
    def __init__(self, log_path: Path | None = None) -> None:
        self.log_path = log_path or _log_path
        self.max_lines = 200

    def tail_lines(self, limit: int | None = None) -> list[str]:
        if self.log_path is None or not self.log_path.exists():
            return ["log file not found"]
        try:
            lines = self.log_path.read_text(errors="ignore").splitlines()
        except Exception:
            return ["Unable to read log file"]
        count = min(limit or self.max_lines, self.max_lines)
        return lines[-count:]
