# agent_core/logger.py
import json
import logging
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)

_event_dir = Path(__file__).resolve().parents[1] / "logs"


def setup_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    """
    Configure root logging (stream + optional file) and the event log directory.
    Handlers are only attached once; later calls just move the event log.
    """
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        set_event_dir(log_dir)
    if logging.getLogger().handlers:
        return

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        handlers.append(logging.FileHandler(log_dir / "app.log", encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def set_event_dir(path: Path) -> None:
    global _event_dir
    _event_dir = Path(path)


def _log_path() -> Path:
    date = datetime.now().strftime("%Y-%m-%d")
    return _event_dir / f"events-{date}.jsonl"


def log_event(event_type: str, payload: dict) -> dict:
    """Append an event to today's JSON-lines log."""
    entry = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "type": event_type,
        "payload": payload,
    }
    path = _log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
    except OSError as e:
        logger.warning("Event log write failed (%s): %s", path, e)
    return entry
