"""
Logging setup for the Quotation Tracker.
Call setup_logging() once when the Streamlit app starts.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_FILENAME = "quotation_tracker.log"
_CONFIGURED_MARKER = "_quotation_tracker_handler"


class JSONFormatter(logging.Formatter):
    """One JSON object per line for the rotating log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "func": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        message = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0]:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Configure the root logger.

    Streamlit re-executes the script on every interaction, so handlers added
    by an earlier run are replaced rather than stacked.
    """

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        if getattr(handler, _CONFIGURED_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler()
    console.setFormatter(HumanFormatter())
    setattr(console, _CONFIGURED_MARKER, True)
    root.addHandler(console)

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_dir / LOG_FILENAME, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
            )
        except OSError:
            file_handler = None  # read-only data dir: console only
        if file_handler is not None:
            file_handler.setFormatter(JSONFormatter())
            setattr(file_handler, _CONFIGURED_MARKER, True)
            root.addHandler(file_handler)

    for name in ("urllib3", "PIL", "reportlab", "watchdog"):
        logging.getLogger(name).setLevel(logging.WARNING)
