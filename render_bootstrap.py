"""Production-friendly launcher for the Quotation Tracker.

Platforms that expect a Python entry point (``python render_bootstrap.py`` or
the ``quotation-tracker`` console script) get the same Streamlit server the
``streamlit run main.py`` command would start. Persistent storage mounts are
preferred for the database when one is available.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

APP_SCRIPT = "main.py"


def _preferred_storage_dir() -> Optional[Path]:
    """Return a writable directory for application data if one is obvious."""

    configured_dir = os.getenv("QUOTATION_TRACKER_DATA_DIR")
    if configured_dir:
        return Path(configured_dir)

    for candidate in (os.getenv("RAILWAY_VOLUME_MOUNT_PATH"), "/data", "/opt/render/project/.data"):
        if candidate and Path(candidate).exists():
            return Path(candidate)

    return None


def _headless() -> str:
    raw = os.getenv("STREAMLIT_SERVER_HEADLESS")
    if raw is None:
        return "true"
    return "true" if raw.strip().lower() in ("1", "true", "yes", "on") else "false"


def build_command(app_script: Path) -> List[str]:
    port = os.getenv("PORT", "8501")
    address = os.getenv("HOST") or os.getenv("BIND_ADDRESS") or "0.0.0.0"
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(app_script),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        _headless(),
    ]


def main() -> None:
    root_dir = Path(__file__).resolve().parent
    app_script = root_dir / APP_SCRIPT
    if not app_script.exists():
        raise SystemExit(
            f"Expected application script '{APP_SCRIPT}' next to render_bootstrap.py, but it was not found."
        )

    storage_dir = _preferred_storage_dir()
    if storage_dir is not None:
        storage_dir.mkdir(parents=True, exist_ok=True)
        os.environ.setdefault("QUOTATION_TRACKER_DATA_DIR", str(storage_dir))

    os.environ.setdefault("BROWSER", "none")

    subprocess.run(build_command(app_script), check=True, cwd=root_dir)


if __name__ == "__main__":
    main()
