"""Shared configuration, enumerations and storage for the Quotation Tracker.

The Streamlit pages in ``tracker_app.py`` talk to the database exclusively
through :class:`QuotationRepository` so the analytics and export helpers can
work on plain :class:`Quotation` objects.
"""
from __future__ import annotations

import logging
import os
import sqlite3
import sys
import textwrap
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from dotenv import load_dotenv

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

SOURCES: Dict[str, str] = {
    "google_ads": "Google Ads",
    "whatsapp": "WhatsApp",
    "mail": "Email",
    "other": "Other",
}

# One status list for the create form, the edit form, the list filter and
# the badges.
STATUSES: Dict[str, str] = {
    "pending": "Pending",
    "quoted": "Quoted",
    "confirmed": "Confirmed",
    "hold": "Hold",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}

STATUS_FILTER_ALL = "all"
DEFAULT_SOURCE = "google_ads"
DEFAULT_STATUS = "pending"


def status_label(status: str) -> str:
    """Return the display label for ``status``, tolerating unknown values."""

    if status in STATUSES:
        return STATUSES[status]
    return status[:1].upper() + status[1:]


def source_label(source: str) -> str:
    if source in SOURCES:
        return SOURCES[source]
    return source.replace("_", " ")


# ---------------------------------------------------------------------------
# Configuration helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AppConfig:
    """Hold runtime configuration options for the tracker."""

    data_dir: Path
    db_url: str
    export_basename: str
    top_clients_limit: int
    log_level: str
    log_to_file: bool

    @property
    def db_path(self) -> Path:
        prefix = "sqlite:///"
        if self.db_url.startswith(prefix):
            return Path(self.db_url[len(prefix) :])
        return Path(self.db_url)


APP_STORAGE_SUBDIR = "quotation-tracker"


def default_data_dir() -> Path:
    """Return the platform data directory, or `.quotation_tracker` when it is not writable."""

    if sys.platform.startswith("win"):
        base_dir = Path(os.getenv("APPDATA", Path.home()))
    elif sys.platform == "darwin":
        base_dir = Path.home() / "Library" / "Application Support"
    else:
        base_dir = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    candidate = base_dir / APP_STORAGE_SUBDIR
    try:
        candidate.mkdir(parents=True, exist_ok=True)
        return candidate
    except OSError:
        fallback = Path.cwd() / ".quotation_tracker"
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AppConfig:
    """Load settings from ``.env`` and environment variables with sane defaults."""

    load_dotenv()

    override = os.getenv("QUOTATION_TRACKER_DATA_DIR")
    data_dir = Path(override).expanduser() if override else default_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)

    db_url = os.getenv("QUOTATION_TRACKER_DB_URL")
    if not db_url:
        db_path = data_dir / "quotation_tracker.db"
        db_url = f"sqlite:///{db_path.as_posix()}"

    top_clients = _int_env("QUOTATION_TRACKER_TOP_CLIENTS", 5)

    return AppConfig(
        data_dir=data_dir,
        db_url=db_url,
        export_basename=os.getenv("QUOTATION_TRACKER_EXPORT_BASENAME", "").strip()
        or "quotations",
        top_clients_limit=top_clients if top_clients > 0 else 5,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        log_to_file=_bool_env("QUOTATION_TRACKER_LOG_FILE", True),
    )


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreError(RuntimeError):
    """Raised when the quotation store rejects or fails an operation."""


class RecordNotFound(StoreError):
    """Raised when no quotation exists for the requested id."""

    def __init__(self, quotation_id: str):
        super().__init__(f"Quotation {quotation_id} not found")
        self.quotation_id = quotation_id


# ---------------------------------------------------------------------------
# Database helpers
# ---------------------------------------------------------------------------

SCHEMA = textwrap.dedent(
    """
    CREATE TABLE IF NOT EXISTS quotations (
        id           TEXT PRIMARY KEY,
        sl_number    INTEGER NOT NULL CHECK(typeof(sl_number) = 'integer'),
        date         TEXT NOT NULL,
        time_in      TEXT NOT NULL,
        client       TEXT NOT NULL,
        item         TEXT NOT NULL,
        source       TEXT NOT NULL DEFAULT 'google_ads',
        status       TEXT NOT NULL DEFAULT 'pending',
        remarks      TEXT,
        quote_number TEXT,
        quoted_date  TEXT,
        created_at   TEXT NOT NULL DEFAULT (datetime('now'))
    );

    CREATE INDEX IF NOT EXISTS idx_quotations_date ON quotations(date);

    CREATE TABLE IF NOT EXISTS purchase_orders (
        id           TEXT PRIMARY KEY,
        quotation_id TEXT,
        po_number    TEXT,
        created_at   TEXT NOT NULL DEFAULT (datetime('now'))
    );
    """
)


def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA)
    conn.commit()


class Database:
    """The SQLite file behind the tracker; every operation gets its own connection."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: AppConfig) -> "Database":
        return cls(config.db_path)

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def begin(self, action: str = "access the quotation store") -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and rolls back otherwise.

        Any ``sqlite3.Error``, including one raised while opening the file, is
        re-raised as :class:`StoreError` naming ``action``.
        """

        conn: Optional[sqlite3.Connection] = None
        try:
            conn = self.connect()
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            if conn is not None:
                conn.rollback()
            log.error("Quotation store failed to %s: %s", action, exc)
            raise StoreError(f"Failed to {action}: {exc}") from exc
        except BaseException:
            if conn is not None:
                conn.rollback()
            raise
        finally:
            if conn is not None:
                conn.close()

    def init_schema(self) -> None:
        with self.begin("initialise the schema") as conn:
            init_schema(conn)


# ---------------------------------------------------------------------------
# Quotation records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Quotation:
    id: str
    sl_number: int
    date: date
    time_in: datetime
    client: str
    item: str
    source: str
    status: str
    remarks: Optional[str] = None
    quote_number: Optional[str] = None
    quoted_date: Optional[date] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Quotation":
        return cls(
            id=row["id"],
            sl_number=row["sl_number"],
            date=date.fromisoformat(row["date"]),
            time_in=datetime.fromisoformat(row["time_in"]),
            client=row["client"],
            item=row["item"],
            source=row["source"],
            status=row["status"],
            remarks=row["remarks"],
            quote_number=row["quote_number"],
            quoted_date=date.fromisoformat(row["quoted_date"]) if row["quoted_date"] else None,
            created_at=_parse_timestamp(row["created_at"]),
        )


EDITABLE_FIELDS = (
    "sl_number",
    "date",
    "time_in",
    "client",
    "item",
    "source",
    "status",
    "remarks",
    "quote_number",
    "quoted_date",
)
REQUIRED_FIELDS = ("sl_number", "date", "time_in", "client", "item")


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _to_db_value(field: str, value: Any) -> Any:
    if value is None:
        return None
    if field == "time_in":
        if isinstance(value, datetime):
            return value.isoformat(timespec="seconds")
        return datetime.fromisoformat(str(value)).isoformat(timespec="seconds")
    if field in ("date", "quoted_date"):
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if value == "":
            return None
        return date.fromisoformat(str(value)).isoformat()
    if field in ("remarks", "quote_number") and isinstance(value, str) and not value.strip():
        return None
    return value


def _prepare(data: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    prepared: Dict[str, Any] = {}
    for field in fields:
        if field not in data:
            continue
        try:
            prepared[field] = _to_db_value(field, data[field])
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Invalid value for {field}: {data[field]!r}") from exc
    return prepared


class QuotationRepository:
    """CRUD access to the ``quotations`` table."""

    def __init__(self, db: Database):
        self.db = db

    def list(self) -> List[Quotation]:
        with self.db.begin("list quotations") as conn:
            rows = conn.execute(
                "SELECT * FROM quotations ORDER BY date DESC, time_in DESC"
            ).fetchall()
        log.debug("Fetched %d quotations", len(rows))
        return [Quotation.from_row(row) for row in rows]

    def get(self, quotation_id: str) -> Quotation:
        with self.db.begin("load quotation") as conn:
            row = conn.execute(
                "SELECT * FROM quotations WHERE id=?", (quotation_id,)
            ).fetchone()
        if row is None:
            raise RecordNotFound(quotation_id)
        return Quotation.from_row(row)

    def insert(self, data: Mapping[str, Any]) -> Quotation:
        missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, "")]
        if missing:
            raise StoreError(f"Missing required fields: {', '.join(missing)}")
        values = _prepare(data, EDITABLE_FIELDS)
        values.setdefault("source", DEFAULT_SOURCE)
        values.setdefault("status", DEFAULT_STATUS)
        values["id"] = uuid.uuid4().hex
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with self.db.begin("create quotation") as conn:
            conn.execute(
                f"INSERT INTO quotations ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            row = conn.execute(
                "SELECT * FROM quotations WHERE id=?", (values["id"],)
            ).fetchone()
        log.info("Created quotation %s (SL %s)", values["id"], values.get("sl_number"))
        return Quotation.from_row(row)

    def update(self, quotation_id: str, data: Mapping[str, Any]) -> None:
        values = _prepare(data, EDITABLE_FIELDS)
        if not values:
            return
        assignments = ", ".join(f"{column}=?" for column in values)
        with self.db.begin("update quotation") as conn:
            cur = conn.execute(
                f"UPDATE quotations SET {assignments} WHERE id=?",
                (*values.values(), quotation_id),
            )
            if cur.rowcount == 0:
                raise RecordNotFound(quotation_id)
        log.info("Updated quotation %s", quotation_id)

    def delete(self, quotation_id: str) -> None:
        with self.db.begin("delete quotation") as conn:
            conn.execute("DELETE FROM quotations WHERE id=?", (quotation_id,))
        log.info("Deleted quotation %s", quotation_id)

    def count_purchase_orders(self) -> int:
        with self.db.begin("count purchase orders") as conn:
            row = conn.execute("SELECT COUNT(*) FROM purchase_orders").fetchone()
        return int(row[0])


__all__ = [
    "AppConfig",
    "Database",
    "EDITABLE_FIELDS",
    "Quotation",
    "QuotationRepository",
    "RecordNotFound",
    "SOURCES",
    "STATUSES",
    "STATUS_FILTER_ALL",
    "StoreError",
    "init_schema",
    "load_config",
    "source_label",
    "status_label",
]
