"""SQLite persistence for reminders.

One table, one row per reminder. Rows are only removed by an explicit
delete; firing, cancelling and expiry just move the status along.

The sqlite3 calls are blocking, so every public operation runs on a worker
thread and the shared connection is guarded by a lock.
"""

import asyncio
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from logger import logger
from . import config
from .errors import InvalidStatusTransition, StorageError
from .models import ACTIVE_STATUSES, Reminder, ReminderStatus, can_transition

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in ReminderStatus)

SCHEMA = f"""
    CREATE TABLE IF NOT EXISTS reminders (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        message TEXT NOT NULL CHECK (length(message) BETWEEN 1 AND {config.MESSAGE_MAX_LENGTH}),
        scheduled_time TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ({_STATUS_VALUES})),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_reminders_user ON reminders(user_id);
    CREATE INDEX IF NOT EXISTS idx_reminders_status ON reminders(status);
"""

_COLUMNS = "id, user_id, message, scheduled_time, status, created_at, updated_at"


def _to_db_time(value: datetime) -> str:
    """UTC ISO-8601 with fixed precision, so text order is time order."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _now() -> str:
    return _to_db_time(datetime.now(timezone.utc))


def _row_to_reminder(row: sqlite3.Row) -> Reminder:
    return Reminder(
        id=row["id"],
        user_id=row["user_id"],
        message=row["message"],
        scheduled_time=_from_db_time(row["scheduled_time"]),
        status=ReminderStatus(row["status"]),
        created_at=_from_db_time(row["created_at"]),
        updated_at=_from_db_time(row["updated_at"]),
    )


class ReminderStore:
    """Durable CRUD and status bookkeeping for reminders."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = str(db_path or config.REMINDER_DB)
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    # --- Connection -----------------------------------------------------------

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the connection with WAL mode and the schema in place."""
        if self._connection is not None:
            return self._connection

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        connection = sqlite3.connect(
            self.db_path,
            check_same_thread=False,  # used from worker threads, serialized by _lock
            timeout=10.0
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA busy_timeout=5000")
        connection.executescript(SCHEMA)
        connection.commit()

        self._connection = connection
        logger.info(f"Reminder store initialized: {self.db_path}")
        return connection

    @contextmanager
    def _transaction(self):
        """Serialized transaction; sqlite errors surface as StorageError."""
        with self._lock:
            try:
                conn = self._get_connection()
            except (sqlite3.Error, OSError) as e:
                raise StorageError(f"Cannot open reminder store: {e}") from e
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(str(e)) from e
            except Exception:
                conn.rollback()
                raise

    async def _run(self, func, *args):
        return await asyncio.to_thread(func, *args)

    def close(self) -> None:
        """Close the connection (reopened lazily on next use)."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    # --- Schema ---------------------------------------------------------------

    async def init_schema(self) -> None:
        """Create the reminders table if needed."""
        await self._run(self._init_schema_sync)

    def _init_schema_sync(self) -> None:
        with self._transaction():
            pass

    # --- Mutations ------------------------------------------------------------

    async def create(self, reminder: Reminder) -> Reminder:
        """Insert a new reminder with status 'pending'.

        Args:
            reminder: Reminder to save; an id is generated if empty

        Returns:
            The stored record, server timestamps included

        Raises:
            StorageError: constraint violation or database failure
        """
        return await self._run(self._create_sync, reminder)

    def _create_sync(self, reminder: Reminder) -> Reminder:
        reminder_id = reminder.id or str(uuid.uuid4())
        now = _now()
        with self._transaction() as conn:
            conn.execute(
                f"INSERT INTO reminders ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    reminder_id,
                    reminder.user_id,
                    reminder.message,
                    _to_db_time(reminder.scheduled_time),
                    ReminderStatus.PENDING.value,
                    now,
                    now,
                )
            )
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM reminders WHERE id = ?", (reminder_id,)
            ).fetchone()

        logger.info(f"Saved reminder {reminder_id[:8]} for {row['scheduled_time']}")
        return _row_to_reminder(row)

    async def update_status(self, reminder_id: str, new_status: ReminderStatus) -> bool:
        """Set the status and refresh updated_at.

        Writing the current status again is allowed and only touches
        updated_at.

        Returns:
            True if the row exists, False otherwise

        Raises:
            InvalidStatusTransition: the lifecycle does not allow the move
            StorageError: database failure
        """
        return await self._run(self._update_status_sync, reminder_id, ReminderStatus(new_status))

    def _update_status_sync(self, reminder_id: str, new_status: ReminderStatus) -> bool:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT status FROM reminders WHERE id = ?", (reminder_id,)
            ).fetchone()
            if row is None:
                logger.info(f"update_status: reminder {reminder_id[:8]} not found")
                return False

            current = ReminderStatus(row["status"])
            if not can_transition(current, new_status):
                raise InvalidStatusTransition(reminder_id, current.value, new_status.value)

            conn.execute(
                "UPDATE reminders SET status = ?, updated_at = ? WHERE id = ?",
                (new_status.value, _now(), reminder_id)
            )

        if current != new_status:
            logger.info(f"Reminder {reminder_id[:8]}: {current.value} -> {new_status.value}")
        return True

    async def delete(self, reminder_id: str) -> bool:
        """Permanently remove a reminder. Returns whether a row was deleted."""
        return await self._run(self._delete_sync, reminder_id)

    def _delete_sync(self, reminder_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted reminder {reminder_id[:8]}")
        return deleted

    # --- Queries --------------------------------------------------------------

    async def get_by_id(self, reminder_id: str) -> Optional[Reminder]:
        """Fetch one reminder, or None if it does not exist."""
        return await self._run(self._get_by_id_sync, reminder_id)

    def _get_by_id_sync(self, reminder_id: str) -> Optional[Reminder]:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM reminders WHERE id = ?", (reminder_id,)
            ).fetchone()
        return _row_to_reminder(row) if row else None

    async def get_by_user(self, user_id: str) -> list[Reminder]:
        """All reminders for a user, latest scheduled_time first."""
        return await self._run(self._get_by_user_sync, user_id)

    def _get_by_user_sync(self, user_id: str) -> list[Reminder]:
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM reminders WHERE user_id = ? ORDER BY scheduled_time DESC",
                (user_id,)
            ).fetchall()
        return [_row_to_reminder(r) for r in rows]

    async def find_by_prefix(self, user_id: str, prefix: str) -> list[Reminder]:
        """A user's reminders whose id starts with prefix."""
        return await self._run(self._find_by_prefix_sync, user_id, prefix)

    def _find_by_prefix_sync(self, user_id: str, prefix: str) -> list[Reminder]:
        if not prefix:
            return []
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM reminders WHERE user_id = ? AND id LIKE ? ESCAPE '\\' "
                "ORDER BY scheduled_time DESC",
                (user_id, f"{escaped}%")
            ).fetchall()
        # LIKE is case-insensitive for ASCII; ids are lowercase uuids
        return [_row_to_reminder(r) for r in rows if r["id"].startswith(prefix)]

    async def get_pending(self) -> list[Reminder]:
        """The recovery set: every reminder still pending or scheduled."""
        return await self._run(self._get_pending_sync)

    def _get_pending_sync(self) -> list[Reminder]:
        statuses = tuple(s.value for s in ACTIVE_STATUSES)
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM reminders WHERE status IN (?, ?) ORDER BY scheduled_time",
                statuses
            ).fetchall()
        return [_row_to_reminder(r) for r in rows]
