"""SQLite data store for pricewatch."""

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator, Optional

from pricewatch.db.base import AlertStore
from pricewatch.errors import DuplicateAlert, PersistenceError
from pricewatch.models import (
    Alert,
    AlertCondition,
    CachedPrice,
    DashboardStats,
    DeviceToken,
    TriggeredAlert,
)

MAX_PAGE_SIZE = 100


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class DataStore(AlertStore):
    """SQLite-based data store for pricewatch.

    A single DataStore is created at startup and passed to every component
    that needs persistence. Each operation opens its own connection, so the
    store is safe to share between worker threads.
    """

    REQUIRED_TABLES = [
        "alerts",
        "triggered_alerts",
        "price_cache",
        "device_tokens",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _connection(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and translate sqlite errors.

        Args:
            immediate: Take the write lock up front so a read-then-write
                sequence cannot interleave with another writer.
        """
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self.db_path}: {e}") from e
        try:
            if immediate:
                conn.isolation_level = None
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        with self._connection() as conn:
            cursor = conn.cursor()

            # Alerts table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alerts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    symbol TEXT NOT NULL,
                    target_price REAL NOT NULL CHECK (target_price > 0),
                    condition TEXT NOT NULL CHECK (condition IN ('ABOVE', 'BELOW')),
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    last_triggered_at TEXT
                )
            """)

            # Triggered alerts are owned by their alert
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS triggered_alerts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    alert_id INTEGER NOT NULL
                        REFERENCES alerts(id) ON DELETE CASCADE,
                    symbol TEXT NOT NULL,
                    target_price REAL NOT NULL,
                    condition TEXT NOT NULL,
                    actual_price REAL NOT NULL,
                    triggered_at TEXT NOT NULL,
                    is_read INTEGER NOT NULL DEFAULT 0
                )
            """)

            # At most one unread trigger per alert
            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_triggered_unread
                ON triggered_alerts (alert_id) WHERE is_read = 0
            """)

            # Price cache table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS price_cache (
                    symbol TEXT PRIMARY KEY,
                    price REAL NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            # Device tokens table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS device_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token TEXT NOT NULL UNIQUE,
                    user_id TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        with self._connection() as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]

    def ping(self) -> None:
        """Check that the database answers a trivial query.

        Raises:
            PersistenceError: If the database is unreachable.
        """
        with self._connection() as conn:
            conn.execute("SELECT 1")

    # ==================== Alerts ====================

    @staticmethod
    def _row_to_alert(row: sqlite3.Row) -> Alert:
        return Alert(
            id=row["id"],
            symbol=row["symbol"],
            target_price=row["target_price"],
            condition=row["condition"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            last_triggered_at=_parse_ts(row["last_triggered_at"]),
        )

    def create_alert(
        self, symbol: str, target_price: float, condition: AlertCondition
    ) -> Alert:
        """Create a new active alert.

        Args:
            symbol: Normalized ticker symbol.
            target_price: Threshold price, must be positive.
            condition: ABOVE or BELOW.

        Returns:
            The stored alert with its ID.

        Raises:
            DuplicateAlert: If an active alert with the same symbol, target
                and condition already exists.
        """
        now = datetime.now()
        alert = Alert(
            symbol=symbol,
            target_price=target_price,
            condition=condition,
            created_at=now,
            updated_at=now,
        )
        with self._connection(immediate=True) as conn:
            existing = conn.execute(
                """
                SELECT id FROM alerts
                WHERE symbol = ? AND target_price = ? AND condition = ? AND is_active = 1
                """,
                (alert.symbol, alert.target_price, alert.condition),
            ).fetchone()
            if existing:
                raise DuplicateAlert(
                    f"An active alert for {alert.symbol} {alert.condition} "
                    f"{alert.target_price} already exists (ID {existing['id']})",
                    symbol=alert.symbol,
                )
            cursor = conn.execute(
                """
                INSERT INTO alerts
                (symbol, target_price, condition, is_active, created_at, updated_at)
                VALUES (?, ?, ?, 1, ?, ?)
                """,
                (
                    alert.symbol,
                    alert.target_price,
                    alert.condition,
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
            return alert.model_copy(update={"id": cursor.lastrowid})

    def get_alert(self, alert_id: int) -> Optional[Alert]:
        """Get an alert by ID.

        Returns:
            Alert if found, None otherwise.
        """
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,)).fetchone()
            return self._row_to_alert(row) if row else None

    def list_alerts(
        self,
        active: Optional[bool] = None,
        symbol: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Alert]:
        """List alerts, newest first.

        Args:
            active: Filter by active flag. None returns both.
            symbol: Filter by symbol.
            limit: Page size, capped at 100.
            offset: Rows to skip.
        """
        clauses = []
        params: list = []
        if active is not None:
            clauses.append("is_active = ?")
            params.append(1 if active else 0)
        if symbol:
            clauses.append("symbol = ?")
            params.append(symbol.strip().upper())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.extend([min(limit, MAX_PAGE_SIZE), offset])

        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM alerts {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                params,
            ).fetchall()
            return [self._row_to_alert(row) for row in rows]

    def list_active(self, symbol_filter: Optional[str] = None) -> list[Alert]:
        """Get all active alerts, oldest first."""
        with self._connection() as conn:
            if symbol_filter:
                rows = conn.execute(
                    "SELECT * FROM alerts WHERE is_active = 1 AND symbol = ? ORDER BY id",
                    (symbol_filter.strip().upper(),),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM alerts WHERE is_active = 1 ORDER BY id"
                ).fetchall()
            return [self._row_to_alert(row) for row in rows]

    def update_alert(
        self,
        alert_id: int,
        *,
        symbol: Optional[str] = None,
        target_price: Optional[float] = None,
        condition: Optional[AlertCondition] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[Alert]:
        """Update fields of an alert.

        Returns:
            The updated alert, or None if it does not exist.
        """
        with self._connection(immediate=True) as conn:
            row = conn.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,)).fetchone()
            if row is None:
                return None
            current = self._row_to_alert(row)
            changes = {
                key: value
                for key, value in {
                    "symbol": symbol,
                    "target_price": target_price,
                    "condition": condition,
                    "is_active": is_active,
                }.items()
                if value is not None
            }
            # Re-validate through the model
            updated = Alert.model_validate(
                {**current.model_dump(), **changes, "updated_at": datetime.now()}
            )
            conn.execute(
                """
                UPDATE alerts
                SET symbol = ?, target_price = ?, condition = ?, is_active = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    updated.symbol,
                    updated.target_price,
                    updated.condition,
                    1 if updated.is_active else 0,
                    updated.updated_at.isoformat(),
                    alert_id,
                ),
            )
            return updated

    def delete_alert(self, alert_id: int) -> bool:
        """Delete an alert and, by cascade, its triggered alerts.

        Returns:
            True if a row was deleted.
        """
        return self.delete_alerts([alert_id]) > 0

    def delete_alerts(self, alert_ids: list[int]) -> int:
        """Delete several alerts.

        Returns:
            Number of alerts deleted.
        """
        if not alert_ids:
            return 0
        placeholders = ",".join("?" for _ in alert_ids)
        with self._connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM alerts WHERE id IN ({placeholders})", list(alert_ids)
            )
            return cursor.rowcount

    def mark_triggered(self, alert_id: int, deactivate: bool) -> None:
        """Stamp the alert's last trigger time, optionally deactivating it."""
        with self._connection() as conn:
            self._stamp_triggered(conn, alert_id, deactivate, datetime.now())

    def _stamp_triggered(
        self,
        conn: sqlite3.Connection,
        alert_id: int,
        deactivate: bool,
        when: datetime,
    ) -> None:
        stamp = when.isoformat()
        if deactivate:
            conn.execute(
                """
                UPDATE alerts SET last_triggered_at = ?, is_active = 0, updated_at = ?
                WHERE id = ?
                """,
                (stamp, stamp, alert_id),
            )
        else:
            conn.execute(
                "UPDATE alerts SET last_triggered_at = ? WHERE id = ?",
                (stamp, alert_id),
            )

    # ==================== Triggered Alerts ====================

    @staticmethod
    def _row_to_triggered(row: sqlite3.Row) -> TriggeredAlert:
        return TriggeredAlert(
            id=row["id"],
            alert_id=row["alert_id"],
            symbol=row["symbol"],
            target_price=row["target_price"],
            condition=row["condition"],
            actual_price=row["actual_price"],
            triggered_at=datetime.fromisoformat(row["triggered_at"]),
            is_read=bool(row["is_read"]),
        )

    def create_trigger(
        self,
        alert: Alert,
        actual_price: float,
        triggered_at: Optional[datetime] = None,
        deactivate: bool = False,
    ) -> Optional[TriggeredAlert]:
        """Insert a triggered alert unless an unread one already exists.

        The existence check, the insert and the alert's trigger stamp run
        inside one write transaction, so a failure leaves no trigger behind.

        Args:
            alert: Alert snapshot whose symbol, target and condition are copied.
            actual_price: Price that met the condition.
            triggered_at: Trigger time, defaults to now.
            deactivate: Also set the alert inactive.

        Returns:
            The new TriggeredAlert, or None if an unread trigger exists.

        Raises:
            PersistenceError: On constraint violation (e.g. the alert was
                deleted) or connection failure.
        """
        if alert.id is None:
            raise ValueError("Cannot record a trigger for an unsaved alert")
        triggered = TriggeredAlert(
            alert_id=alert.id,
            symbol=alert.symbol,
            target_price=alert.target_price,
            condition=alert.condition,
            actual_price=actual_price,
            triggered_at=triggered_at or datetime.now(),
            is_read=False,
        )
        with self._connection(immediate=True) as conn:
            unread = conn.execute(
                "SELECT id FROM triggered_alerts WHERE alert_id = ? AND is_read = 0 LIMIT 1",
                (alert.id,),
            ).fetchone()
            if unread:
                return None
            cursor = conn.execute(
                """
                INSERT INTO triggered_alerts
                (alert_id, symbol, target_price, condition, actual_price, triggered_at, is_read)
                VALUES (?, ?, ?, ?, ?, ?, 0)
                """,
                (
                    triggered.alert_id,
                    triggered.symbol,
                    triggered.target_price,
                    triggered.condition,
                    triggered.actual_price,
                    triggered.triggered_at.isoformat(),
                ),
            )
            triggered_id = cursor.lastrowid
            self._stamp_triggered(conn, alert.id, deactivate, triggered.triggered_at)
            return triggered.model_copy(update={"id": triggered_id})

    def has_unread_trigger(self, alert_id: int) -> bool:
        """Check whether the alert has an unacknowledged trigger."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM triggered_alerts WHERE alert_id = ? AND is_read = 0 LIMIT 1",
                (alert_id,),
            ).fetchone()
            return row is not None

    def get_triggered(self, triggered_id: int) -> Optional[TriggeredAlert]:
        """Get a triggered alert by ID."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM triggered_alerts WHERE id = ?", (triggered_id,)
            ).fetchone()
            return self._row_to_triggered(row) if row else None

    def list_triggered(
        self,
        unread_only: bool = False,
        alert_id: Optional[int] = None,
        limit: int = 50,
    ) -> list[TriggeredAlert]:
        """List triggered alerts, newest first."""
        clauses = []
        params: list = []
        if unread_only:
            clauses.append("is_read = 0")
        if alert_id is not None:
            clauses.append("alert_id = ?")
            params.append(alert_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(min(limit, MAX_PAGE_SIZE))

        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM triggered_alerts {where} ORDER BY triggered_at DESC, id DESC LIMIT ?",
                params,
            ).fetchall()
            return [self._row_to_triggered(row) for row in rows]

    def mark_trigger_read(self, triggered_id: int) -> bool:
        """Mark one triggered alert as read.

        Returns:
            True if the row exists.
        """
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE triggered_alerts SET is_read = 1 WHERE id = ?", (triggered_id,)
            )
            return cursor.rowcount > 0

    def mark_all_triggers_read(self) -> int:
        """Mark every unread triggered alert as read.

        Returns:
            Number of rows updated.
        """
        with self._connection() as conn:
            cursor = conn.execute("UPDATE triggered_alerts SET is_read = 1 WHERE is_read = 0")
            return cursor.rowcount

    def delete_triggered(self, triggered_id: int) -> bool:
        """Delete a triggered alert."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM triggered_alerts WHERE id = ?", (triggered_id,))
            return cursor.rowcount > 0

    # ==================== Price Cache ====================

    def get_cached_price(self, symbol: str) -> Optional[CachedPrice]:
        """Get the cached price for a symbol regardless of age."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT symbol, price, updated_at FROM price_cache WHERE symbol = ?",
                (symbol,),
            ).fetchone()
            if row:
                return CachedPrice(
                    symbol=row["symbol"],
                    price=row["price"],
                    updated_at=datetime.fromisoformat(row["updated_at"]),
                )
            return None

    def upsert_cached_price(
        self, symbol: str, price: float, updated_at: datetime
    ) -> CachedPrice:
        """Insert or replace the cached price for a symbol."""
        entry = CachedPrice(symbol=symbol, price=price, updated_at=updated_at)
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO price_cache (symbol, price, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(symbol) DO UPDATE SET
                    price = excluded.price,
                    updated_at = excluded.updated_at
                """,
                (entry.symbol, entry.price, entry.updated_at.isoformat()),
            )
        return entry

    def list_cached_prices(self) -> list[CachedPrice]:
        """Get every cached price, alphabetically."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT symbol, price, updated_at FROM price_cache ORDER BY symbol"
            ).fetchall()
            return [
                CachedPrice(
                    symbol=row["symbol"],
                    price=row["price"],
                    updated_at=datetime.fromisoformat(row["updated_at"]),
                )
                for row in rows
            ]

    def delete_prices_before(self, cutoff: datetime) -> int:
        """Delete cache entries last updated before ``cutoff``.

        Returns:
            Number of entries removed.
        """
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM price_cache WHERE updated_at < ?", (cutoff.isoformat(),)
            )
            return cursor.rowcount

    # ==================== Device Tokens ====================

    @staticmethod
    def _row_to_token(row: sqlite3.Row) -> DeviceToken:
        return DeviceToken(
            id=row["id"],
            token=row["token"],
            user_id=row["user_id"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def register_device_token(
        self, token: str, user_id: Optional[str] = None
    ) -> DeviceToken:
        """Register a device token, reactivating it if already known."""
        if not token:
            raise ValueError("Device token must not be empty")
        now = datetime.now().isoformat()
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO device_tokens (token, user_id, is_active, created_at, updated_at)
                VALUES (?, ?, 1, ?, ?)
                ON CONFLICT(token) DO UPDATE SET
                    user_id = COALESCE(excluded.user_id, device_tokens.user_id),
                    is_active = 1,
                    updated_at = excluded.updated_at
                """,
                (token, user_id, now, now),
            )
            row = conn.execute(
                "SELECT * FROM device_tokens WHERE token = ?", (token,)
            ).fetchone()
            return self._row_to_token(row)

    def get_device_token(self, token: str) -> Optional[DeviceToken]:
        """Get a device token record."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM device_tokens WHERE token = ?", (token,)
            ).fetchone()
            return self._row_to_token(row) if row else None

    def list_device_tokens(
        self, active: Optional[bool] = True, user_id: Optional[str] = None
    ) -> list[DeviceToken]:
        """List device tokens, newest first.

        Args:
            active: Filter by active flag. None returns both.
            user_id: Filter by user.
        """
        clauses = []
        params: list = []
        if active is not None:
            clauses.append("is_active = ?")
            params.append(1 if active else 0)
        if user_id:
            clauses.append("user_id = ?")
            params.append(user_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM device_tokens {where} ORDER BY created_at DESC, id DESC",
                params,
            ).fetchall()
            return [self._row_to_token(row) for row in rows]

    def deactivate_device_token(self, token: str) -> bool:
        """Stop targeting a token.

        Returns:
            True if the token exists.
        """
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE device_tokens SET is_active = 0, updated_at = ? WHERE token = ?",
                (datetime.now().isoformat(), token),
            )
            return cursor.rowcount > 0

    def delete_inactive_device_tokens(self) -> int:
        """Remove tokens that were deactivated.

        Returns:
            Number of tokens removed.
        """
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM device_tokens WHERE is_active = 0")
            return cursor.rowcount

    # ==================== Stats ====================

    def get_stats(self) -> DashboardStats:
        """Get alert and trigger counts."""
        with self._connection() as conn:
            total_alerts = conn.execute("SELECT COUNT(*) AS n FROM alerts").fetchone()["n"]
            active_alerts = conn.execute(
                "SELECT COUNT(*) AS n FROM alerts WHERE is_active = 1"
            ).fetchone()["n"]
            total_triggered = conn.execute(
                "SELECT COUNT(*) AS n FROM triggered_alerts"
            ).fetchone()["n"]
            triggered_today = conn.execute(
                "SELECT COUNT(*) AS n FROM triggered_alerts WHERE date(triggered_at) = ?",
                (date.today().isoformat(),),
            ).fetchone()["n"]
            return DashboardStats(
                total_alerts=total_alerts,
                active_alerts=active_alerts,
                triggered_today=triggered_today,
                total_triggered=total_triggered,
            )
