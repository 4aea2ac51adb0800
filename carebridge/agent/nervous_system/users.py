from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from carebridge.agent.io.contracts import UserIdentity
from carebridge.agent.nervous_system.paths import resolve_directory_db_path

_CONNECT_TIMEOUT_SEC = 10.0


def list_users(*, limit: int = 200, db_path: Path | None = None) -> list[dict[str, Any]]:
    with _connect(db_path) as conn:
        rows = conn.execute(
            "SELECT user_id, phone_number, created_at, updated_at "
            "FROM users ORDER BY created_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [_row_to_user(row) for row in rows]


def get_user(user_id: str, *, db_path: Path | None = None) -> dict[str, Any] | None:
    with _connect(db_path) as conn:
        row = conn.execute(
            "SELECT user_id, phone_number, created_at, updated_at FROM users WHERE user_id = ?",
            (user_id,),
        ).fetchone()
    return _row_to_user(row) if row else None


def get_user_by_phone(phone_number: str, *, db_path: Path | None = None) -> dict[str, Any] | None:
    phone = str(phone_number or "").strip()
    if not phone:
        return None
    with _connect(db_path) as conn:
        row = conn.execute(
            "SELECT user_id, phone_number, created_at, updated_at FROM users WHERE phone_number = ?",
            (phone,),
        ).fetchone()
    return _row_to_user(row) if row else None


def create_user_if_absent(phone_number: str, *, db_path: Path | None = None) -> dict[str, Any]:
    """Insert a user for ``phone_number`` unless one exists, then return it.

    The unique constraint on ``phone_number`` makes concurrent callers
    converge on the same row.
    """
    phone = str(phone_number or "").strip()
    if not phone:
        raise ValueError("phone_number is required")
    now = _now_iso()
    with _connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO users (user_id, phone_number, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(phone_number) DO NOTHING
            """,
            (str(uuid.uuid4()), phone, now, now),
        )
        conn.commit()
        row = conn.execute(
            "SELECT user_id, phone_number, created_at, updated_at FROM users WHERE phone_number = ?",
            (phone,),
        ).fetchone()
    if row is None:
        raise RuntimeError("user row missing after insert")
    return _row_to_user(row)


class SqliteUserDirectory:
    """UserDirectory backed by the users table."""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path

    def find_by_address(self, address: str) -> UserIdentity | None:
        record = get_user_by_phone(address, db_path=self._db_path)
        return _to_identity(record) if record else None

    def create_user(self, address: str) -> UserIdentity:
        return _to_identity(create_user_if_absent(address, db_path=self._db_path))


def _connect(db_path: Path | None) -> sqlite3.Connection:
    return sqlite3.connect(db_path or resolve_directory_db_path(), timeout=_CONNECT_TIMEOUT_SEC)


def _to_identity(record: dict[str, Any]) -> UserIdentity:
    return UserIdentity(
        user_id=str(record["user_id"]),
        phone_number=str(record["phone_number"]),
        created_at=record.get("created_at"),
    )


def _row_to_user(row: sqlite3.Row | tuple | None) -> dict[str, Any]:
    if row is None:
        return {}
    if not isinstance(row, tuple):
        row = tuple(row)
    return {
        "user_id": row[0],
        "phone_number": row[1],
        "created_at": row[2],
        "updated_at": row[3],
    }


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
