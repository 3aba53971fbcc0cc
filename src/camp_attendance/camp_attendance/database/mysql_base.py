from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def load_json_column(value: Any) -> Dict[str, Any]:
    """Decode a MySQL JSON column.

    mysql-connector returns JSON columns as str, bytes or bytearray depending
    on the connector implementation.
    """

    if value is None:
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value) if value else {}
    if isinstance(value, dict):
        return dict(value)
    raise TypeError(f"Unsupported JSON column value type: {type(value)!r}")


def dump_json_column(fields: Dict[str, Any]) -> str:
    return json.dumps(fields, ensure_ascii=False, default=str)
