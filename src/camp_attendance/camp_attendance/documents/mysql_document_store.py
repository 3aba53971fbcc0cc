from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Any, Mapping, Optional, Sequence

import mysql.connector

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor as _db_cursor
from ..database.mysql_base import dump_json_column, fetchall, fetchone, load_json_column
from .store import DocumentStore, DocumentStoreError, StoredDocument, collection_name_of


@contextmanager
def db_cursor(conn_factory: DatabaseConnection):
    try:
        with _db_cursor(conn_factory) as (conn, cur):
            yield conn, cur
    except mysql.connector.Error as e:
        raise DocumentStoreError(str(e)) from e


class MySQLDocumentStore(DocumentStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, collection_path: str, doc_id: str) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT data FROM documents WHERE collection_path=%s AND doc_id=%s",
                (collection_path, doc_id),
            )
            row = fetchone(cur)
            if not row:
                return None
            return load_json_column(row["data"])

    def set(self, collection_path: str, doc_id: str, fields: Mapping[str, Any], *, merge: bool = True) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            data = dict(fields)
            if merge:
                cur.execute(
                    "SELECT data FROM documents WHERE collection_path=%s AND doc_id=%s FOR UPDATE",
                    (collection_path, doc_id),
                )
                row = fetchone(cur)
                if row:
                    data = {**load_json_column(row["data"]), **data}

            cur.execute(
                """
                INSERT INTO documents(collection_path, collection_name, doc_id, data)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE data=VALUES(data)
                """,
                (collection_path, collection_name_of(collection_path), doc_id, dump_json_column(data)),
            )

    def update(self, collection_path: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT data FROM documents WHERE collection_path=%s AND doc_id=%s FOR UPDATE",
                (collection_path, doc_id),
            )
            row = fetchone(cur)
            if not row:
                return False
            data = {**load_json_column(row["data"]), **dict(fields)}
            cur.execute(
                "UPDATE documents SET data=%s WHERE collection_path=%s AND doc_id=%s",
                (dump_json_column(data), collection_path, doc_id),
            )
            return True

    def create(self, collection_path: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO documents(collection_path, collection_name, doc_id, data)
                VALUES(%s,%s,%s,%s)
                """,
                (collection_path, collection_name_of(collection_path), doc_id, dump_json_column(dict(fields))),
            )
            return cur.rowcount > 0

    def add(self, collection_path: str, fields: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO documents(collection_path, collection_name, doc_id, data)
                VALUES(%s,%s,%s,%s)
                """,
                (collection_path, collection_name_of(collection_path), doc_id, dump_json_column(dict(fields))),
            )
        return doc_id

    def query_all(self, collection_name: str) -> Sequence[StoredDocument]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT collection_path, doc_id, data FROM documents WHERE collection_name=%s",
                (collection_name,),
            )
            rows = fetchall(cur)
            return [
                StoredDocument(
                    collection_path=r["collection_path"],
                    doc_id=r["doc_id"],
                    data=load_json_column(r["data"]),
                )
                for r in rows
            ]
