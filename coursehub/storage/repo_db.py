"""
Postgres-backed document store (psycopg3 + JSONB).

Security:
- Use a dedicated application login; never a superuser DSN in production.
- Identifiers are composed via `psycopg.sql`; values are always bound.

Design:
- One `documents` table keyed by `(collection, id)`; the document body lives
  in a JSONB column so every content kind shares one query path.
- Each call opens a short-lived connection bounded by `connect_timeout` and a
  per-session `statement_timeout`. Driver failures are mapped to
  `StoreUnavailable` (connectivity, timeouts) or `StoreError` (everything else).
"""
from __future__ import annotations

import logging
import os
import re
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from .errors import StoreError, StoreUnavailable
from .ports import ASC, OrderBy

logger = logging.getLogger("coursehub.storage")

_TS_SQL = "to_char({} at time zone 'utc', 'YYYY-MM-DD\"T\"HH24:MI:SS.US\"+00:00\"')"

# Server-managed fields map to real columns instead of JSONB keys
_COLUMN_FIELDS = {"id": "id", "createdAt": "created_at", "updatedAt": "updated_at"}


def _dsn() -> str:
    for candidate in (os.getenv("DATABASE_URL"), os.getenv("COURSEHUB_DATABASE_URL")):
        if candidate:
            return candidate
    raise RuntimeError("Database DSN unavailable for DBDocumentStore (set DATABASE_URL)")


def _row_to_doc(row: Tuple) -> dict:
    body = dict(row[1] or {})
    body["id"] = row[0]
    body["createdAt"] = row[2]
    body["updatedAt"] = row[3]
    return body


def _strip_managed(doc: Mapping[str, Any]) -> dict:
    return {k: v for k, v in doc.items() if k not in _COLUMN_FIELDS}


class DBDocumentStore:
    """Document store on a single Postgres table.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string. Defaults to `DATABASE_URL`.
    table:
        Fully qualified table name. Defaults to `public.documents`.
    timeout_ms:
        Statement timeout applied to every connection.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.documents", timeout_ms: int = 8000) -> None:
        self._dsn = dsn or _dsn()
        if not re.match(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$", table or ""):
            raise ValueError("Invalid table name")
        schema, _, name = table.rpartition(".")
        self._table = sql.Identifier(schema or "public", name)
        self._timeout_ms = int(timeout_ms)

    @contextmanager
    def _cursor(self, operation: str) -> Iterator[psycopg.Cursor]:
        try:
            with psycopg.connect(
                self._dsn,
                connect_timeout=5,
                options=f"-c statement_timeout={self._timeout_ms}",
            ) as conn:
                with conn.cursor() as cur:
                    yield cur
        except psycopg.OperationalError as exc:
            logger.warning("Store unavailable during %s: %s", operation, exc.__class__.__name__)
            raise StoreUnavailable(operation, exc.__class__.__name__) from exc
        except psycopg.Error as exc:
            logger.error("Store error during %s: %s", operation, exc.__class__.__name__)
            raise StoreError(operation, exc.__class__.__name__) from exc

    def _select_columns(self) -> sql.Composable:
        return sql.SQL(", ").join(
            [
                sql.SQL("id::text"),
                sql.SQL("body"),
                sql.SQL(_TS_SQL.format("created_at")),
                sql.SQL(_TS_SQL.format("updated_at")),
            ]
        )

    def ensure_schema(self) -> None:
        """Create the documents table and indexes when missing (idempotent)."""
        with self._cursor("ensure_schema") as cur:
            cur.execute(
                sql.SQL(
                    """
                    create table if not exists {} (
                        id uuid primary key default gen_random_uuid(),
                        collection text not null,
                        body jsonb not null default '{{}}'::jsonb,
                        created_at timestamptz not null default now(),
                        updated_at timestamptz not null default now()
                    )
                    """
                ).format(self._table)
            )
            cur.execute(
                sql.SQL("create index if not exists documents_collection_idx on {} (collection)").format(self._table)
            )
            cur.execute(
                sql.SQL("create index if not exists documents_body_gin_idx on {} using gin (body jsonb_path_ops)").format(
                    self._table
                )
            )

    def _where(self, collection: str, where: Mapping[str, Any] | None) -> Tuple[sql.Composable, list]:
        clauses = [sql.SQL("collection = %s")]
        params: list = [collection]
        body_filter = {}
        for key, value in (where or {}).items():
            if key == "id":
                clauses.append(sql.SQL("id = %s::uuid"))
                params.append(value)
            else:
                body_filter[key] = value
        if body_filter:
            # Containment covers equality on top-level keys, including booleans.
            clauses.append(sql.SQL("body @> %s"))
            params.append(Jsonb(body_filter))
        return sql.SQL(" and ").join(clauses), params

    def _order(self, order_by: OrderBy) -> Tuple[sql.Composable, list]:
        parts = []
        params: list = []
        for field, direction in order_by:
            keyword = sql.SQL("asc") if direction == ASC else sql.SQL("desc")
            if field in _COLUMN_FIELDS:
                parts.append(sql.SQL("{} {} nulls last").format(sql.Identifier(_COLUMN_FIELDS[field]), keyword))
            else:
                parts.append(sql.SQL("body -> %s {} nulls last").format(keyword))
                params.append(field)
        parts.append(sql.SQL("created_at asc"))
        return sql.SQL(", ").join(parts), params

    def insert(self, collection: str, doc: Mapping[str, Any]) -> dict:
        with self._cursor("insert") as cur:
            cur.execute(
                sql.SQL("insert into {} (collection, body) values (%s, %s) returning {}").format(
                    self._table, self._select_columns()
                ),
                (collection, Jsonb(_strip_managed(doc))),
            )
            row = cur.fetchone()
        return _row_to_doc(row)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self.find_one(collection, {"id": doc_id})

    def find_one(self, collection: str, where: Mapping[str, Any]) -> Optional[dict]:
        items = self.find(collection, where=where, limit=1)
        return items[0] if items else None

    def find(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: OrderBy = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]:
        where_sql, where_params = self._where(collection, where)
        order_sql, order_params = self._order(order_by)
        stmt = sql.SQL("select {} from {} where {} order by {}").format(
            self._select_columns(), self._table, where_sql, order_sql
        )
        params = where_params + order_params
        if limit is not None:
            stmt = stmt + sql.SQL(" limit %s")
            params.append(int(limit))
        if offset:
            stmt = stmt + sql.SQL(" offset %s")
            params.append(int(offset))
        with self._cursor("find") as cur:
            cur.execute(stmt, params)
            rows = cur.fetchall()
        return [_row_to_doc(r) for r in rows]

    def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        where_sql, params = self._where(collection, where)
        with self._cursor("count") as cur:
            cur.execute(sql.SQL("select count(*) from {} where {}").format(self._table, where_sql), params)
            row = cur.fetchone()
        return int(row[0]) if row else 0

    def update(self, collection: str, doc_id: str, changes: Mapping[str, Any]) -> Optional[dict]:
        with self._cursor("update") as cur:
            cur.execute(
                sql.SQL(
                    "update {} set body = body || %s, updated_at = now() "
                    "where collection = %s and id = %s::uuid returning {}"
                ).format(self._table, self._select_columns()),
                (Jsonb(_strip_managed(changes)), collection, doc_id),
            )
            row = cur.fetchone()
        return _row_to_doc(row) if row else None

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._cursor("delete") as cur:
            cur.execute(
                sql.SQL("delete from {} where collection = %s and id = %s::uuid returning id").format(self._table),
                (collection, doc_id),
            )
            row = cur.fetchone()
        return row is not None


__all__ = ["DBDocumentStore"]
