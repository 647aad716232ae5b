from __future__ import annotations

"""
Record stores: the collaborators that own the parts table.

The engine only needs two calls from a store:

* ``all_records()``: every record, used to build a snapshot.
* ``by_identifier(identifier)``: records whose part or reference
  number normalizes to ``identifier``.  This is a direct-lookup path;
  the in-memory snapshot answers the same question on its own.

Identifier columns are always read as text, whatever their declared
SQL type.

Every I/O or driver failure is re-raised as
:class:`~partsxref.exceptions.StoreUnavailable` so callers deal with a
single failure type.
"""

import re
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd
from loguru import logger

from .config import (
    PARTS_DB_PATH,
    PARTS_SNAPSHOT_PATH,
    PARTS_TABLE,
    RECORD_SOURCE,
    PartRecord,
)
from .exceptions import StoreUnavailable
from .normalize import normalize_identifier
from .parts_catalog import CANONICAL_COLUMNS, load_parts_snapshot, records_from_df

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RecordStore:
    """Interface every record store implements."""

    name = "store"

    def all_records(self) -> List[PartRecord]:
        raise NotImplementedError

    def by_identifier(self, identifier: str) -> List[PartRecord]:
        """Default lookup: scan ``all_records()``."""
        if not identifier:
            return []
        return [
            r
            for r in self.all_records()
            if identifier in (normalize_identifier(r.part_number), normalize_identifier(r.reference_number))
        ]


class InMemoryRecordStore(RecordStore):
    """Serves a fixed list of records (tests, scripts, embedding)."""

    name = "memory"

    def __init__(self, records: Iterable[PartRecord] = ()):
        self._records = list(records)

    def all_records(self) -> List[PartRecord]:
        return list(self._records)

    def replace(self, records: Iterable[PartRecord]) -> None:
        """Swap the served records; takes effect on the next refresh."""
        self._records = list(records)


class FileRecordStore(RecordStore):
    """Reads a snapshot/export file (Parquet, CSV or Excel) on every call."""

    name = "file"

    def __init__(self, path: Path = PARTS_SNAPSHOT_PATH):
        self.path = Path(path)

    def all_records(self) -> List[PartRecord]:
        if not self.path.exists() and not self.path.with_suffix(".csv").exists():
            raise StoreUnavailable(f"Parts snapshot not found: {self.path}")
        try:
            df = load_parts_snapshot(self.path)
        except Exception as e:
            logger.exception("Failed to read parts snapshot {}: {}", self.path, e)
            raise StoreUnavailable(f"Could not read parts snapshot {self.path}") from e
        return records_from_df(df)


class SqlRecordStore(RecordStore):
    """
    Reads the parts table from SQLite.  A connection is opened per call
    so the store can be shared across request threads.
    """

    name = "sqlite"

    def __init__(self, db_path: Path = PARTS_DB_PATH, table: str = PARTS_TABLE):
        if not _TABLE_NAME_RE.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = Path(db_path)
        self.table = table

    def _connect(self) -> sqlite3.Connection:
        # mode=rw refuses to create a missing database file
        return sqlite3.connect(f"file:{self.db_path}?mode=rw", uri=True)

    def _query(self, sql: str, params: tuple = ()) -> List[PartRecord]:
        try:
            with closing(self._connect()) as conn:
                df = pd.read_sql_query(sql, conn, params=params)
        except (sqlite3.Error, pd.errors.DatabaseError) as e:
            logger.exception("Parts table query failed on {}: {}", self.db_path, e)
            raise StoreUnavailable(f"Could not query {self.table} in {self.db_path}") from e
        return records_from_df(df)

    def all_records(self) -> List[PartRecord]:
        return self._query(f"SELECT {_TEXT_COLUMNS} FROM {self.table}")

    def by_identifier(self, identifier: str) -> List[PartRecord]:
        """
        Records whose part or reference number normalizes to
        ``identifier``.  The SQL strips spaces, tabs, line breaks, ``-``
        and ``/``.  Other Unicode whitespace (non-breaking space etc.) is
        only stripped by :func:`normalize_identifier`, so the snapshot
        remains the canonical lookup path.
        """
        if not identifier:
            return []
        npn = _sql_normalized("part_number")
        nrn = _sql_normalized("reference_number")
        sql = f"SELECT {_TEXT_COLUMNS} FROM {self.table} WHERE {npn} = ? OR {nrn} = ?"
        return self._query(sql, (identifier, identifier))


# INTEGER columns holding a NULL would otherwise come back from pandas as
# float64 ("12345.0")
_TEXT_COLUMNS = ", ".join(f"CAST({col} AS TEXT) AS {col}" for col in CANONICAL_COLUMNS)

_SQL_STRIPPED = ("' '", "char(9)", "char(10)", "char(13)", "'-'", "'/'")


def _sql_normalized(column: str) -> str:
    expr = f"UPPER(CAST({column} AS TEXT))"
    for token in _SQL_STRIPPED:
        expr = f"REPLACE({expr}, {token}, '')"
    return expr


def make_record_store(
    source: str = RECORD_SOURCE,
    path: Optional[Path] = None,
    db_path: Optional[Path] = None,
    table: Optional[str] = None,
) -> RecordStore:
    """Build the store named by ``source`` (``file`` or ``sqlite``)."""
    source = (source or "file").strip().lower()
    if source == "file":
        return FileRecordStore(path or PARTS_SNAPSHOT_PATH)
    if source == "sqlite":
        return SqlRecordStore(db_path or PARTS_DB_PATH, table or PARTS_TABLE)
    raise ValueError(f"Unknown record source: {source!r} (expected 'file' or 'sqlite')")
