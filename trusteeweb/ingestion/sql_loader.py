"""
SQL Relationship Table
======================

SQLite-backed relationship table for permission data imported once and
queried per run.

Tables:
    <table_name>           - Relationship rows (the six mandatory columns)
    temp.<rows table>      - Validated copy of the rows, one per connection
    temp.<exclusion table> - Per-view excluded identities (ignore-lists,
                             threshold exclusions)

Design Decisions:
-----------------
1. Identities are validated and folded once, in Python, when the table is
   opened (trusteeweb_identity SQL function). Rows with a blank or
   non-address identity are dropped from the copy and counted in
   skipped_rows, the same rule the CSV loader applies
2. Lookups run against the copy, indexed on the folded identities
3. Rows are returned in source rowid order so lookups match the in-memory table
4. Duplicate (mailbox, trustee) rows are folded in Python with the same
   merge rule as the in-memory table
5. Any sqlite3 failure during a lookup is raised as TableLookupError
"""

import itertools
import re
import sqlite3
from pathlib import Path
from typing import Iterable, Iterator, Optional

from ..config import IgnoreConfig
from ..errors import ConfigError, SchemaError, TableLookupError, ValidationError
from ..model.identity import normalize_identity, validate_identity
from ..model.relationship_table import RelationshipTable
from ..model.schemas import RELATIONSHIP_COLUMNS, MailboxTrusteeEdge, PermissionType
from .csv_loader import check_file, parse_permission_types, read_canonical_rows

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_temp_ids = itertools.count(1)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    MailboxIdentity TEXT NOT NULL,
    MailboxType     TEXT NOT NULL DEFAULT '',
    PermissionType  TEXT NOT NULL,
    AccessRights    TEXT NOT NULL DEFAULT '',
    TrusteeIdentity TEXT NOT NULL,
    TrusteeType     TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_ROWS_SQL = """
CREATE TABLE {rows} (
    seq             INTEGER PRIMARY KEY,
    MailboxIdentity TEXT,
    MailboxType     TEXT,
    PermissionType  TEXT,
    AccessRights    TEXT,
    TrusteeIdentity TEXT,
    TrusteeType     TEXT
);
"""

_SELECT_COLUMNS = ", ".join(RELATIONSHIP_COLUMNS)


def _fold_identity(value) -> Optional[str]:
    """SQL function: the validated, lower-cased identity, or NULL if invalid."""
    if not isinstance(value, str):
        return None
    try:
        return validate_identity(value)
    except ValidationError:
        return None


def _check_table_name(table_name: str) -> str:
    if not _IDENTIFIER.match(table_name or ""):
        raise ConfigError(f"Invalid SQL table name: {table_name!r}")
    return table_name


def import_csv_files(database: str, file_paths: list[str],
                     table_name: str = "MailboxTrustee", replace: bool = False,
                     log_func=None) -> int:
    """Import permission CSV exports into a SQLite relationship table.

    Rows are stored as exported (header variants normalized); validation and
    ignore-lists are applied when the table is opened.

    Args:
        database: Path to the SQLite database (created if missing)
        file_paths: CSV files to import
        table_name: Destination table
        replace: Delete existing rows before importing
        log_func: Optional function receiving progress messages

    Returns:
        Number of rows imported

    Raises:
        SchemaError: If a file is missing or lacks mandatory columns
    """
    table_name = _check_table_name(table_name)
    for file_path in file_paths:
        check_file(file_path)

    insert_sql = (
        f"INSERT INTO {table_name} ({', '.join(RELATIONSHIP_COLUMNS)}) "
        f"VALUES ({', '.join('?' for _ in RELATIONSHIP_COLUMNS)})"
    )

    imported = 0
    conn = sqlite3.connect(database)
    try:
        conn.executescript(_CREATE_TABLE_SQL.format(table=table_name))
        if replace:
            conn.execute(f"DELETE FROM {table_name}")
        for file_path in file_paths:
            rows = [
                tuple(row[column] for column in RELATIONSHIP_COLUMNS)
                for row in read_canonical_rows(file_path)
            ]
            conn.executemany(insert_sql, rows)
            imported += len(rows)
            if log_func:
                log_func(f"[+] Imported {len(rows)} rows from {Path(file_path).name}")
        conn.commit()
    except sqlite3.Error as e:
        raise TableLookupError(f"Import into {database} failed: {e}") from e
    finally:
        conn.close()

    return imported


class SqlRelationshipTable(RelationshipTable):
    """Relationship table backed by a SQLite table.

    Usage:
        import_csv_files("perms.db", ["FullAccess.csv"])
        table = SqlRelationshipTable("perms.db")
        table.lookup_by_trustee("jane@contoso.com")

    Each instance is a filtered view: exclude() returns a new view sharing
    the same connection and validated rows with additional excluded identities.
    """

    def __init__(self, database: str, table_name: str = "MailboxTrustee",
                 ignore: Optional[IgnoreConfig] = None,
                 connection: Optional[sqlite3.Connection] = None):
        """Open and validate the relationship table.

        Args:
            database: Path to the SQLite database
            table_name: Relationship table name
            ignore: Ignore-lists applied to every query
            connection: Existing connection to reuse (database is then informational)

        Raises:
            SchemaError: If the table is missing, lacks mandatory columns,
                or holds an unknown permission type
            TableLookupError: If the database cannot be opened
        """
        self.database = database
        self.table_name = _check_table_name(table_name)
        ignore = ignore or IgnoreConfig()

        if connection is None:
            if not Path(database).exists():
                raise SchemaError(f"SQL database not found: {database}", source=database)
            try:
                connection = sqlite3.connect(database)
            except sqlite3.Error as e:
                raise TableLookupError(f"Cannot open {database}: {e}") from e
        self._conn = connection

        self._check_schema()
        self._rows_table, self.skipped_rows = self._copy_valid_rows()
        self._exclusion_table = self._create_exclusion_table()
        self._ignored_permission_values = self._resolve_ignored_permissions(
            parse_permission_types(ignore.permission_types)
        )

        self._add_exclusions(
            [normalize_identity(i) for i in ignore.mailbox_identities], "mailbox"
        )
        self._add_exclusions(
            [normalize_identity(i) for i in ignore.trustee_identities], "trustee"
        )

    @classmethod
    def _derive(cls, parent: "SqlRelationshipTable") -> "SqlRelationshipTable":
        view = cls.__new__(cls)
        view.database = parent.database
        view.table_name = parent.table_name
        view._conn = parent._conn
        view._rows_table = parent._rows_table
        view.skipped_rows = parent.skipped_rows
        view._ignored_permission_values = list(parent._ignored_permission_values)
        view._exclusion_table = view._create_exclusion_table()
        view._run(
            f"INSERT INTO {view._exclusion_table} SELECT identity, role "
            f"FROM {parent._exclusion_table}"
        )
        return view

    def close(self) -> None:
        """Close the underlying SQLite connection (shared by derived views)."""
        self._conn.close()

    # -- Schema ------------------------------------------------------------

    def _check_schema(self) -> None:
        try:
            info = self._conn.execute(f"PRAGMA table_info({self.table_name})").fetchall()
        except sqlite3.Error as e:
            raise TableLookupError(f"Cannot read schema of {self.table_name}: {e}") from e

        if not info:
            raise SchemaError(
                f"Table {self.table_name} not found in {self.database}",
                source=self.table_name,
                missing_columns=list(RELATIONSHIP_COLUMNS),
            )

        present = {row[1].lower() for row in info}
        missing = [c for c in RELATIONSHIP_COLUMNS if c.lower() not in present]
        if missing:
            raise SchemaError(
                f"{self.table_name} is missing required column(s): {', '.join(missing)}",
                source=self.table_name,
                missing_columns=missing,
            )

        for (value,) in self._run(f"SELECT DISTINCT PermissionType FROM {self.table_name}"):
            PermissionType.from_string(value)

    def _copy_valid_rows(self) -> tuple[str, int]:
        """Copy rows with validated identities into an indexed temp table.

        Returns:
            (temp table name, number of rows dropped for a blank or
            non-address identity)
        """
        name = f"temp.trusteeweb_rows_{next(_temp_ids)}"
        short_name = name.split('.', 1)[1]
        try:
            self._conn.create_function("trusteeweb_identity", 1, _fold_identity,
                                       deterministic=True)
            self._conn.executescript(_CREATE_ROWS_SQL.format(rows=name))
            self._conn.execute(
                f"INSERT INTO {name} (seq, {_SELECT_COLUMNS}) "
                f"SELECT rowid, trusteeweb_identity(MailboxIdentity), MailboxType, PermissionType, "
                f"AccessRights, trusteeweb_identity(TrusteeIdentity), TrusteeType "
                f"FROM {self.table_name}"
            )
            skipped = self._conn.execute(
                f"DELETE FROM {name} WHERE MailboxIdentity IS NULL OR TrusteeIdentity IS NULL"
            ).rowcount
            self._conn.execute(f"CREATE INDEX {name}_mailbox ON {short_name}(MailboxIdentity)")
            self._conn.execute(f"CREATE INDEX {name}_trustee ON {short_name}(TrusteeIdentity)")
        except sqlite3.Error as e:
            raise TableLookupError(f"Cannot read rows of {self.table_name}: {e}") from e
        return name, skipped

    def _create_exclusion_table(self) -> str:
        name = f"temp.trusteeweb_excluded_{next(_temp_ids)}"
        self._run(f"CREATE TABLE {name} (identity TEXT NOT NULL, role TEXT NOT NULL)")
        self._run(f"CREATE INDEX {name}_idx ON {name.split('.', 1)[1]}(identity, role)")
        return name

    def _resolve_ignored_permissions(self, ignored: set) -> list[str]:
        """Map ignored PermissionTypes to the raw values stored in the table."""
        if not ignored:
            return []
        values = []
        for (value,) in self._run(f"SELECT DISTINCT PermissionType FROM {self._rows_table}"):
            if PermissionType.from_string(value) in ignored:
                values.append(value)
        return values

    def _add_exclusions(self, identities: Iterable[str], role: str) -> None:
        rows = [(identity, role) for identity in identities if identity]
        if not rows:
            return
        try:
            self._conn.executemany(
                f"INSERT INTO {self._exclusion_table} (identity, role) VALUES (?, ?)", rows
            )
        except sqlite3.Error as e:
            raise TableLookupError(f"Cannot record exclusions: {e}") from e

    # -- Queries -----------------------------------------------------------

    def _run(self, sql: str, params: Iterable = ()) -> list:
        try:
            return self._conn.execute(sql, list(params)).fetchall()
        except sqlite3.Error as e:
            raise TableLookupError(f"Query on {self.table_name} failed: {e}") from e

    def _where(self) -> tuple[str, list]:
        clause = (
            f"MailboxIdentity NOT IN (SELECT identity FROM {self._exclusion_table} "
            f"WHERE role = 'mailbox') "
            f"AND TrusteeIdentity NOT IN (SELECT identity FROM {self._exclusion_table} "
            f"WHERE role = 'trustee')"
        )
        params = list(self._ignored_permission_values)
        if params:
            clause += f" AND PermissionType NOT IN ({', '.join('?' for _ in params)})"
        return clause, params

    def _select(self, condition: str = "", condition_params: Iterable = ()) -> list[MailboxTrusteeEdge]:
        where, params = self._where()
        if condition:
            where = f"{where} AND {condition}"
            params.extend(condition_params)
        rows = self._run(
            f"SELECT {_SELECT_COLUMNS} FROM {self._rows_table} WHERE {where} ORDER BY seq",
            params,
        )
        return _fold_rows(rows)

    def lookup_by_mailbox(self, identity: str) -> list[MailboxTrusteeEdge]:
        return self._select("MailboxIdentity = ?", [normalize_identity(identity)])

    def lookup_by_trustee(self, identity: str) -> list[MailboxTrusteeEdge]:
        return self._select("TrusteeIdentity = ?", [normalize_identity(identity)])

    def edges(self) -> Iterator[MailboxTrusteeEdge]:
        yield from self._select()

    @property
    def edge_count(self) -> int:
        where, params = self._where()
        rows = self._run(
            f"SELECT COUNT(*) FROM (SELECT DISTINCT MailboxIdentity, TrusteeIdentity "
            f"FROM {self._rows_table} WHERE {where})",
            params,
        )
        return rows[0][0]

    def mailbox_fanout(self) -> dict[str, int]:
        where, params = self._where()
        rows = self._run(
            f"SELECT MailboxIdentity, COUNT(DISTINCT TrusteeIdentity) "
            f"FROM {self._rows_table} WHERE {where} GROUP BY MailboxIdentity ORDER BY MIN(seq)",
            params,
        )
        return {mailbox: count for mailbox, count in rows}

    def trustee_fanout(self, excluding_mailboxes: Iterable[str] = ()) -> dict[str, int]:
        view = self.exclude(mailboxes=excluding_mailboxes)
        where, params = view._where()
        rows = view._run(
            f"SELECT TrusteeIdentity, COUNT(DISTINCT MailboxIdentity) "
            f"FROM {view._rows_table} WHERE {where} GROUP BY TrusteeIdentity ORDER BY MIN(seq)",
            params,
        )
        return {trustee: count for trustee, count in rows}

    def exclude(self, mailboxes: Iterable[str] = (),
                trustees: Iterable[str] = ()) -> "SqlRelationshipTable":
        view = SqlRelationshipTable._derive(self)
        view._add_exclusions([normalize_identity(i) for i in mailboxes], "mailbox")
        view._add_exclusions([normalize_identity(i) for i in trustees], "trustee")
        return view


def _fold_rows(rows: list) -> list[MailboxTrusteeEdge]:
    """Build edges from raw rows, merging duplicate pairs in first-seen order."""
    edges: dict[tuple, MailboxTrusteeEdge] = {}
    for mailbox, mailbox_type, permission, rights, trustee, trustee_type in rows:
        edge = MailboxTrusteeEdge(
            mailbox_identity=mailbox,
            mailbox_type=mailbox_type or "",
            trustee_identity=trustee,
            trustee_type=trustee_type or "",
            permission_type=PermissionType.from_string(permission),
            access_rights=rights or "",
        )
        if edge.key in edges:
            edges[edge.key].merge(edge)
        else:
            edges[edge.key] = edge
    return list(edges.values())
