"""
Permission Export CSV Loader
============================

Parses mailbox permission exports and builds a relationship table.

Supported Formats:
- Export-Csv output of mailbox permission reports (with or without the
  leading "#TYPE ..." line PowerShell writes)
- UTF-8 files with or without a byte-order mark
- Header variants from different report scripts (Identity/Mailbox,
  Trustee/User, Permission, Rights)

Design Decisions:
-----------------
1. Every source is schema-checked before any row is read; a source missing
   a mandatory column aborts the load
2. Rows from all sources are concatenated in input order, then ignore-lists
   are applied, then duplicates collapse into one edge per pair
3. Rows whose identities are not addresses (NT AUTHORITY\\SELF, S-1-5-...
   orphaned SIDs) are skipped and counted, not fatal
"""

import csv
from pathlib import Path
from typing import Iterable, Iterator, Optional

from ..config import IgnoreConfig
from ..errors import ConfigError, SchemaError, ValidationError
from ..model.identity import normalize_identity, validate_identity
from ..model.relationship_table import InMemoryRelationshipTable
from ..model.schemas import RELATIONSHIP_COLUMNS, MailboxTrusteeEdge, PermissionType


# Header variants seen across report scripts -> canonical column
COLUMN_ALIASES = {
    "mailboxidentity": "MailboxIdentity",
    "mailbox": "MailboxIdentity",
    "identity": "MailboxIdentity",
    "mailboxprimarysmtpaddress": "MailboxIdentity",
    "mailboxtype": "MailboxType",
    "recipienttypedetails": "MailboxType",
    "permissiontype": "PermissionType",
    "permission": "PermissionType",
    "accessrights": "AccessRights",
    "rights": "AccessRights",
    "trusteeidentity": "TrusteeIdentity",
    "trustee": "TrusteeIdentity",
    "user": "TrusteeIdentity",
    "trusteeprimarysmtpaddress": "TrusteeIdentity",
    "trusteetype": "TrusteeType",
    "trusteerecipienttypedetails": "TrusteeType",
}


def normalize_header(fieldnames: Iterable[str]) -> dict[str, str]:
    """Map raw header names to canonical column names.

    Returns:
        Dictionary of canonical column -> raw header name (first match wins)
    """
    mapping = {}
    for raw in fieldnames or []:
        if raw is None:
            continue
        key = "".join(raw.split()).lower()
        canonical = COLUMN_ALIASES.get(key)
        if canonical and canonical not in mapping:
            mapping[canonical] = raw
    return mapping


def missing_columns(mapping: dict[str, str]) -> list[str]:
    """Return mandatory columns absent from a header mapping, in column order."""
    return [column for column in RELATIONSHIP_COLUMNS if column not in mapping]


def parse_permission_types(names: Iterable[str]) -> set[PermissionType]:
    """Parse ignore-list permission names.

    Raises:
        ConfigError: If a name is not a known permission type
    """
    parsed = set()
    for name in names or []:
        try:
            parsed.add(PermissionType.from_string(name))
        except SchemaError as e:
            raise ConfigError(f"Invalid ignore permission type: {name!r}") from e
    return parsed


def check_header(fieldnames: Iterable[str], source: str) -> dict[str, str]:
    """Validate a header and return its canonical column mapping.

    Raises:
        SchemaError: If any mandatory column is absent
    """
    mapping = normalize_header(fieldnames)
    missing = missing_columns(mapping)
    if missing:
        raise SchemaError(
            f"{source} is missing required column(s): {', '.join(missing)}",
            source=source,
            missing_columns=missing,
        )
    return mapping


def check_file(file_path: str) -> dict[str, str]:
    """Validate a CSV file's header without reading its rows."""
    path = Path(file_path)
    if not path.exists():
        raise SchemaError(f"Input file not found: {file_path}", source=str(file_path))

    with open(path, 'r', encoding='utf-8-sig', newline='') as f:
        reader = csv.DictReader(_skip_type_line(f))
        return check_header(reader.fieldnames or [], path.name)


def read_canonical_rows(file_path: str) -> Iterator[dict]:
    """Yield rows of a CSV export keyed by the canonical column names.

    Raises:
        SchemaError: If the file is missing or lacks mandatory columns
    """
    path = Path(file_path)
    mapping = check_file(file_path)

    with open(path, 'r', encoding='utf-8-sig', newline='') as f:
        reader = csv.DictReader(_skip_type_line(f))
        for row in reader:
            yield {
                column: (row.get(mapping[column]) or "").strip()
                for column in RELATIONSHIP_COLUMNS
            }


class RelationshipCsvLoader:
    """Loader for mailbox permission CSV exports.

    Usage:
        loader = RelationshipCsvLoader(ignore=IgnoreConfig(trustee_identities=["svc@contoso.com"]))
        table = loader.load_files(["FullAccess.csv", "SendAs.csv"])

        print(table.edge_count, loader.skipped_rows)
    """

    def __init__(self, ignore: Optional[IgnoreConfig] = None, verbose: bool = False,
                 log_func=print):
        """Initialize the loader.

        Args:
            ignore: Ignore-lists to apply (nothing ignored if None)
            verbose: Whether to print progress messages
            log_func: Function receiving progress messages
        """
        ignore = ignore or IgnoreConfig()
        self.verbose = verbose
        self.log_func = log_func
        self.ignored_mailboxes = {normalize_identity(i) for i in ignore.mailbox_identities}
        self.ignored_trustees = {normalize_identity(i) for i in ignore.trustee_identities}
        self.ignored_permission_types = parse_permission_types(ignore.permission_types)

        self.rows_read = 0
        self.skipped_rows = 0
        self.ignored_rows = 0
        self.sources: list[str] = []

    def _log(self, message: str) -> None:
        if self.verbose:
            self.log_func(message)

    def load_files(self, file_paths: list[str]) -> InMemoryRelationshipTable:
        """Load one or more CSV exports into an in-memory table.

        Every file's header is checked before any rows are read.

        Args:
            file_paths: List of paths to CSV files

        Returns:
            InMemoryRelationshipTable with one edge per (mailbox, trustee) pair

        Raises:
            SchemaError: If a file is missing, lacks mandatory columns, or
                holds an unknown permission type
        """
        for file_path in file_paths:
            check_file(file_path)

        table = InMemoryRelationshipTable(self._iter_file_edges(file_paths))
        self._log(f"[+] Loaded {table.edge_count} relationships "
                  f"({self.rows_read} rows, {table.duplicate_rows} duplicates merged, "
                  f"{self.ignored_rows} ignored, {self.skipped_rows} skipped)")
        return table

    def load_rows(self, rows: Iterable[dict], source: str = "<rows>") -> InMemoryRelationshipTable:
        """Load already-parsed rows (e.g. from a DataFrame or another script).

        Rows may use any supported header variant.
        """
        rows = list(rows)
        mapping = check_header(rows[0].keys() if rows else [], source)
        canonical = (
            {column: str(row.get(mapping[column]) or "").strip() for column in RELATIONSHIP_COLUMNS}
            for row in rows
        )
        return InMemoryRelationshipTable(self._iter_edges(canonical, source))

    def _iter_file_edges(self, file_paths: list[str]) -> Iterator[MailboxTrusteeEdge]:
        for file_path in file_paths:
            path = Path(file_path)
            self._log(f"[*] Loading {path.name}...")
            self.sources.append(path.name)
            yield from self._iter_edges(read_canonical_rows(file_path), path.name)

    def _iter_edges(self, rows: Iterable[dict], source: str) -> Iterator[MailboxTrusteeEdge]:
        for line_number, row in enumerate(rows, start=2):
            self.rows_read += 1
            edge = self.parse_row(row, f"{source}:{line_number}")
            if edge is not None:
                yield edge

    def parse_row(self, row: dict, location: str = "<row>") -> Optional[MailboxTrusteeEdge]:
        """Turn one canonical row into an edge, or None if it is skipped/ignored.

        Raises:
            SchemaError: If the permission type is unknown
        """
        try:
            mailbox = validate_identity(row["MailboxIdentity"])
            trustee = validate_identity(row["TrusteeIdentity"])
        except ValidationError:
            self.skipped_rows += 1
            return None

        try:
            permission_type = PermissionType.from_string(row["PermissionType"])
        except SchemaError as e:
            raise SchemaError(f"{location}: {e}", source=location) from e

        if (mailbox in self.ignored_mailboxes or trustee in self.ignored_trustees
                or permission_type in self.ignored_permission_types):
            self.ignored_rows += 1
            return None

        return MailboxTrusteeEdge(
            mailbox_identity=mailbox,
            mailbox_type=row["MailboxType"],
            trustee_identity=trustee,
            trustee_type=row["TrusteeType"],
            permission_type=permission_type,
            access_rights=row["AccessRights"],
        )


def _skip_type_line(lines: Iterable[str]) -> Iterator[str]:
    """Drop the "#TYPE ..." preamble Windows PowerShell's Export-Csv writes."""
    first = True
    for line in lines:
        if first:
            first = False
            if line.startswith("#TYPE"):
                continue
        yield line
