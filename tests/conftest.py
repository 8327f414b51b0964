"""Shared pytest fixtures."""

import csv

import pytest

from trusteeweb.model.relationship_table import InMemoryRelationshipTable
from trusteeweb.model.schemas import RELATIONSHIP_COLUMNS, MailboxTrusteeEdge, PermissionType


def make_edge(mailbox, trustee, permission="FullAccess", rights="FullAccess",
              mailbox_type="UserMailbox", trustee_type="UserMailbox"):
    """Build an edge from short names ("a" -> "a@contoso.com")."""
    if "@" not in mailbox:
        mailbox = f"{mailbox}@contoso.com"
    if "@" not in trustee:
        trustee = f"{trustee}@contoso.com"
    return MailboxTrusteeEdge(
        mailbox_identity=mailbox,
        mailbox_type=mailbox_type,
        trustee_identity=trustee,
        trustee_type=trustee_type,
        permission_type=PermissionType.from_string(permission),
        access_rights=rights,
    )


def make_table(*pairs):
    """Build an in-memory table from (mailbox, trustee[, permission]) tuples."""
    return InMemoryRelationshipTable(make_edge(*pair) for pair in pairs)


def write_csv(path, rows, header=RELATIONSHIP_COLUMNS, type_line=False):
    """Write a permission export CSV and return its path as a string."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        if type_line:
            f.write("#TYPE System.Management.Automation.PSCustomObject\n")
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)
    return str(path)


@pytest.fixture
def chain_rows():
    """A -> B -> C -> D permission chain (mailbox, trustee)."""
    return [
        ["a@contoso.com", "UserMailbox", "FullAccess", "FullAccess", "b@contoso.com", "UserMailbox"],
        ["b@contoso.com", "UserMailbox", "SendAs", "ExtendedRight", "c@contoso.com", "UserMailbox"],
        ["c@contoso.com", "UserMailbox", "FullAccess", "FullAccess", "d@contoso.com", "UserMailbox"],
    ]


@pytest.fixture
def chain_csv(tmp_path, chain_rows):
    """CSV export of the A -> B -> C -> D chain."""
    return write_csv(tmp_path / "chain.csv", chain_rows)


@pytest.fixture
def mixed_rows():
    """Export with duplicates, folder rights, a service account and a built-in principal."""
    return [
        ["Shared@Contoso.com", "SharedMailbox", "FullAccess", "FullAccess", "jane@contoso.com", "UserMailbox"],
        ["shared@contoso.com", "SharedMailbox", "SendAs", "ExtendedRight", "JANE@contoso.com", "UserMailbox"],
        ["shared@contoso.com", "SharedMailbox", "FullAccess", "FullAccess", "bob@contoso.com", "UserMailbox"],
        ["jane@contoso.com", "UserMailbox", "Calendar", "Editor", "assistant@contoso.com", "UserMailbox"],
        ["ceo@contoso.com", "UserMailbox", "SendOnBehalf", "", "assistant@contoso.com", "UserMailbox"],
        ["ceo@contoso.com", "UserMailbox", "FullAccess", "FullAccess", "NT AUTHORITY\\SELF", "User"],
        ["shared@contoso.com", "SharedMailbox", "FullAccess", "FullAccess", "svc-backup@contoso.com", "User"],
    ]


@pytest.fixture
def mixed_csv(tmp_path, mixed_rows):
    """CSV export of mixed_rows."""
    return write_csv(tmp_path / "mixed.csv", mixed_rows)


@pytest.fixture
def clean_env(monkeypatch):
    """Unset trusteeweb environment variables."""
    monkeypatch.delenv("TRUSTEEWEB_SQL_DATABASE", raising=False)
    monkeypatch.delenv("TRUSTEEWEB_OUTPUT_DIR", raising=False)
