"""Tests for trusteeweb.ingestion.csv_loader."""

import pytest

from conftest import write_csv
from trusteeweb.config import IgnoreConfig
from trusteeweb.errors import ConfigError, SchemaError
from trusteeweb.ingestion.csv_loader import (
    RelationshipCsvLoader,
    check_header,
    normalize_header,
    read_canonical_rows,
)
from trusteeweb.model.schemas import PermissionType


class TestHeaders:
    """Tests for header normalization and schema checks."""

    def test_canonical_header(self):
        mapping = normalize_header(["MailboxIdentity", "TrusteeIdentity"])
        assert mapping == {"MailboxIdentity": "MailboxIdentity", "TrusteeIdentity": "TrusteeIdentity"}

    def test_header_variants(self):
        mapping = check_header(
            ["Identity", "RecipientTypeDetails", "Permission", "Rights", "User", "Trustee Type"],
            "report.csv",
        )
        assert mapping["MailboxIdentity"] == "Identity"
        assert mapping["TrusteeIdentity"] == "User"
        assert mapping["TrusteeType"] == "Trustee Type"

    def test_missing_columns(self):
        with pytest.raises(SchemaError) as exc_info:
            check_header(["MailboxIdentity", "TrusteeIdentity"], "partial.csv")
        assert exc_info.value.source == "partial.csv"
        assert exc_info.value.missing_columns == [
            "MailboxType", "PermissionType", "AccessRights", "TrusteeType"
        ]


class TestReadRows:
    """Tests for reading CSV files."""

    def test_type_line_and_bom(self, tmp_path, chain_rows):
        path = tmp_path / "export.csv"
        write_csv(path, chain_rows, type_line=True)
        path.write_bytes(b"\xef\xbb\xbf" + path.read_bytes())

        rows = list(read_canonical_rows(str(path)))
        assert len(rows) == 3
        assert rows[0]["MailboxIdentity"] == "a@contoso.com"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaError, match="not found"):
            list(read_canonical_rows(str(tmp_path / "nope.csv")))


class TestRelationshipCsvLoader:
    """Tests for RelationshipCsvLoader."""

    def test_load_mixed_export(self, mixed_csv):
        loader = RelationshipCsvLoader()
        table = loader.load_files([mixed_csv])

        assert loader.rows_read == 7
        assert loader.skipped_rows == 1
        assert table.duplicate_rows == 1
        assert table.edge_count == 5

    def test_identities_lowercased_and_merged(self, mixed_csv):
        table = RelationshipCsvLoader().load_files([mixed_csv])
        edge = table.get_edge("shared@contoso.com", "jane@contoso.com")
        assert edge.permission_type is PermissionType.FULL_ACCESS
        assert edge.permission_types == [PermissionType.FULL_ACCESS, PermissionType.SEND_AS]
        assert edge.all_access_rights == ["FullAccess", "ExtendedRight"]

    def test_multiple_files_concatenated_in_order(self, tmp_path, chain_csv):
        extra = write_csv(tmp_path / "extra.csv", [
            ["a@contoso.com", "UserMailbox", "SendAs", "ExtendedRight", "z@contoso.com", "UserMailbox"],
        ])
        loader = RelationshipCsvLoader()
        table = loader.load_files([chain_csv, extra])

        trustees = [e.trustee_identity for e in table.lookup_by_mailbox("a@contoso.com")]
        assert trustees == ["b@contoso.com", "z@contoso.com"]
        assert loader.sources == ["chain.csv", "extra.csv"]

    def test_ignore_lists(self, mixed_csv):
        ignore = IgnoreConfig(
            mailbox_identities=["CEO@contoso.com"],
            trustee_identities=["svc-backup@contoso.com"],
            permission_types=["Calendar"],
        )
        loader = RelationshipCsvLoader(ignore=ignore)
        table = loader.load_files([mixed_csv])

        assert loader.ignored_rows == 3
        assert table.lookup_by_mailbox("ceo@contoso.com") == []
        assert table.lookup_by_trustee("svc-backup@contoso.com") == []
        assert table.lookup_by_mailbox("jane@contoso.com") == []
        assert table.edge_count == 2

    def test_ignore_applied_before_dedup(self, tmp_path):
        path = write_csv(tmp_path / "dup.csv", [
            ["a@contoso.com", "UserMailbox", "Calendar", "Reviewer", "b@contoso.com", "UserMailbox"],
            ["a@contoso.com", "UserMailbox", "FullAccess", "FullAccess", "b@contoso.com", "UserMailbox"],
        ])
        table = RelationshipCsvLoader(ignore=IgnoreConfig(permission_types=["Calendar"])).load_files([path])
        edge = table.get_edge("a@contoso.com", "b@contoso.com")
        assert edge.permission_type is PermissionType.FULL_ACCESS
        assert edge.permission_types == [PermissionType.FULL_ACCESS]

    def test_invalid_ignore_permission_type(self):
        with pytest.raises(ConfigError):
            RelationshipCsvLoader(ignore=IgnoreConfig(permission_types=["Everything"]))

    def test_unknown_permission_type_is_fatal(self, tmp_path):
        path = write_csv(tmp_path / "bad.csv", [
            ["a@contoso.com", "UserMailbox", "ReadProperty", "", "b@contoso.com", "UserMailbox"],
        ])
        with pytest.raises(SchemaError, match="bad.csv:2"):
            RelationshipCsvLoader().load_files([path])

    def test_schema_checked_before_any_rows(self, tmp_path, chain_csv):
        bad = write_csv(tmp_path / "bad.csv", [["x"]], header=["Mailbox"])
        loader = RelationshipCsvLoader()
        with pytest.raises(SchemaError):
            loader.load_files([chain_csv, bad])
        assert loader.rows_read == 0

    def test_empty_file(self, tmp_path):
        path = write_csv(tmp_path / "empty.csv", [])
        table = RelationshipCsvLoader().load_files([path])
        assert table.edge_count == 0

    def test_verbose_logging(self, chain_csv):
        messages = []
        RelationshipCsvLoader(verbose=True, log_func=messages.append).load_files([chain_csv])
        assert messages[0] == "[*] Loading chain.csv..."
        assert messages[-1].startswith("[+] Loaded 3 relationships")

    def test_load_rows_with_variant_headers(self):
        rows = [{
            "Identity": "a@contoso.com", "RecipientTypeDetails": "SharedMailbox",
            "Permission": "FullAccess", "Rights": "FullAccess",
            "User": "b@contoso.com", "TrusteeType": "UserMailbox",
        }]
        table = RelationshipCsvLoader().load_rows(rows, source="frame")
        assert table.get_edge("a@contoso.com", "b@contoso.com").mailbox_type == "SharedMailbox"
