"""Tests for trusteeweb.model.relationship_table."""

from conftest import make_edge, make_table
from trusteeweb.model.relationship_table import InMemoryRelationshipTable
from trusteeweb.model.schemas import PermissionType


class TestInMemoryRelationshipTable:
    """Tests for the NetworkX-backed table."""

    def test_lookup_by_mailbox_in_input_order(self):
        table = make_table(("shared", "c"), ("shared", "a"), ("other", "a"), ("shared", "b"))
        trustees = [e.trustee_identity for e in table.lookup_by_mailbox("shared@contoso.com")]
        assert trustees == ["c@contoso.com", "a@contoso.com", "b@contoso.com"]

    def test_lookup_by_trustee_in_input_order(self):
        table = make_table(("m2", "jane"), ("m1", "jane"), ("m3", "bob"), ("m3", "jane"))
        mailboxes = [e.mailbox_identity for e in table.lookup_by_trustee("jane@contoso.com")]
        assert mailboxes == ["m2@contoso.com", "m1@contoso.com", "m3@contoso.com"]

    def test_missing_identity_returns_empty(self):
        table = make_table(("a", "b"))
        assert table.lookup_by_mailbox("nobody@contoso.com") == []
        assert table.lookup_by_trustee("nobody@contoso.com") == []

    def test_identity_only_on_other_side(self):
        table = make_table(("a", "b"))
        assert table.lookup_by_mailbox("b@contoso.com") == []
        assert table.lookup_by_trustee("a@contoso.com") == []

    def test_duplicates_merge(self):
        table = InMemoryRelationshipTable([
            make_edge("a", "b", "FullAccess", "FullAccess"),
            make_edge("a", "b", "SendAs", "ExtendedRight"),
        ])
        assert table.edge_count == 1
        assert table.duplicate_rows == 1
        edge = table.get_edge("a@contoso.com", "b@contoso.com")
        assert edge.permission_types == [PermissionType.FULL_ACCESS, PermissionType.SEND_AS]

    def test_self_edge_allowed(self):
        table = make_table(("a", "a"))
        assert len(table.lookup_by_mailbox("a@contoso.com")) == 1
        assert len(table.lookup_by_trustee("a@contoso.com")) == 1

    def test_edges_in_order(self):
        table = make_table(("c", "d"), ("a", "b"), ("b", "c"))
        assert [e.key for e in table.edges()] == [
            ("c@contoso.com", "d@contoso.com"),
            ("a@contoso.com", "b@contoso.com"),
            ("b@contoso.com", "c@contoso.com"),
        ]

    def test_fanout_counts(self):
        table = make_table(("m1", "t1"), ("m1", "t2"), ("m2", "t1"))
        assert table.mailbox_fanout() == {"m1@contoso.com": 2, "m2@contoso.com": 1}
        assert table.trustee_fanout() == {"t1@contoso.com": 2, "t2@contoso.com": 1}
        assert table.trustee_fanout(["m1@contoso.com"]) == {"t1@contoso.com": 1}

    def test_exclude_returns_new_table(self):
        table = make_table(("m1", "t1"), ("m1", "t2"), ("m2", "t1"), ("m3", "t3"))
        filtered = table.exclude(mailboxes=["m1@contoso.com"], trustees=["t3@contoso.com"])
        assert [e.key for e in filtered.edges()] == [("m2@contoso.com", "t1@contoso.com")]
        assert table.edge_count == 4

    def test_identities_and_networkx(self):
        table = make_table(("a", "b"), ("b", "c"))
        assert table.identities() == {"a@contoso.com", "b@contoso.com", "c@contoso.com"}
        graph = table.to_networkx()
        assert graph.has_edge("a@contoso.com", "b@contoso.com")
        graph.remove_edge("a@contoso.com", "b@contoso.com")
        assert table.nx_graph.has_edge("a@contoso.com", "b@contoso.com")
