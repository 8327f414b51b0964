"""Tests for trusteeweb.analysis.thresholds."""

import pytest

from conftest import make_table
from trusteeweb.analysis.thresholds import (
    apply_thresholds,
    find_permissive_mailboxes,
    find_power_trustees,
)
from trusteeweb.errors import ConfigError


class TestFindExclusions:
    """Tests for the individual passes."""

    def test_permissive_mailboxes_strictly_above_threshold(self):
        table = make_table(("m1", "t1"), ("m1", "t2"), ("m2", "t1"))
        assert find_permissive_mailboxes(table, 1) == ["m1@contoso.com"]
        assert find_permissive_mailboxes(table, 2) == []

    def test_power_trustees_strictly_above_threshold(self):
        table = make_table(("m1", "t1"), ("m2", "t1"), ("m3", "t1"), ("m1", "t2"))
        assert find_power_trustees(table, 2) == ["t1@contoso.com"]
        assert find_power_trustees(table, 3) == []

    def test_power_trustees_ignore_excluded_mailboxes(self):
        table = make_table(("m1", "t1"), ("m2", "t1"), ("m3", "t1"))
        assert find_power_trustees(table, 2, excluding_mailboxes=["m1@contoso.com"]) == []

    @pytest.mark.parametrize("threshold", [0, -1, None, "5", True])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ConfigError):
            find_permissive_mailboxes(make_table(("m1", "t1")), threshold)


class TestApplyThresholds:
    """Tests for apply_thresholds."""

    def test_single_edge_mailbox_kept_at_threshold_one(self):
        table = make_table(("a", "b"), ("b", "c"), ("c", "d"))
        filtered, exclusions = apply_thresholds(table, 1, 500)
        assert filtered.edge_count == 3
        assert exclusions.permissive_mailboxes == []

    def test_permissive_mailbox_dropped(self):
        table = make_table(("a", "b"), ("a", "x"), ("b", "c"))
        filtered, exclusions = apply_thresholds(table, 1, 500)

        assert exclusions.permissive_mailboxes == ["a@contoso.com"]
        assert filtered.lookup_by_mailbox("a@contoso.com") == []
        assert filtered.edge_count == 1

    def test_trustee_pass_runs_after_mailbox_pass(self):
        # t1 only looks powerful because of the permissive mailbox m1
        table = make_table(
            ("m1", "t1"), ("m1", "t2"), ("m1", "t3"),
            ("m2", "t1"),
            ("m3", "t4"), ("m4", "t4"),
        )
        filtered, exclusions = apply_thresholds(table, 2, 1)

        assert exclusions.permissive_mailboxes == ["m1@contoso.com"]
        assert exclusions.power_trustees == ["t4@contoso.com"]
        assert [e.key for e in filtered.edges()] == [("m2@contoso.com", "t1@contoso.com")]

    def test_exclusion_counts(self):
        table = make_table(("a", "b"), ("a", "x"), ("b", "c"))
        _, exclusions = apply_thresholds(table, 1, 500)
        assert exclusions.mailbox_threshold == 1
        assert exclusions.trustee_threshold == 500
        assert exclusions.edges_before == 3
        assert exclusions.edges_after == 1
        assert exclusions.edges_removed == 2

    def test_source_table_untouched(self):
        table = make_table(("a", "b"), ("a", "x"))
        apply_thresholds(table, 1, 1)
        assert table.edge_count == 2

    def test_invalid_thresholds(self):
        table = make_table(("a", "b"))
        with pytest.raises(ConfigError, match="permissive_mailbox_threshold"):
            apply_thresholds(table, 0, 500)
        with pytest.raises(ConfigError, match="power_trustee_threshold"):
            apply_thresholds(table, 500, 0)
