"""
Threshold Filter
================

Removes overly permissive mailboxes and overly powerful trustees before
traversal so the web stays a readable size.

Policy:
- Pass 1: group edges by mailbox; drop every edge of a mailbox with more
  than PermissiveMailboxThreshold trustees
- Pass 2: group the *remaining* edges by trustee; drop every edge of a
  trustee with access to more than PowerTrusteeThreshold mailboxes

Design Decisions:
-----------------
1. The two passes are order-dependent: a trustee that only looked powerful
   because of permissive mailboxes survives pass 2
2. Exclusion sets are computed once, before traversal, and applied to the
   table as a whole (not checked per step)
3. Counting is delegated to the table so the SQL table can use GROUP BY
"""

from typing import Iterable

from ..config import require_positive_int
from ..model.relationship_table import RelationshipTable
from ..model.schemas import ThresholdExclusions


def validate_threshold(name: str, value) -> int:
    """Reject thresholds below 1 with ConfigError."""
    require_positive_int(name, value)
    return value


def find_permissive_mailboxes(table: RelationshipTable, threshold: int) -> list[str]:
    """Mailboxes with more than threshold edges, in first-seen order."""
    validate_threshold("permissive_mailbox_threshold", threshold)
    return [
        mailbox for mailbox, count in table.mailbox_fanout().items()
        if count > threshold
    ]


def find_power_trustees(table: RelationshipTable, threshold: int,
                        excluding_mailboxes: Iterable[str] = ()) -> list[str]:
    """Trustees with more than threshold edges, counting only edges whose
    mailbox survived the mailbox pass."""
    validate_threshold("power_trustee_threshold", threshold)
    return [
        trustee for trustee, count in table.trustee_fanout(excluding_mailboxes).items()
        if count > threshold
    ]


def apply_thresholds(
    table: RelationshipTable,
    max_mailbox_fanout: int,
    max_trustee_fanout: int,
) -> tuple[RelationshipTable, ThresholdExclusions]:
    """Apply both fan-out thresholds.

    Args:
        table: Relationship table after ignore-list filtering
        max_mailbox_fanout: PermissiveMailboxThreshold (>= 1)
        max_trustee_fanout: PowerTrusteeThreshold (>= 1)

    Returns:
        Tuple of (filtered table, ThresholdExclusions)

    Raises:
        ConfigError: If either threshold is below 1
    """
    validate_threshold("permissive_mailbox_threshold", max_mailbox_fanout)
    validate_threshold("power_trustee_threshold", max_trustee_fanout)

    permissive = find_permissive_mailboxes(table, max_mailbox_fanout)
    power = find_power_trustees(table, max_trustee_fanout, excluding_mailboxes=permissive)

    filtered = table.exclude(mailboxes=permissive, trustees=power)

    exclusions = ThresholdExclusions(
        permissive_mailboxes=permissive,
        power_trustees=power,
        mailbox_threshold=max_mailbox_fanout,
        trustee_threshold=max_trustee_fanout,
        edges_before=table.edge_count,
        edges_after=filtered.edge_count,
    )
    return filtered, exclusions
