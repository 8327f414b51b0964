"""
trusteeweb Data Schemas
=======================

Typed dataclasses representing mailbox-trustee relationships and the web
discovered from them.

Design Decisions:
-----------------
1. PermissionType and RelationKind enums provide type safety and easy serialization
2. MailboxTrusteeEdge is keyed by the (mailbox, trustee) pair; duplicate
   permission rows between the same pair are merged into one edge
3. WebNode is immutable once created: the first discovery of an identity wins
4. WebResult aggregates all run output for reports and the GUI

Schema Hierarchy:
- MailboxTrusteeEdge: One relationship row (after deduplication)
- WebNode: An identity discovered by traversal
- LevelStats / WebSummary: Per-run statistics
- ThresholdExclusions: Identities dropped by the fan-out thresholds
- WebResult: Complete run output container
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from datetime import datetime

from ..errors import SchemaError


class PermissionType(Enum):
    """Kinds of mailbox permission a trustee can hold.

    Mailbox-level rights (FullAccess, SendAs, SendOnBehalf) and folder-level
    rights (MailboxRoot through SentItems).
    """
    FULL_ACCESS = "FullAccess"
    SEND_AS = "SendAs"
    SEND_ON_BEHALF = "SendOnBehalf"
    MAILBOX_ROOT = "MailboxRoot"
    INBOX = "Inbox"
    CALENDAR = "Calendar"
    CONTACTS = "Contacts"
    TASKS = "Tasks"
    SENT_ITEMS = "SentItems"

    @classmethod
    def from_string(cls, s: str) -> "PermissionType":
        """Convert string to PermissionType, handling export variants.

        Raises:
            SchemaError: If the value is not a known permission type
        """
        normalized = "".join((s or "").split()).lower()

        for permission_type in cls:
            if permission_type.value.lower() == normalized:
                return permission_type

        aliases = {
            "fullaccessright": cls.FULL_ACCESS,
            "sendasright": cls.SEND_AS,
            "sendonbehalfto": cls.SEND_ON_BEHALF,
            "grantsendonbehalfto": cls.SEND_ON_BEHALF,
            "publicdelegates": cls.SEND_ON_BEHALF,
            "root": cls.MAILBOX_ROOT,
            "topofinformationstore": cls.MAILBOX_ROOT,
            "sent": cls.SENT_ITEMS,
        }

        if normalized in aliases:
            return aliases[normalized]

        raise SchemaError(f"Unknown permission type: {s!r}")


class RelationKind(Enum):
    """Which lookup discovered a node.

    MAILBOX: found by the mailbox-side (forward) lookup of its source; the
    node is a trustee on the source's mailbox.
    TRUSTEE: found by the trustee-side (reverse) lookup of its source; the
    node is a mailbox the source holds rights on.
    NONE: seeds.
    """
    MAILBOX = "Mailbox"
    TRUSTEE = "Trustee"
    NONE = "None"


# Ordered, mandatory relationship columns
RELATIONSHIP_COLUMNS = (
    "MailboxIdentity",
    "MailboxType",
    "PermissionType",
    "AccessRights",
    "TrusteeIdentity",
    "TrusteeType",
)


@dataclass
class MailboxTrusteeEdge:
    """A relationship granting a trustee access to a mailbox.

    Attributes:
        mailbox_identity: Address of the mailbox granting access
        mailbox_type: Recipient type of the mailbox (UserMailbox, SharedMailbox, ...)
        trustee_identity: Address of the identity granted access
        trustee_type: Recipient type of the trustee
        permission_type: First-seen permission type for this pair
        access_rights: First-seen access rights string for this pair
        permission_types: Every distinct permission type seen for this pair
        all_access_rights: Every distinct access rights string seen for this pair

    Design Decision:
        Equality and hashing use only the (mailbox, trustee) pair. Extra
        rows for the same pair are folded in with merge() instead of being
        discarded.
    """
    mailbox_identity: str
    mailbox_type: str
    trustee_identity: str
    trustee_type: str
    permission_type: PermissionType
    access_rights: str = ""
    permission_types: list = field(default_factory=list)
    all_access_rights: list = field(default_factory=list)

    def __post_init__(self):
        if self.permission_type not in self.permission_types:
            self.permission_types.insert(0, self.permission_type)
        if self.access_rights and self.access_rights not in self.all_access_rights:
            self.all_access_rights.insert(0, self.access_rights)

    def __hash__(self):
        return hash(self.key)

    def __eq__(self, other):
        if isinstance(other, MailboxTrusteeEdge):
            return self.key == other.key
        return False

    @property
    def key(self) -> tuple:
        return (self.mailbox_identity, self.trustee_identity)

    def merge(self, other: "MailboxTrusteeEdge") -> None:
        """Fold another row for the same pair into this edge."""
        for permission_type in other.permission_types:
            if permission_type not in self.permission_types:
                self.permission_types.append(permission_type)
        for rights in other.all_access_rights:
            if rights not in self.all_access_rights:
                self.all_access_rights.append(rights)

    @property
    def description(self) -> str:
        """Human-readable description of the edge."""
        types = ",".join(p.value for p in self.permission_types)
        return f"{self.trustee_identity} --[{types}]--> {self.mailbox_identity}"

    def to_row(self) -> dict:
        """Convert to a row keyed by the relationship column names."""
        return {
            "MailboxIdentity": self.mailbox_identity,
            "MailboxType": self.mailbox_type,
            "PermissionType": self.permission_type.value,
            "AccessRights": self.access_rights,
            "TrusteeIdentity": self.trustee_identity,
            "TrusteeType": self.trustee_type,
        }


@dataclass(frozen=True)
class WebNode:
    """An identity discovered while building the web.

    Attributes:
        id: Run-global id, assigned in discovery order starting at 1
        identity: Address of the discovered identity
        source_id: Id of the node it was discovered from (0 for seeds)
        source_identity: Identity of that node ("" for seeds)
        relation_kind: Which lookup discovered it
        depth: Hops from the nearest seed (0 for seeds)
    """
    id: int
    identity: str
    source_id: int = 0
    source_identity: str = ""
    relation_kind: RelationKind = RelationKind.NONE
    depth: int = 0

    @property
    def is_seed(self) -> bool:
        return self.depth == 0

    def to_dict(self) -> dict:
        return {
            "Id": self.id,
            "Identity": self.identity,
            "SourceId": self.source_id,
            "SourceIdentity": self.source_identity,
            "RelationKind": self.relation_kind.value,
            "Depth": self.depth,
        }


@dataclass
class LevelStats:
    """Frontier sizes for one traversal level.

    forward_frontier and reverse_frontier count the candidate edges examined
    while expanding nodes at depth - 1; discovered counts the new nodes
    created at this depth.
    """
    depth: int
    forward_frontier: int = 0
    reverse_frontier: int = 0
    discovered: int = 0

    def to_dict(self) -> dict:
        return {
            "depth": self.depth,
            "forward_frontier": self.forward_frontier,
            "reverse_frontier": self.reverse_frontier,
            "discovered": self.discovered,
        }


@dataclass
class ThresholdExclusions:
    """Identities removed by the fan-out thresholds."""
    permissive_mailboxes: list = field(default_factory=list)
    power_trustees: list = field(default_factory=list)
    mailbox_threshold: int = 0
    trustee_threshold: int = 0
    edges_before: int = 0
    edges_after: int = 0

    @property
    def edges_removed(self) -> int:
        return self.edges_before - self.edges_after

    def to_dict(self) -> dict:
        return {
            "permissive_mailboxes": self.permissive_mailboxes,
            "power_trustees": self.power_trustees,
            "mailbox_threshold": self.mailbox_threshold,
            "trustee_threshold": self.trustee_threshold,
            "edges_before": self.edges_before,
            "edges_after": self.edges_after,
        }


@dataclass
class WebSummary:
    """Statistics for one web build.

    Attributes:
        seed_count: Number of distinct seeds
        node_count: Final number of nodes (seeds included)
        depth_reached: Greatest depth of any node
        maximum_depth: Configured depth limit
        mailbox_threshold: PermissiveMailboxThreshold used
        trustee_threshold: PowerTrusteeThreshold used
        level_stats: LevelStats for depths 1..depth_reached+1 that were expanded
        edge_count: Edges in the table the web was built from
    """
    seed_count: int = 0
    node_count: int = 0
    depth_reached: int = 0
    maximum_depth: int = 0
    mailbox_threshold: int = 0
    trustee_threshold: int = 0
    level_stats: list = field(default_factory=list)
    edge_count: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> dict:
        return {
            "seed_count": self.seed_count,
            "node_count": self.node_count,
            "depth_reached": self.depth_reached,
            "maximum_depth": self.maximum_depth,
            "mailbox_threshold": self.mailbox_threshold,
            "trustee_threshold": self.trustee_threshold,
            "level_stats": [s.to_dict() for s in self.level_stats],
            "edge_count": self.edge_count,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class WebResult:
    """Complete output of one run.

    Attributes:
        nodes: Discovered WebNodes in discovery order
        summary: WebSummary statistics
        exclusions: Threshold exclusions applied before traversal
        report_paths: Report format -> written file path
        metadata: Additional metadata (timestamp, input files, etc.)
    """
    nodes: list = field(default_factory=list)
    summary: WebSummary = field(default_factory=WebSummary)
    exclusions: Optional[ThresholdExclusions] = None
    report_paths: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    @property
    def seeds(self) -> list:
        return [n for n in self.nodes if n.is_seed]

    def node_by_identity(self, identity: str) -> Optional[WebNode]:
        for node in self.nodes:
            if node.identity == identity:
                return node
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "summary": self.summary.to_dict(),
            "exclusions": self.exclusions.to_dict() if self.exclusions else None,
            "report_paths": self.report_paths,
            "metadata": self.metadata,
        }
