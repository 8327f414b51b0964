"""
Web Summarizer
==============

Computes adjacency summaries over a built web for the report emitter.

For each node:
- MailboxCount: mailboxes inside the web the node holds rights on
- TrusteeCount: trustees inside the web holding rights on the node's mailbox
- PermissionTypes: distinct permission types on those web-internal edges

Design Decisions:
-----------------
1. Only edges with both ends in the web are counted
2. The web-internal edges are gathered with one forward lookup per node
   against the (threshold-filtered) table the web was built from
"""

from collections import Counter

from ..model.relationship_table import RelationshipTable
from ..model.schemas import MailboxTrusteeEdge, WebResult


class WebSummarizer:
    """Creates adjacency summaries for a web.

    Usage:
        summarizer = WebSummarizer(result, table)
        rows = summarizer.adjacency_rows()
        print(summarizer.get_summary_text())
    """

    def __init__(self, result: WebResult, table: RelationshipTable):
        """Initialize the summarizer.

        Args:
            result: WebResult from a completed build
            table: The relationship table the web was built from
        """
        self.result = result
        self.table = table
        self._web_edges = None

    def web_edges(self) -> list[MailboxTrusteeEdge]:
        """Table edges with both mailbox and trustee inside the web."""
        if self._web_edges is None:
            members = {node.identity for node in self.result.nodes}
            self._web_edges = [
                edge
                for node in self.result.nodes
                for edge in self.table.lookup_by_mailbox(node.identity)
                if edge.trustee_identity in members
            ]
        return self._web_edges

    def adjacency_rows(self) -> list[dict]:
        """One row per node: node fields plus web-internal adjacency counts."""
        mailbox_counts = Counter()
        trustee_counts = Counter()
        permission_types: dict[str, list] = {}

        for edge in self.web_edges():
            mailbox_counts[edge.trustee_identity] += 1
            trustee_counts[edge.mailbox_identity] += 1
            for identity in (edge.mailbox_identity, edge.trustee_identity):
                seen = permission_types.setdefault(identity, [])
                for permission_type in edge.permission_types:
                    if permission_type.value not in seen:
                        seen.append(permission_type.value)

        rows = []
        for node in self.result.nodes:
            row = node.to_dict()
            row["MailboxCount"] = mailbox_counts[node.identity]
            row["TrusteeCount"] = trustee_counts[node.identity]
            row["PermissionTypes"] = ";".join(permission_types.get(node.identity, []))
            rows.append(row)
        return rows

    def top_mailboxes(self, n: int = 5) -> list[tuple[str, int]]:
        """Mailboxes with the most trustees inside the web."""
        counts = Counter(edge.mailbox_identity for edge in self.web_edges())
        return counts.most_common(n)

    def top_trustees(self, n: int = 5) -> list[tuple[str, int]]:
        """Trustees with access to the most mailboxes inside the web."""
        counts = Counter(edge.trustee_identity for edge in self.web_edges())
        return counts.most_common(n)

    def get_summary_text(self, top_n: int = 5) -> str:
        summary = self.result.summary
        lines = [
            f"Seeds: {summary.seed_count}",
            f"Nodes: {summary.node_count}",
            f"Web edges: {len(self.web_edges())}",
            f"Depth reached: {summary.depth_reached} (limit {summary.maximum_depth})",
        ]
        if self.web_edges():
            lines.append("Busiest mailboxes:")
            lines.extend(f"  - {identity}: {count} trustee(s)"
                         for identity, count in self.top_mailboxes(top_n))
            lines.append("Busiest trustees:")
            lines.extend(f"  - {identity}: {count} mailbox(es)"
                         for identity, count in self.top_trustees(top_n))
        return "\n".join(lines)
