"""
Web Builder
===========

Discovers the web of identities connected to a set of seeds through
mailbox permissions, in both directions:

- Forward: lookup_by_mailbox(identity) -> trustees holding rights on the
  identity's mailbox
- Reverse: lookup_by_trustee(identity) -> mailboxes the identity holds
  rights on

Design Decisions:
-----------------
1. Multi-source breadth-first search: all seeds enter one FIFO queue at
   depth 0, so every node gets its minimum depth from the nearest seed
2. One discovered-set check; the first discovery of an identity wins and
   nodes are never re-added or re-expanded
3. Ties within a level resolve by queue order, then forward before
   reverse, then table order, which is deterministic for a fixed input
4. Ids are assigned on successful insertion only
5. All-or-nothing: lookup errors and cancellation propagate; no partial
   web is ever returned
"""

import threading
import time
from collections import deque
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..config import WebConfig
from ..errors import WebBuildCancelled
from ..model.identity import parse_seed_identities
from ..model.relationship_table import RelationshipTable
from ..model.schemas import (
    LevelStats, RelationKind, ThresholdExclusions, WebNode, WebResult, WebSummary
)


class WebBuilder:
    """Bidirectional, depth-bounded closure over a relationship table.

    Usage:
        builder = WebBuilder(table, config)
        result = builder.build(["ceo@contoso.com", "cfo@contoso.com"])

        for node in result.nodes:
            print(node.id, node.identity, node.depth, node.source_identity)

    The builder does not depend on which RelationshipTable implementation
    it is given.
    """

    def __init__(
        self,
        table: RelationshipTable,
        config: Optional[WebConfig] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize the builder.

        Args:
            table: Relationship table (already threshold-filtered)
            config: Configuration (uses defaults if None)
            progress_callback: Optional callback for progress messages
            cancel_event: Optional event; setting it aborts the build
        """
        self.table = table
        self.config = config or WebConfig()
        self.progress_callback = progress_callback
        self.cancel_event = cancel_event

    def _log(self, message: str) -> None:
        if self.progress_callback:
            self.progress_callback(message)

    def build(
        self,
        seeds: Iterable[str],
        exclusions: Optional[ThresholdExclusions] = None,
    ) -> WebResult:
        """Build the web from the given seed identities.

        Args:
            seeds: Seed identities (validated and de-duplicated here)
            exclusions: Threshold exclusions already applied to the table,
                recorded in the summary

        Returns:
            WebResult with nodes in discovery order and a WebSummary

        Raises:
            ConfigError: If maximum_depth or the deadline is invalid
            ValidationError: If a seed is malformed or no seeds are given
            TableLookupError: If the table fails to answer a lookup
            WebBuildCancelled: If cancelled or past the deadline
        """
        self.config.validate()
        maximum_depth = self.config.traversal.maximum_depth
        seed_identities = parse_seed_identities(seeds)

        started_at = datetime.now()
        deadline = None
        if self.config.traversal.deadline_seconds is not None:
            deadline = time.monotonic() + self.config.traversal.deadline_seconds

        nodes: list[WebNode] = []
        discovered: dict[str, WebNode] = {}

        def add_node(identity: str, source: Optional[WebNode],
                     kind: RelationKind, depth: int) -> WebNode:
            node = WebNode(
                id=len(nodes) + 1,
                identity=identity,
                source_id=source.id if source else 0,
                source_identity=source.identity if source else "",
                relation_kind=kind,
                depth=depth,
            )
            nodes.append(node)
            discovered[identity] = node
            return node

        # Seed phase: all seeds exist before any expansion
        for identity in seed_identities:
            add_node(identity, None, RelationKind.NONE, 0)

        self._log(f"[*] Building web from {len(seed_identities)} seed(s), "
                  f"maximum depth {maximum_depth}")

        queue = deque(nodes)
        levels: dict[int, LevelStats] = {}
        current_level = 0

        while queue:
            self._check_cancelled(deadline)
            current = queue.popleft()

            if current.depth >= maximum_depth:
                continue

            child_depth = current.depth + 1
            if child_depth != current_level:
                self._log_level(levels.get(current_level))
                current_level = child_depth
            level = levels.setdefault(child_depth, LevelStats(depth=child_depth))

            forward = self.table.lookup_by_mailbox(current.identity)
            reverse = self.table.lookup_by_trustee(current.identity)
            level.forward_frontier += len(forward)
            level.reverse_frontier += len(reverse)

            candidates = (
                [(edge.trustee_identity, RelationKind.MAILBOX) for edge in forward] +
                [(edge.mailbox_identity, RelationKind.TRUSTEE) for edge in reverse]
            )
            for identity, kind in candidates:
                if identity in discovered:
                    continue
                queue.append(add_node(identity, current, kind, child_depth))
                level.discovered += 1

        self._log_level(levels.get(current_level))

        depth_reached = max(node.depth for node in nodes)
        summary = WebSummary(
            seed_count=len(seed_identities),
            node_count=len(nodes),
            depth_reached=depth_reached,
            maximum_depth=maximum_depth,
            mailbox_threshold=(exclusions.mailbox_threshold if exclusions
                               else self.config.thresholds.permissive_mailbox_threshold),
            trustee_threshold=(exclusions.trustee_threshold if exclusions
                               else self.config.thresholds.power_trustee_threshold),
            level_stats=[levels[d] for d in sorted(levels)],
            edge_count=self.table.edge_count,
            started_at=started_at,
            finished_at=datetime.now(),
        )

        self._log(f"[+] Web complete: {summary.node_count} nodes, "
                  f"depth reached {summary.depth_reached}")

        return WebResult(nodes=nodes, summary=summary, exclusions=exclusions)

    def _check_cancelled(self, deadline: Optional[float]) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise WebBuildCancelled("Web build cancelled")
        if deadline is not None and time.monotonic() > deadline:
            raise WebBuildCancelled(
                f"Web build exceeded deadline of {self.config.traversal.deadline_seconds}s"
            )

    def _log_level(self, level: Optional[LevelStats]) -> None:
        if level is None:
            return
        self._log(f"    Depth {level.depth}: forward={level.forward_frontier} "
                  f"reverse={level.reverse_frontier} new={level.discovered}")


def build_web(
    table: RelationshipTable,
    seeds: Iterable[str],
    config: Optional[WebConfig] = None,
    exclusions: Optional[ThresholdExclusions] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> WebResult:
    """Convenience wrapper around WebBuilder.build()."""
    builder = WebBuilder(table, config, progress_callback, cancel_event)
    return builder.build(seeds, exclusions)
