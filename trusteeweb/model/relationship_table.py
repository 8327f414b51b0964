"""
trusteeweb Relationship Table
=============================

Queryable view over the mailbox-trustee edge set.

Design Decisions:
-----------------
1. RelationshipTable is an abstract lookup-by-key interface so the web
   builder never knows whether edges live in memory or in SQL
2. InMemoryRelationshipTable uses a NetworkX DiGraph as the underlying
   data structure, directed mailbox -> trustee
3. Edges are stored with their MailboxTrusteeEdge object as attributes
4. Insertion order is preserved so lookups (and therefore the web) are
   deterministic for a fixed input order

Once built, a table is read-only for the rest of the run.
"""

from abc import ABC, abstractmethod
from collections import Counter
from typing import Iterable, Iterator, Optional

import networkx as nx

from .schemas import MailboxTrusteeEdge


class RelationshipTable(ABC):
    """Lookup interface over mailbox-trustee edges.

    Lookups never fail on a missing identity: an unknown identity simply
    has no edges.
    """

    @abstractmethod
    def lookup_by_mailbox(self, identity: str) -> list[MailboxTrusteeEdge]:
        """Return all edges whose mailbox is identity, in input order."""

    @abstractmethod
    def lookup_by_trustee(self, identity: str) -> list[MailboxTrusteeEdge]:
        """Return all edges whose trustee is identity, in input order."""

    @abstractmethod
    def edges(self) -> Iterator[MailboxTrusteeEdge]:
        """Iterate over all edges in input order."""

    @abstractmethod
    def exclude(self, mailboxes: Iterable[str] = (),
                trustees: Iterable[str] = ()) -> "RelationshipTable":
        """Return a table without edges touching the given mailboxes/trustees."""

    @property
    def edge_count(self) -> int:
        return sum(1 for _ in self.edges())

    def mailbox_fanout(self) -> dict[str, int]:
        """Count edges per mailbox identity."""
        return dict(Counter(edge.mailbox_identity for edge in self.edges()))

    def trustee_fanout(self, excluding_mailboxes: Iterable[str] = ()) -> dict[str, int]:
        """Count edges per trustee identity, ignoring excluded mailboxes."""
        excluded = set(excluding_mailboxes)
        return dict(Counter(
            edge.trustee_identity for edge in self.edges()
            if edge.mailbox_identity not in excluded
        ))

    def identities(self) -> set[str]:
        """All identities appearing on either side of an edge."""
        found = set()
        for edge in self.edges():
            found.add(edge.mailbox_identity)
            found.add(edge.trustee_identity)
        return found

    def to_networkx(self) -> nx.DiGraph:
        """Export the table as a DiGraph (mailbox -> trustee)."""
        graph = nx.DiGraph()
        for edge in self.edges():
            graph.add_edge(edge.mailbox_identity, edge.trustee_identity, edge_obj=edge)
        return graph


class InMemoryRelationshipTable(RelationshipTable):
    """Relationship table held in a NetworkX DiGraph.

    Usage:
        table = InMemoryRelationshipTable(edges)
        table.lookup_by_mailbox("shared@contoso.com")   # trustees of the mailbox
        table.lookup_by_trustee("jane@contoso.com")     # mailboxes jane can access

    Rows for a (mailbox, trustee) pair that is already present are merged
    into the existing edge; the first row's metadata is kept as primary.
    """

    def __init__(self, edges: Optional[Iterable[MailboxTrusteeEdge]] = None):
        self._graph = nx.DiGraph()
        self._order: list[tuple] = []
        self.duplicate_rows = 0

        for edge in edges or []:
            self.add_edge(edge)

    @property
    def nx_graph(self) -> nx.DiGraph:
        """Access underlying NetworkX graph for advanced operations."""
        return self._graph

    def add_edge(self, edge: MailboxTrusteeEdge) -> None:
        """Add an edge, merging it into an existing edge for the same pair."""
        if self._graph.has_edge(edge.mailbox_identity, edge.trustee_identity):
            existing = self._graph.edges[edge.mailbox_identity, edge.trustee_identity]['edge_obj']
            existing.merge(edge)
            self.duplicate_rows += 1
            return

        self._graph.add_edge(edge.mailbox_identity, edge.trustee_identity, edge_obj=edge)
        self._order.append(edge.key)

    def get_edge(self, mailbox_identity: str, trustee_identity: str) -> Optional[MailboxTrusteeEdge]:
        if not self._graph.has_edge(mailbox_identity, trustee_identity):
            return None
        return self._graph.edges[mailbox_identity, trustee_identity]['edge_obj']

    def lookup_by_mailbox(self, identity: str) -> list[MailboxTrusteeEdge]:
        if not self._graph.has_node(identity):
            return []
        return [
            self._graph.edges[identity, trustee]['edge_obj']
            for trustee in self._graph.successors(identity)
        ]

    def lookup_by_trustee(self, identity: str) -> list[MailboxTrusteeEdge]:
        if not self._graph.has_node(identity):
            return []
        return [
            self._graph.edges[mailbox, identity]['edge_obj']
            for mailbox in self._graph.predecessors(identity)
        ]

    def edges(self) -> Iterator[MailboxTrusteeEdge]:
        for mailbox, trustee in self._order:
            yield self._graph.edges[mailbox, trustee]['edge_obj']

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def exclude(self, mailboxes: Iterable[str] = (),
                trustees: Iterable[str] = ()) -> "InMemoryRelationshipTable":
        mailboxes = set(mailboxes)
        trustees = set(trustees)
        return InMemoryRelationshipTable(
            edge for edge in self.edges()
            if edge.mailbox_identity not in mailboxes
            and edge.trustee_identity not in trustees
        )

    def to_networkx(self) -> nx.DiGraph:
        return self._graph.copy()
