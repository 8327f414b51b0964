"""
trusteeweb Model Module
=======================

Contains the core data models and the relationship table abstraction.

Key Components:
- schemas.py: Typed dataclasses for edges, web nodes and run summaries
- identity.py: Address validation and normalization (email-validator)
- relationship_table.py: Lookup interface and the NetworkX-backed table

Design Philosophy:
- Identities are stored lower-cased, so every lookup is case-insensitive
- One edge per (mailbox, trustee) pair; duplicate rows merge their metadata
- The table abstraction lets the SQL backend stand in for the in-memory one
"""

from .schemas import (
    PermissionType,
    RelationKind,
    RELATIONSHIP_COLUMNS,
    MailboxTrusteeEdge,
    WebNode,
    LevelStats,
    ThresholdExclusions,
    WebSummary,
    WebResult
)
from .identity import normalize_identity, validate_identity, parse_seed_identities
from .relationship_table import RelationshipTable, InMemoryRelationshipTable
