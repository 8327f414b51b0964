"""
trusteeweb - Mailbox Trustee Web Builder
========================================

Builds the "web" of identities connected to a set of seed mailboxes through
delegated mailbox permissions (FullAccess, SendAs, SendOnBehalf and folder
rights), for migration batch planning and access reviews.

Architecture Overview:
----------------------
- ingestion/: Loaders for permission export CSVs and a SQLite relationship table
- model/: Typed data models, identity validation and the relationship table
- analysis/: Threshold filtering, web building and adjacency summaries
- reporting/: CSV/JSON reports and visualizations
- gui_integration/: Bridge module shared by the CLI and the Streamlit GUI

Design Decisions:
-----------------
1. NetworkX backs the in-memory relationship table
2. All data models use Python dataclasses for type safety and clarity
3. The web builder only sees the RelationshipTable interface, so CSV and
   SQL sources behave identically
4. A run either completes or raises; no partial web is ever reported
"""

__version__ = "1.0.0"
__author__ = "trusteeweb developers"

from .config import WebConfig
from .errors import (
    TrusteeWebError,
    SchemaError,
    ConfigError,
    TableLookupError,
    ValidationError,
    WebBuildCancelled
)
