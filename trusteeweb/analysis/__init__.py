"""
trusteeweb Analysis Module
==========================

Deterministic filtering and traversal over a relationship table.

Components:
- thresholds.py: Permissive mailbox / power trustee exclusion
- web_builder.py: Bidirectional depth-bounded breadth-first search
- summarizer.py: Web-internal adjacency counts for reports
"""

from .thresholds import apply_thresholds
from .web_builder import WebBuilder, build_web
from .summarizer import WebSummarizer
