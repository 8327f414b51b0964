"""
trusteeweb GUI Integration Module
=================================

Bridge functions for GUI communication.

Key Functions:
- run_web(): Main entry point for building and reporting a web
- load_table(): Open the relationship table from CSV or SQLite
- run_web_worker(): Run run_web on a GUI thread, reporting through a queue
"""

from .bridge import run_web, load_table, run_web_worker
