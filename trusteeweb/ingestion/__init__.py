"""
trusteeweb Ingestion Module
===========================

Loaders that turn permission exports into a RelationshipTable.

Components:
- csv_loader.py: Permission export CSVs into the in-memory table
- sql_loader.py: SQLite-backed table and CSV import into SQLite
"""

from .csv_loader import RelationshipCsvLoader
from .sql_loader import SqlRelationshipTable, import_csv_files
