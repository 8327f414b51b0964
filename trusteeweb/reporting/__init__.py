"""
trusteeweb Reporting Module
===========================

Report files and visualizations for a completed web.

Components:
- report_builder.py: Node/edge/exclusion CSVs, JSON summary, text report
- visualization.py: Interactive HTML (pyvis) and static PNG (matplotlib)
"""

from .report_builder import ReportBuilder, generate_text_report
from .visualization import WebVisualizer
