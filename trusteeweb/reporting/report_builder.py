"""
Report Builder Module
=====================

Renders a completed web to files.

The report contains:
- web_nodes.csv: one row per node with adjacency summaries
- web_edges.csv: relationships with both ends inside the web
- excluded_identities.csv: identities dropped by the fan-out thresholds
- web_summary.json: run summary, exclusions and metadata
- Visualization references (HTML/PNG)

Design Decisions:
-----------------
1. Reports are written only from a completed WebResult, so a failed run
   never leaves a partial node CSV behind
2. CSV column names match the permission-report conventions (Id, Identity,
   SourceId, SourceIdentity, RelationKind, Depth)
3. Report paths are recorded on the result for the CLI and GUI
"""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..analysis.summarizer import WebSummarizer
from ..config import OutputConfig
from ..model.relationship_table import RelationshipTable
from ..model.schemas import RELATIONSHIP_COLUMNS, WebResult
from .visualization import WebVisualizer

NODE_COLUMNS = [
    "Id", "Identity", "SourceId", "SourceIdentity", "RelationKind", "Depth",
    "MailboxCount", "TrusteeCount", "PermissionTypes",
]

EDGE_COLUMNS = list(RELATIONSHIP_COLUMNS) + ["AllPermissionTypes", "AllAccessRights"]

EXCLUSION_COLUMNS = ["Identity", "Role", "Threshold"]


class ReportBuilder:
    """Builds report files from a web result.

    Usage:
        builder = ReportBuilder(result, table, output_dir="output")
        result = builder.build_report()

        print(result.report_paths["nodes_csv"])
    """

    def __init__(
        self,
        result: WebResult,
        table: RelationshipTable,
        output_dir: str = "output",
        output_config: Optional[OutputConfig] = None,
    ):
        """Initialize the report builder.

        Args:
            result: WebResult from a completed build
            table: Relationship table the web was built from
            output_dir: Directory for output files
            output_config: Which formats to write (all defaults if None)
        """
        self.result = result
        self.table = table
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.output_config = output_config or OutputConfig(output_dir=str(output_dir))

        self.summarizer = WebSummarizer(result, table)
        self.visualizer = WebVisualizer(result, table, output_dir)

    def build_report(self, generate_visualizations: bool = True,
                     input_files: Optional[list[str]] = None) -> WebResult:
        """Write every configured report and record the paths.

        Args:
            generate_visualizations: Whether to render HTML/PNG graphs
            input_files: Input file names for metadata

        Returns:
            The same WebResult with report_paths and metadata filled in
        """
        self.result.metadata.update({
            'timestamp': datetime.now().isoformat(),
            'input_files': input_files or self.result.metadata.get('input_files', []),
            'web_edges': len(self.summarizer.web_edges()),
        })

        if self.output_config.generate_csv:
            self.result.report_paths['nodes_csv'] = self.write_nodes_csv()
            self.result.report_paths['edges_csv'] = self.write_edges_csv()
            if self.result.exclusions:
                self.result.report_paths['exclusions_csv'] = self.write_exclusions_csv()

        if generate_visualizations:
            if self.output_config.generate_html:
                self.result.report_paths['html'] = self.visualizer.create_web_html()
            if self.output_config.generate_png:
                self.result.report_paths['png'] = self.visualizer.create_web_image()

        if self.output_config.generate_json:
            self.result.report_paths['summary_json'] = self.write_summary_json()

        return self.result

    def write_nodes_csv(self, filename: str = "web_nodes.csv") -> str:
        """Write one row per node, with adjacency summaries."""
        return self._write_csv(filename, NODE_COLUMNS, self.summarizer.adjacency_rows())

    def write_edges_csv(self, filename: str = "web_edges.csv") -> str:
        """Write the relationships that connect nodes of the web."""
        rows = []
        for edge in self.summarizer.web_edges():
            row = edge.to_row()
            row["AllPermissionTypes"] = ";".join(p.value for p in edge.permission_types)
            row["AllAccessRights"] = ";".join(edge.all_access_rights)
            rows.append(row)
        return self._write_csv(filename, EDGE_COLUMNS, rows)

    def write_exclusions_csv(self, filename: str = "excluded_identities.csv") -> str:
        """Write identities removed by the fan-out thresholds."""
        exclusions = self.result.exclusions
        rows = [
            {"Identity": identity, "Role": "PermissiveMailbox",
             "Threshold": exclusions.mailbox_threshold}
            for identity in exclusions.permissive_mailboxes
        ] + [
            {"Identity": identity, "Role": "PowerTrustee",
             "Threshold": exclusions.trustee_threshold}
            for identity in exclusions.power_trustees
        ]
        return self._write_csv(filename, EXCLUSION_COLUMNS, rows)

    def write_summary_json(self, filename: str = "web_summary.json") -> str:
        """Save the run summary (without the node list) as JSON."""
        json_path = self.output_dir / filename
        report_dict = {
            "summary": self.result.summary.to_dict(),
            "exclusions": self.result.exclusions.to_dict() if self.result.exclusions else None,
            "report_paths": self.result.report_paths,
            "metadata": self.result.metadata,
        }
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(report_dict, f, indent=2, default=str)
        return str(json_path)

    def _write_csv(self, filename: str, columns: list[str], rows: list[dict]) -> str:
        csv_path = self.output_dir / filename
        with open(csv_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=columns)
            writer.writeheader()
            writer.writerows(rows)
        return str(csv_path)


def generate_text_report(result: WebResult) -> str:
    """Generate a text-based report summary.

    Args:
        result: WebResult to summarize

    Returns:
        Formatted text report
    """
    summary = result.summary
    lines = [
        "=" * 60,
        "trusteeweb - Mailbox Trustee Web Report",
        "=" * 60,
        "",
        f"Generated: {result.metadata.get('timestamp', 'Unknown')}",
        f"Relationships considered: {summary.edge_count}",
        "",
        "SUMMARY",
        "-" * 40,
        f"Seeds: {summary.seed_count}",
        f"Nodes: {summary.node_count}",
        f"Depth reached: {summary.depth_reached} (limit {summary.maximum_depth})",
        f"Permissive mailbox threshold: {summary.mailbox_threshold}",
        f"Power trustee threshold: {summary.trustee_threshold}",
        "",
    ]

    if result.exclusions:
        exclusions = result.exclusions
        lines.extend([
            "EXCLUSIONS",
            "-" * 40,
            f"Permissive mailboxes: {len(exclusions.permissive_mailboxes)}",
            f"Power trustees: {len(exclusions.power_trustees)}",
            f"Relationships removed: {exclusions.edges_removed}",
            "",
        ])

    if summary.level_stats:
        lines.extend(["LEVELS", "-" * 40])
        for level in summary.level_stats:
            lines.append(
                f"Depth {level.depth}: {level.discovered} new "
                f"(forward {level.forward_frontier}, reverse {level.reverse_frontier})"
            )
        lines.append("")

    lines.extend(["WEB", "-" * 40])
    for node in result.nodes[:50]:
        indent = "   " * node.depth
        if node.is_seed:
            lines.append(f"{indent}[{node.id}] {node.identity} (seed)")
        else:
            lines.append(f"{indent}[{node.id}] {node.identity} "
                         f"<- {node.source_identity} ({node.relation_kind.value})")
    if len(result.nodes) > 50:
        lines.append(f"... {len(result.nodes) - 50} more node(s) in web_nodes.csv")

    lines.extend([
        "",
        "=" * 60,
        "End of Report",
        "=" * 60,
    ])

    return "\n".join(lines)
