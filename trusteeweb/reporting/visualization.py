"""
Web Visualization Module
========================

Creates visual representations of a mailbox trustee web.

Supports:
- Interactive HTML visualizations (pyvis)
- Static images (matplotlib/networkx)

Design Decisions:
-----------------
1. Default to interactive HTML for better UX
2. Nodes are colour-coded by depth; seeds are highlighted
3. Edges point from mailbox to trustee and are labelled with permission types
4. Only web-internal edges are drawn
"""

from pathlib import Path
from typing import Optional

import networkx as nx

from ..analysis.summarizer import WebSummarizer
from ..model.relationship_table import RelationshipTable
from ..model.schemas import PermissionType, WebResult


# Colour by depth (index = depth, last colour repeats)
DEPTH_COLORS = [
    "#e53e3e",  # Seeds - red
    "#ed8936",  # Orange
    "#ecc94b",  # Yellow
    "#48bb78",  # Green
    "#4299e1",  # Blue
    "#9f7aea",  # Purple
    "#a0aec0",  # Gray
]

EDGE_COLORS = {
    PermissionType.FULL_ACCESS: "#e53e3e",
    PermissionType.SEND_AS: "#ed8936",
    PermissionType.SEND_ON_BEHALF: "#ecc94b",
}
FOLDER_EDGE_COLOR = "#718096"


def depth_color(depth: int) -> str:
    return DEPTH_COLORS[min(depth, len(DEPTH_COLORS) - 1)]


class WebVisualizer:
    """Creates visualizations of a web.

    Usage:
        visualizer = WebVisualizer(result, table, output_dir="output")

        html_path = visualizer.create_web_html()
        png_path = visualizer.create_web_image()
    """

    def __init__(
        self,
        result: WebResult,
        table: RelationshipTable,
        output_dir: str = "output"
    ):
        """Initialize the visualizer.

        Args:
            result: WebResult to visualize
            table: Relationship table the web was built from
            output_dir: Directory for output files
        """
        self.result = result
        self.summarizer = WebSummarizer(result, table)
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def to_networkx(self) -> nx.DiGraph:
        """Build a DiGraph of the web (mailbox -> trustee)."""
        graph = nx.DiGraph()
        for node in self.result.nodes:
            graph.add_node(node.identity, web_node=node, depth=node.depth)
        for edge in self.summarizer.web_edges():
            graph.add_edge(
                edge.mailbox_identity,
                edge.trustee_identity,
                label=",".join(p.value for p in edge.permission_types),
                edge_obj=edge,
            )
        return graph

    def create_web_html(self, filename: str = "web.html") -> str:
        """Create an interactive HTML visualization of the web.

        Args:
            filename: Output filename

        Returns:
            Path to the generated HTML file
        """
        from pyvis.network import Network

        output_path = self.output_dir / filename

        net = Network(
            height="750px",
            width="100%",
            bgcolor="#1a202c",
            font_color="#e2e8f0",
            directed=True,
            notebook=False,
            cdn_resources="remote",
        )

        net.set_options("""
        {
            "nodes": {
                "font": {"size": 14, "face": "arial"},
                "borderWidth": 2
            },
            "edges": {
                "arrows": {"to": {"enabled": true, "scaleFactor": 0.6}},
                "color": {"inherit": false},
                "smooth": {"type": "dynamic"},
                "font": {"size": 10, "align": "middle"}
            },
            "physics": {
                "enabled": true,
                "solver": "forceAtlas2Based",
                "forceAtlas2Based": {
                    "gravitationalConstant": -80,
                    "centralGravity": 0.01,
                    "springLength": 140
                },
                "stabilization": {"iterations": 150}
            },
            "interaction": {"hover": true, "tooltipDelay": 100, "navigationButtons": true}
        }
        """)

        for node in self.result.nodes:
            title = (f"Id: {node.id}\nDepth: {node.depth}\n"
                     f"Source: {node.source_identity or '-'}\n"
                     f"Relation: {node.relation_kind.value}")
            net.add_node(
                node.identity,
                label=node.identity,
                title=title,
                color=depth_color(node.depth),
                size=30 if node.is_seed else 18,
                borderWidth=4 if node.is_seed else 1,
                shape="star" if node.is_seed else "dot",
            )

        for edge in self.summarizer.web_edges():
            label = ",".join(p.value for p in edge.permission_types)
            net.add_edge(
                edge.mailbox_identity,
                edge.trustee_identity,
                title=f"{label} ({';'.join(edge.all_access_rights)})",
                label=label,
                color=EDGE_COLORS.get(edge.permission_type, FOLDER_EDGE_COLOR),
                arrows="to",
            )

        net.save_graph(str(output_path))
        return str(output_path)

    def create_web_image(self, filename: str = "web.png",
                         title: Optional[str] = None) -> str:
        """Create a static image of the web.

        Args:
            filename: Output filename
            title: Figure title (defaults to a node/depth summary)

        Returns:
            Path to the generated image file
        """
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        output_path = self.output_dir / filename
        graph = self.to_networkx()

        fig = plt.figure(figsize=(14, 10), facecolor='#1a202c')
        ax = fig.gca()
        ax.set_facecolor('#1a202c')

        pos = nx.spring_layout(graph, seed=42)
        colors = [depth_color(graph.nodes[n]['depth']) for n in graph.nodes]
        sizes = [900 if graph.nodes[n]['depth'] == 0 else 400 for n in graph.nodes]

        nx.draw_networkx_nodes(graph, pos, node_color=colors, node_size=sizes, ax=ax)
        nx.draw_networkx_edges(graph, pos, edge_color="#718096", arrows=True, ax=ax)
        nx.draw_networkx_labels(graph, pos, font_size=8, font_color="#e2e8f0", ax=ax)

        summary = self.result.summary
        ax.set_title(
            title or f"{summary.node_count} nodes, depth {summary.depth_reached}",
            color="#e2e8f0",
        )
        ax.axis('off')

        fig.savefig(output_path, facecolor=fig.get_facecolor(), bbox_inches='tight')
        plt.close(fig)
        return str(output_path)
