"""Graph export in formats external tools read.

Supported formats:
  - D3 JSON: index-based force-directed layout input
  - GEXF / GraphML: Gephi and other desktop graph tools
  - CSV: node, link and association-rule tables
  - Newick: dendrograms, for tree viewers

Node metrics and cluster indices are flattened onto node attributes so
they survive formats without nested values.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any

import networkx as nx

from tcmkg.graph.models import AssociationRuleResult, DendrogramNode, GraphData

logger = logging.getLogger(__name__)

METRIC_COLUMNS = ["degree", "betweenness", "closeness", "kCore", "community", "clusteringCoefficient"]


class GraphExporter:
    """Export a ``GraphData`` node/link set.

    Parameters
    ----------
    graph:
        Any graph produced by the loader, the co-occurrence builder or an
        algorithm result.
    """

    def __init__(self, graph: GraphData) -> None:
        self._graph = graph

    # -- D3 JSON -------------------------------------------------------------

    def to_d3_json(self) -> dict[str, Any]:
        """Nodes plus links whose endpoints are node indices."""
        nodes = []
        node_index: dict[str, int] = {}

        for i, node in enumerate(self._graph.nodes):
            node_index[node.id] = i
            nodes.append(node.to_dict())

        links = []
        for link in self._graph.links:
            s, t = link.source_id, link.target_id
            if s in node_index and t in node_index:
                entry = link.to_dict()
                entry["source"] = node_index[s]
                entry["target"] = node_index[t]
                links.append(entry)

        return {"nodes": nodes, "links": links}

    # -- GEXF / GraphML ------------------------------------------------------

    def to_gexf(self, path: str | Path) -> None:
        export_graph = self._prepare_simple_graph()
        nx.write_gexf(export_graph, str(path))
        logger.info("Exported GEXF to %s (%d nodes, %d edges)",
                    path, export_graph.number_of_nodes(), export_graph.number_of_edges())

    def to_graphml(self, path: str | Path) -> None:
        export_graph = self._prepare_simple_graph()
        nx.write_graphml(export_graph, str(path))
        logger.info("Exported GraphML to %s", path)

    # -- CSV -----------------------------------------------------------------

    def to_csv_nodes(self) -> str:
        """Node table: id, group, then every metric and cluster column."""
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(["id", "group", *METRIC_COLUMNS, "kmeans", "hierarchical"])

        for node in self._graph.nodes:
            metrics = node.metrics.to_dict() if node.metrics else {}
            clusters = node.clusters.to_dict() if node.clusters else {}
            writer.writerow([
                node.id,
                node.group,
                *(metrics.get(col, "") for col in METRIC_COLUMNS),
                clusters.get("kmeans", ""),
                clusters.get("hierarchical", ""),
            ])

        return output.getvalue()

    def to_csv_links(self) -> str:
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(["source", "target", "type", "weight", "support", "confidence", "lift"])

        for link in self._graph.links:
            assoc = link.association
            writer.writerow([
                link.source_id,
                link.target_id,
                link.type,
                "" if link.weight is None else link.weight,
                assoc.support if assoc else "",
                assoc.confidence if assoc else "",
                assoc.lift if assoc else "",
            ])

        return output.getvalue()

    def to_csv_files(self, directory: str | Path) -> tuple[Path, Path]:
        """Write ``nodes.csv`` and ``links.csv`` to a directory."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        nodes_path = directory / "nodes.csv"
        links_path = directory / "links.csv"

        nodes_path.write_text(self.to_csv_nodes(), encoding="utf-8")
        links_path.write_text(self.to_csv_links(), encoding="utf-8")

        logger.info("Exported CSV to %s (nodes + links)", directory)
        return nodes_path, links_path

    # -- Helpers -------------------------------------------------------------

    def _prepare_simple_graph(self) -> nx.Graph:
        """Undirected simple graph with flat attributes.

        Parallel links collapse to the heaviest one.
        """
        simple = nx.Graph()

        for node in self._graph.nodes:
            attrs: dict[str, Any] = {"group": node.group}
            if node.metrics:
                attrs.update(node.metrics.to_dict())
            if node.clusters:
                attrs.update({f"cluster_{k}": v for k, v in node.clusters.to_dict().items()})
            simple.add_node(node.id, **attrs)

        for link in self._graph.links:
            u, v = link.source_id, link.target_id
            if u not in simple or v not in simple:
                continue
            weight = link.weight if link.weight is not None else 1
            if simple.has_edge(u, v) and weight <= simple[u][v].get("weight", 0):
                continue

            attrs = {"type": link.type, "weight": weight}
            if link.association:
                attrs["lift"] = link.association.lift
                attrs["support"] = link.association.support
                attrs["confidence"] = link.association.confidence
            simple.add_edge(u, v, **attrs)

        return simple


def rules_to_csv(rules: list[AssociationRuleResult]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["source", "target", "support", "confidence", "lift", "cooccur"])
    for r in rules:
        writer.writerow([r.source, r.target, r.support, r.confidence, r.lift, r.cooccur])
    return output.getvalue()


def dendrogram_to_newick(tree: DendrogramNode | None) -> str:
    """Newick string with branch lengths from merge heights.

    A child's branch length is its parent's merge distance minus its
    own (leaves sit at height 0).
    """
    if tree is None:
        return ";"

    def quote(name: str) -> str:
        if any(ch in name for ch in " ():,;'[]"):
            return "'" + name.replace("'", "''") + "'"
        return name

    def render(node: DendrogramNode, parent_height: float | None) -> str:
        height = 0.0 if node.is_leaf else node.distance
        label = quote(node.name) if node.is_leaf else ""
        if node.children:
            label = "(" + ",".join(render(c, height) for c in node.children) + ")" + label
        if parent_height is not None:
            label += f":{parent_height - height:g}"
        return label

    return render(tree, None) + ";"
