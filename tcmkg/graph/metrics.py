"""Node metric annotation, graph-level statistics and backbone filtering.

Degree, betweenness and closeness reuse the centrality module so that
annotated nodes agree with the rankings. K-core numbers, clustering
coefficients and the graph-level statistics come from NetworkX on the
simple undirected projection (parallel links merged, self-loops
removed).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

import networkx as nx

from tcmkg.graph.centrality import betweenness_scores, closeness_scores, degree_scores
from tcmkg.graph.loader import to_networkx
from tcmkg.graph.models import GraphData, Node, NodeClusters, NodeMetrics

logger = logging.getLogger(__name__)

# Accepted ``source`` values for assign_color_groups.
COLOR_SOURCES = ("community", "kmeans", "hierarchical", "kCore", "none")


def simple_projection(graph: GraphData) -> nx.Graph:
    simple = nx.Graph(to_networkx(graph))
    simple.remove_edges_from(list(nx.selfloop_edges(simple)))
    return simple


def annotate_metrics(graph: GraphData) -> GraphData:
    """Fill degree, betweenness, closeness, kCore and clusteringCoefficient.

    Existing metric values (e.g. a community label) are preserved. Nodes
    are updated in place and the same graph is returned.
    """
    g = to_networkx(graph)
    degree = degree_scores(g)
    betweenness = betweenness_scores(g)
    closeness = closeness_scores(g)

    simple = simple_projection(graph)
    core = nx.core_number(simple) if simple.number_of_nodes() else {}
    clustering = nx.clustering(simple) if simple.number_of_nodes() else {}

    for node in graph.nodes:
        metrics = node.metrics or NodeMetrics()
        metrics.degree = degree.get(node.id, 0)
        metrics.betweenness = betweenness.get(node.id, 0.0)
        metrics.closeness = closeness.get(node.id, 0.0)
        metrics.k_core = core.get(node.id, 0)
        metrics.clustering_coefficient = clustering.get(node.id, 0.0)
        node.metrics = metrics

    logger.debug("Annotated metrics on %d nodes", len(graph.nodes))
    return graph


def graph_metadata(graph: GraphData) -> dict[str, Any]:
    """Density, average degree, diameter, average path length, transitivity.

    Diameter and average path length are measured on the largest
    connected component.
    """
    simple = simple_projection(graph)
    n = simple.number_of_nodes()

    stats: dict[str, Any] = {
        "density": 0.0,
        "avgDegree": 0.0,
        "diameter": 0,
        "avgPathLength": 0.0,
        "globalClusteringCoeff": 0.0,
    }
    if n == 0:
        return stats

    stats["density"] = nx.density(simple)
    stats["avgDegree"] = sum(d for _, d in simple.degree()) / n
    stats["globalClusteringCoeff"] = nx.transitivity(simple)

    largest = max(nx.connected_components(simple), key=len)
    if len(largest) > 1:
        component = simple.subgraph(largest)
        stats["diameter"] = nx.diameter(component)
        stats["avgPathLength"] = nx.average_shortest_path_length(component)

    return stats


def extract_backbone(graph: GraphData, threshold: float, metric: str = "weight") -> GraphData:
    """Keep the links whose strength is at least ``threshold``.

    ``metric`` is ``"weight"`` (co-occurrence count) or ``"lift"`` (mined
    association links). A threshold of zero or below keeps every link.
    Nodes are kept either way.
    """
    if threshold <= 0:
        return graph

    def strength(link) -> float:
        if metric == "lift":
            return link.association.lift if link.association else 0.0
        return link.weight or 0.0

    kept = [l for l in graph.links if strength(l) >= threshold]
    logger.debug("Backbone %s >= %s kept %d of %d links",
                 metric, threshold, len(kept), len(graph.links))
    return GraphData(nodes=graph.nodes, links=kept, metadata=dict(graph.metadata))


def color_key(node: Node, source: str) -> str | None:
    """Derived category key for one node, or None when the value is missing."""
    metrics = node.metrics or NodeMetrics()
    clusters = node.clusters or NodeClusters()

    if source == "community" and metrics.community is not None:
        return f"C{metrics.community}"
    if source == "kmeans" and clusters.kmeans is not None:
        return f"KM{clusters.kmeans}"
    if source == "hierarchical" and clusters.hierarchical is not None:
        return f"H{clusters.hierarchical}"
    if source == "kCore" and metrics.k_core is not None:
        return f"Core{metrics.k_core}"
    return None


def assign_color_groups(nodes: list[Node], source: str) -> list[Node]:
    """Copies of ``nodes`` with ``group`` replaced by a derived category key.

    Nodes without the requested value keep their group; ``"none"`` leaves
    every group untouched.
    """
    if source not in COLOR_SOURCES:
        raise ValueError(f"Unknown color source {source!r}; expected one of {COLOR_SOURCES}")

    out = []
    for node in nodes:
        key = color_key(node, source)
        out.append(replace(node, group=key) if key else replace(node))
    return out
