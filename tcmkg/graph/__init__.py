"""tcmkg graph analytics.

Turns typed entity/relation lists into hierarchical cluster trees,
k-means partitions, bipartite communities, association rules and
centrality rankings.

Usage::

    from tcmkg.graph import AnalysisEngine, RawGraph, build_cooccurrence_graph

    raw = RawGraph.from_dict(payload)
    graph = build_cooccurrence_graph(raw.entities, raw.relations, "证候", "症状")

    engine = AnalysisEngine()
    tree = engine.run("hierarchical", raw, container_type="证候", item_type="症状").tree
    rules = engine.run("association", raw, params={"frontType": "症状", "backType": "证候"})
"""

from tcmkg.graph.cooccurrence import build_cooccurrence_graph
from tcmkg.graph.engine import AlgorithmType, AnalysisEngine, parse_params, run_algorithm
from tcmkg.graph.exporters import GraphExporter
from tcmkg.graph.loader import GraphLoader
from tcmkg.graph.models import Entity, GraphData, RawGraph, Relation

__all__ = [
    "AlgorithmType",
    "AnalysisEngine",
    "Entity",
    "GraphData",
    "GraphExporter",
    "GraphLoader",
    "RawGraph",
    "Relation",
    "build_cooccurrence_graph",
    "parse_params",
    "run_algorithm",
]
