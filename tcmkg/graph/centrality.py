"""Degree, betweenness and closeness rankings.

All three run over the unweighted, undirected NetworkX view of the
graph. Rankings are returned in full, sorted by value; display code
truncates them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import networkx as nx

from tcmkg.graph.loader import to_networkx
from tcmkg.graph.models import GraphData, Link, Node, RankEntry

logger = logging.getLogger(__name__)


@dataclass
class CentralityRankings:
    degree: list[RankEntry] = field(default_factory=list)
    betweenness: list[RankEntry] = field(default_factory=list)
    closeness: list[RankEntry] = field(default_factory=list)

    def top(self, n: int = 5) -> "CentralityRankings":
        """The first ``n`` entries of each ranking."""
        return CentralityRankings(
            degree=self.degree[:n],
            betweenness=self.betweenness[:n],
            closeness=self.closeness[:n],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "degree": [e.to_dict() for e in self.degree],
            "betweenness": [e.to_dict() for e in self.betweenness],
            "closeness": [e.to_dict() for e in self.closeness],
        }


def degree_scores(g: nx.MultiGraph) -> dict[str, int]:
    """Link count per node. Parallel links each count; a self-loop counts twice."""
    return dict(g.degree())


def betweenness_scores(g: nx.MultiGraph) -> dict[str, float]:
    """Unnormalized betweenness over ordered (source, target) pairs.

    NetworkX counts each unordered pair once, so its scores are doubled.
    Shortest paths are counted on the simple graph: parallel links
    between the same two nodes do not multiply the path count.
    """
    scores = nx.betweenness_centrality(nx.Graph(g), normalized=False)
    return {node: 2 * value for node, value in scores.items()}


def closeness_scores(g: nx.MultiGraph) -> dict[str, float]:
    """Reachable count over total BFS distance; 0 for isolated nodes."""
    return nx.closeness_centrality(g, wf_improved=False)


def _ranked(nodes: list[Node], scores: dict[str, float]) -> list[RankEntry]:
    entries = [RankEntry(id=n.id, val=scores.get(n.id, 0)) for n in nodes]
    return sorted(entries, key=lambda e: e.val, reverse=True)


def centrality_rankings(nodes: list[Node], links: list[Link]) -> CentralityRankings:
    """Rank every node by degree, betweenness and closeness."""
    g = to_networkx(GraphData(nodes=nodes, links=links))

    rankings = CentralityRankings(
        degree=_ranked(nodes, degree_scores(g)),
        betweenness=_ranked(nodes, betweenness_scores(g)),
        closeness=_ranked(nodes, closeness_scores(g)),
    )
    logger.info("Centrality rankings over %d nodes, %d links", len(nodes), len(links))
    return rankings
