"""Entity/relation lists → standard graph.

The standard graph is what a viewer shows before any analysis runs: one
node per entity name, one link per relation. Relation endpoints that are
not in the entity list either become placeholder nodes (group
``Unknown``) or cause the relation to be dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import networkx as nx

from tcmkg.graph.models import UNKNOWN_GROUP, Entity, GraphData, Link, Node, Relation

logger = logging.getLogger(__name__)


@dataclass
class LoadStats:
    """Statistics from a graph loading operation."""

    nodes_loaded: int = 0
    links_loaded: int = 0
    orphan_references: int = 0
    duplicate_entities: int = 0
    skipped_entities: int = 0
    skipped_relations: int = 0
    type_counts: dict[str, int] = field(default_factory=dict)
    relation_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "nodes_loaded": self.nodes_loaded,
            "links_loaded": self.links_loaded,
            "orphan_references": self.orphan_references,
            "duplicate_entities": self.duplicate_entities,
            "skipped_entities": self.skipped_entities,
            "skipped_relations": self.skipped_relations,
            "type_counts": dict(self.type_counts),
            "relation_counts": dict(self.relation_counts),
        }


class GraphLoader:
    """Build the standard entity graph.

    Parameters
    ----------
    max_nodes:
        Safety cap on graph size. Entities past the cap are skipped.
    include_orphan_nodes:
        Create placeholder nodes for relation endpoints missing from the
        entity list. When False those relations are dropped instead.
    """

    def __init__(
        self,
        max_nodes: int = 50_000,
        include_orphan_nodes: bool = True,
    ) -> None:
        self._max_nodes = max_nodes
        self._include_orphan_nodes = include_orphan_nodes

    def load(
        self,
        entities: list[Entity],
        relations: list[Relation],
    ) -> tuple[GraphData, LoadStats]:
        stats = LoadStats()
        nodes: dict[str, Node] = {}

        for entity in entities:
            if not entity.name:
                stats.skipped_entities += 1
                continue
            if entity.name in nodes:
                stats.duplicate_entities += 1
                continue
            if len(nodes) >= self._max_nodes:
                stats.skipped_entities += 1
                continue

            nodes[entity.name] = Node(id=entity.name, group=entity.type)
            stats.nodes_loaded += 1
            stats.type_counts[entity.type] = stats.type_counts.get(entity.type, 0) + 1

        if stats.skipped_entities:
            logger.warning("Skipped %d entities (empty name or node cap %d)",
                           stats.skipped_entities, self._max_nodes)

        links: list[Link] = []
        for r in relations:
            if not self._resolve(r.source, nodes, stats) or not self._resolve(r.target, nodes, stats):
                stats.skipped_relations += 1
                continue

            links.append(Link(source=r.source, target=r.target, type=r.relation))
            stats.links_loaded += 1
            stats.relation_counts[r.relation] = stats.relation_counts.get(r.relation, 0) + 1

        return GraphData(nodes=list(nodes.values()), links=links), stats

    def _resolve(self, name: str, nodes: dict[str, Node], stats: LoadStats) -> bool:
        """Make sure ``name`` is a node, adding a placeholder if allowed."""
        if name in nodes:
            return True
        if not name or not self._include_orphan_nodes or len(nodes) >= self._max_nodes:
            return False

        nodes[name] = Node(id=name, group=UNKNOWN_GROUP)
        stats.orphan_references += 1
        return True


def to_networkx(graph: GraphData) -> nx.MultiGraph:
    """Undirected multigraph view of a node/link set.

    Links to ids outside the node set are dropped, matching the
    adjacency index.
    """
    g = nx.MultiGraph()
    for node in graph.nodes:
        g.add_node(node.id, group=node.group)

    for link in graph.links:
        s, t = link.source_id, link.target_id
        if s in g and t in g:
            g.add_edge(s, t, type=link.type, weight=link.weight or 1)
    return g
