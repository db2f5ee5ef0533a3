"""Community detection on a two-type (bipartite) subgraph.

Label propagation stands in for a modularity-optimizing method: every
node repeatedly adopts the label most common among its neighbors until a
pass changes nothing. Traversal order comes from a generator scoped to
one call, so a fixed seed reproduces the same partition.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any

from tcmkg.graph.adjacency import build_adjacency
from tcmkg.graph.models import Entity, Link, Node, NodeMetrics, Relation

logger = logging.getLogger(__name__)

MAX_PASSES = 20


@dataclass
class CommunityResult:
    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    @property
    def community_count(self) -> int:
        return len({n.metrics.community for n in self.nodes if n.metrics})

    def membership(self) -> dict[str, int]:
        return {n.id: n.metrics.community for n in self.nodes if n.metrics}

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
        }


class LabelPropagation:
    """Label state for a single detection run."""

    def __init__(self, node_ids: list[str], links: list[Link], seed: int | None = None) -> None:
        self._order = list(node_ids)
        self._adj = build_adjacency(node_ids, links)
        self._rng = random.Random(seed)
        self.labels: dict[str, int] = {node_id: i for i, node_id in enumerate(node_ids)}
        self.passes = 0

    def _best_label(self, node_id: str) -> int | None:
        counts: dict[int, int] = {}
        for nb in self._adj.get(node_id, []):
            label = self.labels[nb.id]
            counts[label] = counts.get(label, 0) + 1
        if not counts:
            return None
        # most frequent; ties go to the lowest label
        return min(counts, key=lambda label: (-counts[label], label))

    def run_pass(self) -> bool:
        """One sweep in shuffled order. Returns whether any label changed."""
        order = list(self._order)
        self._rng.shuffle(order)

        changed = False
        for node_id in order:
            best = self._best_label(node_id)
            if best is not None and self.labels[node_id] != best:
                self.labels[node_id] = best
                changed = True
        self.passes += 1
        return changed

    def run(self, max_passes: int = MAX_PASSES) -> dict[str, int]:
        for _ in range(max_passes):
            if not self.run_pass():
                break
        return self.dense_labels()

    def dense_labels(self) -> dict[str, int]:
        """Remap labels to ``0..m`` in order of first appearance."""
        remap: dict[int, int] = {}
        for node_id in self._order:
            remap.setdefault(self.labels[node_id], len(remap))
        return {node_id: remap[self.labels[node_id]] for node_id in self._order}


def bipartite_communities(
    entities: list[Entity],
    relations: list[Relation],
    front_type: str,
    back_type: str,
    seed: int | None = None,
    max_passes: int = MAX_PASSES,
) -> CommunityResult:
    """Detect communities among entities of ``front_type`` and ``back_type``.

    Relations with an endpoint outside the two types, and self-loops,
    are dropped. Each returned node carries ``metrics.community``. Output
    is only reproducible across runs when ``seed`` is given.
    """
    members: list[Entity] = []
    seen: set[str] = set()
    for wanted in (front_type, back_type):
        for e in entities:
            if e.type == wanted and e.name not in seen:
                seen.add(e.name)
                members.append(e)

    links = [
        Link(source=r.source, target=r.target, type=r.relation)
        for r in relations
        if r.source in seen and r.target in seen and r.source != r.target
    ]

    node_ids = [e.name for e in members]
    propagation = LabelPropagation(node_ids, links, seed=seed)
    communities = propagation.run(max_passes=max_passes)

    nodes = [
        Node(id=e.name, group=e.type, metrics=NodeMetrics(community=communities[e.name]))
        for e in members
    ]

    result = CommunityResult(nodes=nodes, links=links)
    logger.info("Community detection %s/%s: %d nodes, %d links, %d communities after %d passes",
                front_type, back_type, len(nodes), len(links),
                result.community_count, propagation.passes)
    return result
