"""Agglomerative hierarchical clustering into a binary dendrogram.

Each node is described by its weighted adjacency row (co-occurrence
weights against every node, 0 on the diagonal). Clusters are merged
pairwise, closest first, until a single root remains. The pairwise
recompute makes a run O(n^3); that is fine for a few hundred nodes and
is the known scaling limit of this module.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

import numpy as np

from tcmkg.graph.adjacency import build_adjacency
from tcmkg.graph.distance import DistanceType, get_distance
from tcmkg.graph.models import DendrogramNode, Link, Node

logger = logging.getLogger(__name__)


class LinkageMethod(str, enum.Enum):
    COMPLETE = "complete"
    AVERAGE = "average"
    CENTROID = "centroid"


@dataclass
class _Cluster:
    members: list[int]
    vec: np.ndarray
    tree: DendrogramNode


def adjacency_vectors(nodes: list[Node], links: list[Link]) -> dict[str, np.ndarray]:
    """Weighted adjacency row of every node against all nodes."""
    node_ids = [n.id for n in nodes]
    index = {node_id: i for i, node_id in enumerate(node_ids)}
    adj = build_adjacency(node_ids, links, weighted=True)

    matrix = np.zeros((len(node_ids), len(node_ids)))
    for node_id in node_ids:
        row = index[node_id]
        seen: set[str] = set()
        for nb in adj.get(node_id, []):
            # first link to a neighbor defines the weight
            if nb.id == node_id or nb.id in seen:
                continue
            seen.add(nb.id)
            matrix[row, index[nb.id]] = nb.weight
    return {node_id: matrix[index[node_id]] for node_id in node_ids}


def pairwise_distances(features: np.ndarray, dist) -> np.ndarray:
    """Symmetric leaf distance matrix with a zero diagonal."""
    n = len(features)
    out = np.zeros((n, n))
    for i in range(n):
        for j in range(i + 1, n):
            out[i, j] = out[j, i] = dist(features[i], features[j])
    return out


def hierarchical_tree(
    nodes: list[Node],
    links: list[Link],
    distance_type: DistanceType | str = DistanceType.EUCLIDEAN,
    method: LinkageMethod | str = LinkageMethod.COMPLETE,
) -> DendrogramNode | None:
    """Cluster ``nodes`` into a dendrogram.

    Parameters
    ----------
    nodes, links:
        Usually a co-occurrence graph (see ``build_cooccurrence_graph``).
    distance_type:
        Vector distance between node rows.
    method:
        Linkage. ``centroid`` compares cluster mean vectors;
        ``complete`` (max) and ``average`` (mean) aggregate the raw
        pairwise member distances.

    Returns
    -------
    The root of a tree with ``n`` leaves and ``n-1`` internal nodes, or
    ``None`` when ``nodes`` is empty. On equal distances the first pair
    found in ``(i, j)`` scan order is merged.
    """
    if not nodes:
        return None

    dist = get_distance(distance_type)
    method = LinkageMethod(method)
    vectors = adjacency_vectors(nodes, links)
    features = np.array([vectors[n.id] for n in nodes])
    leaf_distances = pairwise_distances(features, dist)

    clusters = [
        _Cluster(
            members=[i],
            vec=features[i],
            tree=DendrogramNode(name=n.id, is_leaf=True, distance=0.0),
        )
        for i, n in enumerate(nodes)
    ]

    def cluster_distance(c1: _Cluster, c2: _Cluster) -> float:
        if method is LinkageMethod.CENTROID:
            return dist(c1.vec, c2.vec)
        block = leaf_distances[np.ix_(c1.members, c2.members)]
        if method is LinkageMethod.COMPLETE:
            return float(block.max())
        return float(block.mean())

    merges = 0
    while len(clusters) > 1:
        min_d = float("inf")
        pair: tuple[int, int] | None = None

        for i in range(len(clusters)):
            for j in range(i + 1, len(clusters)):
                d = cluster_distance(clusters[i], clusters[j])
                if d < min_d:
                    min_d = d
                    pair = (i, j)

        if pair is None:
            # NaN distances; nothing comparable left to merge
            break

        i, j = pair
        c1, c2 = clusters[i], clusters[j]
        members = c1.members + c2.members
        merged = _Cluster(
            members=members,
            vec=features[members].mean(axis=0),
            tree=DendrogramNode(distance=min_d, children=[c1.tree, c2.tree]),
        )

        clusters = [c for idx, c in enumerate(clusters) if idx not in (i, j)]
        clusters.append(merged)
        merges += 1
        logger.debug("Merge %d: %d+%d members at distance %.4f",
                     merges, len(c1.members), len(c2.members), min_d)

    logger.info("Hierarchical clustering (%s/%s): %d leaves, %d merges",
                getattr(distance_type, "value", distance_type),
                method.value, len(nodes), merges)
    return clusters[0].tree


def cut_tree(tree: DendrogramNode | None, k: int) -> dict[str, int]:
    """Split a dendrogram into ``k`` flat clusters.

    Undoes the ``k-1`` highest merges, largest distance first. Cluster
    indices follow left-to-right leaf order. Asking for more clusters
    than leaves yields one cluster per leaf.
    """
    if tree is None:
        return {}

    frontier = [tree]
    while len(frontier) < k:
        candidates = [
            (idx, sub) for idx, sub in enumerate(frontier)
            if not sub.is_leaf and sub.children
        ]
        if not candidates:
            break
        idx, widest = max(candidates, key=lambda c: c[1].distance)
        frontier[idx:idx + 1] = widest.children

    assignments: dict[str, int] = {}
    for cluster_idx, sub in enumerate(frontier):
        for leaf in sub.leaves():
            assignments[leaf] = cluster_idx
    return assignments
