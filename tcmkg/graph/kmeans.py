"""K-means over cross-type incidence vectors.

Entities of one type (e.g. herbs) are described by which other entities
they are related to (e.g. the formulas they appear in) and partitioned
with Lloyd's algorithm. The iteration budget is fixed with no
convergence check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from tcmkg.graph.models import Entity, Node, NodeClusters, Relation

logger = logging.getLogger(__name__)

KMEANS_ITERATIONS = 10


@dataclass
class KMeansResult:
    """Cluster index per entity name plus annotated nodes."""
    result: dict[str, int] = field(default_factory=dict)
    nodes: list[Node] = field(default_factory=list)
    features: list[str] = field(default_factory=list)

    @property
    def cluster_count(self) -> int:
        return len(set(self.result.values()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": dict(self.result),
            "nodes": [n.to_dict() for n in self.nodes],
        }


def incidence_vectors(
    entities: list[Entity],
    relations: list[Relation],
    target_type: str,
) -> tuple[list[Entity], list[str], np.ndarray]:
    """Vectorize every ``target_type`` entity by its relation partners.

    Returns ``(targets, features, vectors)`` where ``features`` is the
    sorted vocabulary of other-endpoint names and each vector is the 0/1
    incidence row of one target over it, stacked into a matrix.
    """
    type_of: dict[str, str] = {}
    for e in entities:
        type_of.setdefault(e.name, e.type)

    targets: list[Entity] = []
    seen: set[str] = set()
    for e in entities:
        if e.type == target_type and e.name not in seen:
            seen.add(e.name)
            targets.append(e)

    connections: dict[str, set[str]] = {}
    features: set[str] = set()
    for r in relations:
        if r.source not in seen and r.target not in seen:
            continue
        if type_of.get(r.source) == target_type:
            target, feature = r.source, r.target
        else:
            target, feature = r.target, r.source
        features.add(feature)
        connections.setdefault(target, set()).add(feature)

    feature_list = sorted(features)
    column = {f: i for i, f in enumerate(feature_list)}
    vectors = np.zeros((len(targets), len(feature_list)))
    for row, t in enumerate(targets):
        for f in connections.get(t.name, ()):
            vectors[row, column[f]] = 1.0
    return targets, feature_list, vectors


def lloyd_kmeans(
    vectors: np.ndarray | list[list[float]],
    k: int,
    iterations: int = KMEANS_ITERATIONS,
) -> list[int]:
    """Assign each vector to one of ``min(k, len(vectors))`` clusters.

    Centroids start as the first vectors. Every iteration assigns each
    vector to its first nearest centroid, then moves each centroid to the
    mean of its members; a centroid with no members stays where it is.
    """
    vectors = np.asarray(vectors, dtype=float)
    if len(vectors) == 0:
        return []

    centroids = vectors[:k].copy()
    assignments = np.zeros(len(vectors), dtype=int)

    for iteration in range(iterations):
        # argmin returns the first nearest centroid on ties
        distances = np.linalg.norm(vectors[:, None, :] - centroids[None, :, :], axis=2)
        assignments = distances.argmin(axis=1)

        counts = np.bincount(assignments, minlength=len(centroids))
        for ci in range(len(centroids)):
            if counts[ci]:
                centroids[ci] = vectors[assignments == ci].mean(axis=0)
        logger.debug("k-means iteration %d: sizes %s", iteration, counts.tolist())

    return assignments.tolist()


def vector_kmeans(
    entities: list[Entity],
    relations: list[Relation],
    target_type: str,
    k: int,
    iterations: int = KMEANS_ITERATIONS,
) -> KMeansResult:
    """Cluster the entities of ``target_type`` into ``k`` groups.

    Precondition: ``k >= 1``. With fewer entities than ``k`` every entity
    seeds its own centroid, so indices lie in ``[0, min(k, n))``. No
    target entities gives an empty result.
    """
    targets, features, vectors = incidence_vectors(entities, relations, target_type)
    if not targets:
        return KMeansResult()

    assignments = lloyd_kmeans(vectors, k, iterations=iterations)

    result = {t.name: c for t, c in zip(targets, assignments)}
    nodes = [
        Node(id=t.name, group=t.type, clusters=NodeClusters(kmeans=result[t.name]))
        for t in targets
    ]

    logger.info("k-means on %r: %d entities, %d features, k=%d",
                target_type, len(targets), len(features), k)
    return KMeansResult(result=result, nodes=nodes, features=features)
