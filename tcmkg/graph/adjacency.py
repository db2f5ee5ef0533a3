"""Adjacency index over a node/link set.

Clustering and community detection read the graph through this view.
Links are treated as undirected: each contributes an entry on both
endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tcmkg.graph.models import Link


@dataclass
class Neighbor:
    id: str
    weight: float = 1.0


Adjacency = dict[str, list[Neighbor]]


def build_adjacency(
    node_ids: Iterable[str],
    links: Iterable[Link],
    weighted: bool = False,
) -> Adjacency:
    """Build ``node id -> [Neighbor]`` from a link list.

    Parameters
    ----------
    node_ids:
        The node set. Each id starts with an empty neighbor list.
    links:
        Links whose endpoints are ids or ``Node`` objects. A link with
        an endpoint outside the node set is dropped.
    weighted:
        Use ``link.weight`` (1 when unset or zero) instead of 1.

    Self-loops are not suppressed; a link from a node to itself adds two
    entries to that node's list.
    """
    adj: Adjacency = {node_id: [] for node_id in node_ids}

    for link in links:
        s, t = link.source_id, link.target_id
        if s not in adj or t not in adj:
            continue

        w = (link.weight or 1) if weighted else 1
        adj[s].append(Neighbor(id=t, weight=w))
        adj[t].append(Neighbor(id=s, weight=w))

    return adj
