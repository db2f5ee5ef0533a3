"""One-mode co-occurrence graph construction.

Items (e.g. symptoms) registered under the same container (e.g. a
syndrome) become connected. The link weight is the number of distinct
containers a pair shares. Containers themselves are not emitted.
"""

from __future__ import annotations

import logging

from tcmkg.graph.models import Entity, GraphData, Link, Node, Relation

logger = logging.getLogger(__name__)

COOCCUR_LINK_TYPE = "co-occur"


def build_cooccurrence_graph(
    entities: list[Entity],
    relations: list[Relation],
    container_type: str,
    item_type: str,
) -> GraphData:
    """Derive the weighted item-item graph for one container/item pairing.

    A relation counts in either direction: container → item or
    item → container.
    """
    typed = {(e.name, e.type) for e in entities}

    container_items: dict[str, dict[str, None]] = {}
    all_items: dict[str, None] = {}

    for r in relations:
        if (r.source, container_type) in typed and (r.target, item_type) in typed:
            container_items.setdefault(r.source, {})[r.target] = None
            all_items[r.target] = None

        if (r.target, container_type) in typed and (r.source, item_type) in typed:
            container_items.setdefault(r.target, {})[r.source] = None
            all_items[r.source] = None

    nodes = [Node(id=item, group=item_type) for item in all_items]

    pair_weights: dict[tuple[str, str], int] = {}
    for items in container_items.values():
        members = list(items)
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                a, b = members[i], members[j]
                key = (a, b) if a < b else (b, a)
                pair_weights[key] = pair_weights.get(key, 0) + 1

    links = [
        Link(source=s, target=t, type=COOCCUR_LINK_TYPE, weight=w)
        for (s, t), w in pair_weights.items()
    ]

    logger.debug(
        "Co-occurrence %s/%s: %d containers, %d items, %d links",
        container_type, item_type, len(container_items), len(nodes), len(links),
    )
    return GraphData(nodes=nodes, links=links)
