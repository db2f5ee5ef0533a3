"""Front→back association rules mined from synthesized transactions.

There is no transaction table in an entity graph, so transactions are
derived from the relations:

* a direct front→back relation is a transaction of its two endpoints;
* a "connector" entity whose relation targets include at least one front
  and one back item is a transaction of those items (e.g. a syndrome
  linking symptoms and formulas).

Rules are scored with the usual support / confidence / lift.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from tcmkg.graph.models import (
    UNKNOWN_GROUP,
    AssociationMetrics,
    AssociationRuleResult,
    Entity,
    Link,
    Node,
    NodeMetrics,
    Relation,
)

logger = logging.getLogger(__name__)

ASSOCIATION_LINK_TYPE = "assoc"


@dataclass
class AssociationResult:
    rules: list[AssociationRuleResult] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    transaction_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "rules": [r.to_dict() for r in self.rules],
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
            "transactionCount": self.transaction_count,
        }


def build_transactions(
    entities: list[Entity],
    relations: list[Relation],
    front_type: str,
    back_type: str,
) -> dict[str, set[str]]:
    """Synthesize transactions keyed by ``direct_<index>`` or connector name."""
    type_of: dict[str, str] = {}
    for e in entities:
        type_of.setdefault(e.name, e.type)

    transactions: dict[str, set[str]] = {}

    for idx, r in enumerate(relations):
        if type_of.get(r.source) == front_type and type_of.get(r.target) == back_type:
            transactions[f"direct_{idx}"] = {r.source, r.target}

    connector_targets: dict[str, dict[str, None]] = {}
    for r in relations:
        connector_targets.setdefault(r.source, {})[r.target] = None

    for connector, targets in connector_targets.items():
        fronts = [t for t in targets if type_of.get(t) == front_type]
        backs = [t for t in targets if type_of.get(t) == back_type]
        if fronts and backs:
            transactions[connector] = set(fronts) | set(backs)

    return transactions


def mine_association_rules(
    entities: list[Entity],
    relations: list[Relation],
    front_type: str,
    back_type: str,
    min_support: float,
    min_confidence: float,
) -> AssociationResult:
    """Mine front→back rules passing both thresholds, sorted by lift.

    Preconditions: ``min_support`` and ``min_confidence`` lie in [0, 1].
    No transactions gives an empty result.
    """
    type_of: dict[str, str] = {}
    for e in entities:
        type_of.setdefault(e.name, e.type)

    transactions = build_transactions(entities, relations, front_type, back_type)
    total = len(transactions)
    if total == 0:
        logger.info("Association %s→%s: no transactions", front_type, back_type)
        return AssociationResult()

    item_counts: dict[str, int] = {}
    pair_counts: dict[tuple[str, str], int] = {}

    for items in transactions.values():
        for item in items:
            item_counts[item] = item_counts.get(item, 0) + 1

        fronts = sorted(i for i in items if type_of.get(i) == front_type)
        backs = sorted(i for i in items if type_of.get(i) == back_type)
        for f in fronts:
            for b in backs:
                pair_counts[(f, b)] = pair_counts.get((f, b), 0) + 1

    rules: list[AssociationRuleResult] = []
    rule_items: dict[str, None] = {}

    for (source, target), count in pair_counts.items():
        support = count / total
        if support < min_support:
            continue
        confidence = support / (item_counts[source] / total)
        if confidence < min_confidence:
            continue
        lift = confidence / (item_counts[target] / total)

        rules.append(AssociationRuleResult(
            source=source,
            target=target,
            support=support,
            confidence=confidence,
            lift=lift,
            cooccur=count,
        ))
        rule_items[source] = None
        rule_items[target] = None

    rules.sort(key=lambda r: r.lift, reverse=True)

    nodes = [
        Node(id=item, group=type_of.get(item, UNKNOWN_GROUP), metrics=NodeMetrics())
        for item in rule_items
    ]
    links = [
        Link(
            source=r.source,
            target=r.target,
            type=ASSOCIATION_LINK_TYPE,
            association=AssociationMetrics(
                support=r.support,
                confidence=r.confidence,
                lift=r.lift,
            ),
        )
        for r in rules
    ]

    logger.info("Association %s→%s: %d transactions, %d candidate pairs, %d rules",
                front_type, back_type, total, len(pair_counts), len(rules))
    return AssociationResult(rules=rules, nodes=nodes, links=links, transaction_count=total)
