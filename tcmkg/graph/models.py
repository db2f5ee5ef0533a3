"""Data model shared by every analysis algorithm.

Raw input is a pair of lists: typed entities and typed relations between
entity names. Algorithms derive nodes, links, dendrograms, rules and
rankings from them. Every derived type serializes to the camelCase JSON
shape the visualization front-end consumes via ``to_dict()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

# Group assigned to nodes whose type is not known (relation endpoints
# that never appear in the entity list).
UNKNOWN_GROUP = "Unknown"


# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------


@dataclass
class Entity:
    """A typed entity. ``name`` is the global identifier."""
    type: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Entity":
        return cls(type=str(d["type"]).strip(), name=str(d["name"]).strip())


@dataclass
class Relation:
    """A directed, typed edge between two entity names."""
    source: str
    relation: str
    target: str

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "relation": self.relation, "target": self.target}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Relation":
        return cls(
            source=str(d["source"]).strip(),
            relation=str(d.get("relation", "")).strip(),
            target=str(d["target"]).strip(),
        )


@dataclass
class RawGraph:
    """The untouched entity/relation lists an analysis runs on."""
    entities: list[Entity] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)

    def type_index(self) -> dict[str, str]:
        """Map entity name to type. The first entity with a name wins."""
        index: dict[str, str] = {}
        for entity in self.entities:
            index.setdefault(entity.name, entity.type)
        return index

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "RawGraph":
        return cls(
            entities=[Entity.from_dict(e) for e in d.get("entities", [])],
            relations=[Relation.from_dict(r) for r in d.get("relations", [])],
        )


# ---------------------------------------------------------------------------
# Derived graph
# ---------------------------------------------------------------------------


@dataclass
class NodeMetrics:
    """Per-node analysis metrics. Each stays ``None`` until computed."""
    degree: float | None = None
    betweenness: float | None = None
    closeness: float | None = None
    k_core: int | None = None
    community: int | None = None
    clustering_coefficient: float | None = None

    def get(self, name: str) -> float | None:
        """Look a metric up by its JSON or attribute name."""
        attr = _METRIC_ALIASES.get(name, name)
        return getattr(self, attr, None)

    def to_dict(self) -> dict[str, Any]:
        out = {
            "degree": self.degree,
            "betweenness": self.betweenness,
            "closeness": self.closeness,
            "kCore": self.k_core,
            "community": self.community,
            "clusteringCoefficient": self.clustering_coefficient,
        }
        return {k: v for k, v in out.items() if v is not None}


_METRIC_ALIASES = {"kCore": "k_core", "clusteringCoefficient": "clustering_coefficient"}


@dataclass
class NodeClusters:
    """Flat cluster indices assigned by the clustering algorithms."""
    kmeans: int | None = None
    hierarchical: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out = {"kmeans": self.kmeans, "hierarchical": self.hierarchical}
        return {k: v for k, v in out.items() if v is not None}


@dataclass
class Node:
    """A graph node. ``group`` starts as the entity type."""
    id: str
    group: str
    metrics: NodeMetrics | None = None
    clusters: NodeClusters | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "group": self.group}
        if self.metrics is not None:
            d["metrics"] = self.metrics.to_dict()
        if self.clusters is not None:
            d["clusters"] = self.clusters.to_dict()
        return d


@dataclass
class AssociationMetrics:
    support: float
    confidence: float
    lift: float
    is_rule: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "support": self.support,
            "confidence": self.confidence,
            "lift": self.lift,
            "isRule": self.is_rule,
        }


@dataclass
class Link:
    """A graph link. Endpoints are node ids or resolved ``Node`` objects."""
    source: Union[str, Node]
    target: Union[str, Node]
    type: str
    weight: float | None = None
    association: AssociationMetrics | None = None

    @property
    def source_id(self) -> str:
        return endpoint_id(self.source)

    @property
    def target_id(self) -> str:
        return endpoint_id(self.target)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "source": self.source_id,
            "target": self.target_id,
            "type": self.type,
        }
        if self.weight is not None:
            d["weight"] = self.weight
        if self.association is not None:
            d["association"] = self.association.to_dict()
        return d


def endpoint_id(endpoint: Union[str, Node]) -> str:
    """Resolve a link endpoint to its node id."""
    if isinstance(endpoint, Node):
        return endpoint.id
    return endpoint


@dataclass
class GraphData:
    """A node/link set plus optional graph-level metadata."""
    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
        }
        if self.metadata:
            d["metadata"] = dict(self.metadata)
        return d


# ---------------------------------------------------------------------------
# Algorithm outputs
# ---------------------------------------------------------------------------


@dataclass
class DendrogramNode:
    """A node of a binary merge tree.

    Leaves carry the node id in ``name`` and ``is_leaf=True``. Internal
    nodes carry the merge distance and exactly two children.
    """
    name: str = ""
    distance: float = 0.0
    children: list["DendrogramNode"] = field(default_factory=list)
    is_leaf: bool = False

    def leaves(self) -> list[str]:
        """Leaf names in left-to-right order."""
        if self.is_leaf:
            return [self.name]
        names: list[str] = []
        for child in self.children:
            names.extend(child.leaves())
        return names

    def internal_count(self) -> int:
        if self.is_leaf:
            return 0
        return 1 + sum(child.internal_count() for child in self.children)

    def to_dict(self) -> dict[str, Any]:
        if self.is_leaf:
            return {"name": self.name, "isLeaf": True, "distance": self.distance}
        return {
            "name": self.name,
            "distance": self.distance,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class AssociationRuleResult:
    """One front→back rule passing both thresholds."""
    source: str
    target: str
    support: float
    confidence: float
    lift: float
    cooccur: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "support": self.support,
            "confidence": self.confidence,
            "lift": self.lift,
            "cooccur": self.cooccur,
        }


@dataclass
class RankEntry:
    id: str
    val: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "val": self.val}
