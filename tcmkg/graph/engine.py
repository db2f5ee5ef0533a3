"""Analysis dispatch: one entry point for every algorithm.

Usage::

    engine = AnalysisEngine()
    raw = RawGraph.from_dict(payload)

    # Clustering over a co-occurrence graph
    result = engine.run(
        "hierarchical", raw,
        params={"distanceType": "euclidean", "method": "complete"},
        container_type="证候", item_type="症状",
    )
    tree = result.to_dict()["tree"]

    # Rules straight from the raw lists
    rules = engine.run("association", raw, params={
        "frontType": "症状", "backType": "证候",
        "minSupport": 0.1, "minConfidence": 0.5,
    })

Callers that already hold a graph can use ``run_algorithm`` directly.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Union

from tcmkg.graph.association import AssociationResult, mine_association_rules
from tcmkg.graph.centrality import CentralityRankings, centrality_rankings
from tcmkg.graph.community import MAX_PASSES, CommunityResult, bipartite_communities
from tcmkg.graph.cooccurrence import build_cooccurrence_graph
from tcmkg.graph.distance import DistanceType
from tcmkg.graph.hierarchical import LinkageMethod, cut_tree, hierarchical_tree
from tcmkg.graph.kmeans import KMEANS_ITERATIONS, KMeansResult, vector_kmeans
from tcmkg.graph.loader import GraphLoader, LoadStats
from tcmkg.graph.models import DendrogramNode, GraphData, Node, NodeClusters, RawGraph

logger = logging.getLogger(__name__)


class AlgorithmType(str, enum.Enum):
    HIERARCHICAL = "hierarchical"
    KMEANS = "kmeans"
    COMMUNITY = "community"
    ASSOCIATION = "association"
    CENTRALITY = "centrality"

    @classmethod
    def _missing_(cls, value):
        # Accept upper-case names such as "HIERARCHICAL"
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


@dataclass
class HierarchicalParams:
    distance_type: DistanceType = DistanceType.EUCLIDEAN
    method: LinkageMethod = LinkageMethod.COMPLETE
    # Optional flat cut of the tree into k clusters.
    k: int | None = None

    def __post_init__(self) -> None:
        self.distance_type = DistanceType(self.distance_type)
        self.method = LinkageMethod(self.method)
        if self.k is not None:
            self.k = _positive_int(self.k, "k")


@dataclass
class KMeansParams:
    target_type: str
    k: int = 3

    def __post_init__(self) -> None:
        self.k = _positive_int(self.k, "k")


@dataclass
class CommunityParams:
    front_type: str
    back_type: str


@dataclass
class AssociationParams:
    front_type: str
    back_type: str
    min_support: float = 0.1
    min_confidence: float = 0.5


@dataclass
class CentralityParams:
    pass


AlgorithmParams = Union[
    HierarchicalParams,
    KMeansParams,
    CommunityParams,
    AssociationParams,
    CentralityParams,
]

PARAMS_TYPES: dict[AlgorithmType, type] = {
    AlgorithmType.HIERARCHICAL: HierarchicalParams,
    AlgorithmType.KMEANS: KMeansParams,
    AlgorithmType.COMMUNITY: CommunityParams,
    AlgorithmType.ASSOCIATION: AssociationParams,
    AlgorithmType.CENTRALITY: CentralityParams,
}

# Algorithms that read the raw entity/relation lists instead of a graph.
RAW_ALGORITHMS = frozenset({
    AlgorithmType.KMEANS,
    AlgorithmType.COMMUNITY,
    AlgorithmType.ASSOCIATION,
})


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a positive integer, got {value!r}") from None
    if not number.is_integer() or number < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return int(number)


def _snake_case(key: str) -> str:
    out = []
    for ch in key:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


def parse_params(
    algorithm: AlgorithmType | str,
    mapping: Mapping[str, Any] | None = None,
) -> AlgorithmParams:
    """Build the params dataclass for ``algorithm``.

    Keys may be camelCase (``minSupport``) or snake_case (``min_support``);
    unknown keys are ignored. Raises ``ValueError`` for an unknown
    algorithm, an invalid enum value or a bad ``k``, and ``TypeError``
    when a required field is missing.
    """
    algorithm = AlgorithmType(algorithm)
    params_cls = PARAMS_TYPES[algorithm]
    known = {f.name for f in fields(params_cls)}

    kwargs = {}
    for key, value in (mapping or {}).items():
        name = _snake_case(key)
        if name in known and value is not None:
            kwargs[name] = value
    return params_cls(**kwargs)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class HierarchicalResult:
    tree: DendrogramNode | None = None
    # Flat cluster per leaf, only when the params asked for a cut.
    assignments: dict[str, int] = field(default_factory=dict)
    # Graph nodes annotated with ``clusters.hierarchical`` when cut.
    nodes: list[Node] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"tree": self.tree.to_dict() if self.tree else None}
        if self.assignments:
            d["assignments"] = dict(self.assignments)
            d["nodes"] = [n.to_dict() for n in self.nodes]
        return d


def _with_hierarchical_clusters(nodes: list[Node], assignments: dict[str, int]) -> list[Node]:
    out = []
    for node in nodes:
        clusters = replace(node.clusters) if node.clusters else NodeClusters()
        clusters.hierarchical = assignments.get(node.id)
        out.append(replace(node, clusters=clusters))
    return out


AnalysisResult = Union[
    HierarchicalResult,
    KMeansResult,
    CommunityResult,
    AssociationResult,
    CentralityRankings,
]

EMPTY_RESULTS = {
    AlgorithmType.HIERARCHICAL: HierarchicalResult,
    AlgorithmType.KMEANS: KMeansResult,
    AlgorithmType.COMMUNITY: CommunityResult,
    AlgorithmType.ASSOCIATION: AssociationResult,
    AlgorithmType.CENTRALITY: CentralityRankings,
}


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def run_algorithm(
    algorithm: AlgorithmType | str,
    graph: GraphData | None = None,
    params: AlgorithmParams | Mapping[str, Any] | None = None,
    raw: RawGraph | None = None,
    *,
    kmeans_iterations: int = KMEANS_ITERATIONS,
    community_seed: int | None = None,
    community_max_passes: int = MAX_PASSES,
) -> AnalysisResult:
    """Run one algorithm and return its typed result.

    HIERARCHICAL and CENTRALITY read ``graph``; KMEANS, COMMUNITY and
    ASSOCIATION read ``raw``. When the input an algorithm needs is
    missing, its empty result is returned and a warning is logged.
    """
    algorithm = AlgorithmType(algorithm)
    expected = PARAMS_TYPES[algorithm]

    if params is None and algorithm in (AlgorithmType.HIERARCHICAL, AlgorithmType.CENTRALITY):
        params = expected()
    elif params is None or isinstance(params, Mapping):
        params = parse_params(algorithm, params)
    if not isinstance(params, expected):
        raise TypeError(
            f"{algorithm.value} expects {expected.__name__}, got {type(params).__name__}"
        )

    if algorithm in RAW_ALGORITHMS:
        if raw is None:
            logger.warning("%s called without raw entities/relations", algorithm.value)
            return EMPTY_RESULTS[algorithm]()
    elif graph is None:
        logger.warning("%s called without a graph", algorithm.value)
        return EMPTY_RESULTS[algorithm]()

    if algorithm is AlgorithmType.HIERARCHICAL:
        tree = hierarchical_tree(graph.nodes, graph.links, params.distance_type, params.method)
        if not params.k:
            return HierarchicalResult(tree=tree)
        assignments = cut_tree(tree, params.k)
        return HierarchicalResult(
            tree=tree,
            assignments=assignments,
            nodes=_with_hierarchical_clusters(graph.nodes, assignments),
        )

    if algorithm is AlgorithmType.KMEANS:
        return vector_kmeans(
            raw.entities, raw.relations, params.target_type, params.k,
            iterations=kmeans_iterations,
        )

    if algorithm is AlgorithmType.COMMUNITY:
        return bipartite_communities(
            raw.entities, raw.relations, params.front_type, params.back_type,
            seed=community_seed, max_passes=community_max_passes,
        )

    if algorithm is AlgorithmType.ASSOCIATION:
        return mine_association_rules(
            raw.entities, raw.relations, params.front_type, params.back_type,
            params.min_support, params.min_confidence,
        )

    return centrality_rankings(graph.nodes, graph.links)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AnalysisEngine:
    """Build graphs from raw entity lists and run analyses on them.

    Parameters
    ----------
    settings:
        A ``Settings`` instance. Defaults to the module-level settings,
        which read ``TCMKG_*`` environment variables.
    """

    def __init__(self, settings=None) -> None:
        if settings is None:
            from tcmkg.config.settings import settings as default_settings
            settings = default_settings
        self.settings = settings
        self._loader = GraphLoader(
            max_nodes=settings.MAX_NODES,
            include_orphan_nodes=settings.INCLUDE_ORPHAN_NODES,
        )

    def load(self, raw: RawGraph) -> tuple[GraphData, LoadStats]:
        """Standard entity graph, one node per entity and one link per relation."""
        graph, stats = self._loader.load(raw.entities, raw.relations)
        logger.info(
            "Graph built: %d nodes, %d links (%d orphan references)",
            stats.nodes_loaded + stats.orphan_references, stats.links_loaded,
            stats.orphan_references,
        )
        return graph, stats

    def cooccurrence(self, raw: RawGraph, container_type: str, item_type: str) -> GraphData:
        return build_cooccurrence_graph(raw.entities, raw.relations, container_type, item_type)

    def graph_for(
        self,
        raw: RawGraph,
        container_type: str | None = None,
        item_type: str | None = None,
    ) -> GraphData:
        """Co-occurrence graph when both types are given, else the standard graph."""
        if container_type and item_type:
            return self.cooccurrence(raw, container_type, item_type)
        graph, _ = self.load(raw)
        return graph

    def default_params(self, algorithm: AlgorithmType | str) -> dict[str, Any]:
        algorithm = AlgorithmType(algorithm)
        if algorithm is AlgorithmType.HIERARCHICAL:
            return {
                "distance_type": self.settings.DEFAULT_DISTANCE,
                "method": self.settings.DEFAULT_LINKAGE,
            }
        return {}

    def run(
        self,
        algorithm: AlgorithmType | str,
        raw: RawGraph,
        params: AlgorithmParams | Mapping[str, Any] | None = None,
        container_type: str | None = None,
        item_type: str | None = None,
    ) -> AnalysisResult:
        """Run ``algorithm`` on ``raw`` with settings-backed defaults."""
        algorithm = AlgorithmType(algorithm)

        if params is None or isinstance(params, Mapping):
            merged = self.default_params(algorithm)
            for key, value in (params or {}).items():
                merged[_snake_case(key)] = value
            params = parse_params(algorithm, merged)

        graph = None
        if algorithm not in RAW_ALGORITHMS:
            graph = self.graph_for(raw, container_type, item_type)

        return run_algorithm(
            algorithm, graph=graph, params=params, raw=raw,
            kmeans_iterations=self.settings.KMEANS_ITERATIONS,
            community_seed=self.settings.COMMUNITY_SEED,
            community_max_passes=self.settings.COMMUNITY_MAX_PASSES,
        )
