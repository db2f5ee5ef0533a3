"""Tests for tcmkg.graph: communities, rules, centrality and metrics.

Tests cover:
  - Bipartite label-propagation communities
  - Association rule mining (transactions, thresholds, lift order)
  - Degree / betweenness / closeness rankings
  - Node metric annotation and graph-level metadata
  - Backbone filtering and color group keys

Centrality is cross-checked against NetworkX on a graph without
parallel links.
"""

import networkx as nx
import pytest

from tcmkg.data.demo_graph import get_demo_graph
from tcmkg.graph.association import ASSOCIATION_LINK_TYPE, build_transactions, mine_association_rules
from tcmkg.graph.centrality import betweenness_scores, centrality_rankings, closeness_scores, degree_scores
from tcmkg.graph.community import LabelPropagation, bipartite_communities
from tcmkg.graph.loader import to_networkx
from tcmkg.graph.metrics import annotate_metrics, assign_color_groups, extract_backbone, graph_metadata
from tcmkg.graph.models import (
    AssociationMetrics,
    GraphData,
    Link,
    Node,
    NodeClusters,
    NodeMetrics,
    RawGraph,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _graph(node_ids: list[str], edges: list[tuple]) -> GraphData:
    links = []
    for edge in edges:
        weight = edge[2] if len(edge) > 2 else None
        links.append(Link(source=edge[0], target=edge[1], type="rel", weight=weight))
    return GraphData(nodes=[Node(id=i, group="x") for i in node_ids], links=links)


@pytest.fixture
def demo() -> RawGraph:
    return get_demo_graph()


@pytest.fixture
def path_abc() -> GraphData:
    return _graph(["A", "B", "C"], [("A", "B"), ("B", "C")])


@pytest.fixture
def rules_raw() -> RawGraph:
    """Three syndromes connecting symptoms to formulas, plus one direct link.

    Transactions: 气虚血瘀证 {胸闷, 补阳还五汤}, 气滞血瘀证 {胸闷, 补阳还五汤},
    心血瘀阻证 {心悸, 血府逐瘀汤}, direct {胸闷, 血府逐瘀汤}.
    """
    return RawGraph.from_dict({
        "entities": [
            {"type": "症状", "name": "胸闷"},
            {"type": "症状", "name": "心悸"},
            {"type": "方剂", "name": "补阳还五汤"},
            {"type": "方剂", "name": "血府逐瘀汤"},
            {"type": "证候", "name": "气虚血瘀证"},
            {"type": "证候", "name": "气滞血瘀证"},
            {"type": "证候", "name": "心血瘀阻证"},
        ],
        "relations": [
            {"source": "气虚血瘀证", "relation": "包含", "target": "胸闷"},
            {"source": "气虚血瘀证", "relation": "宜用", "target": "补阳还五汤"},
            {"source": "气滞血瘀证", "relation": "包含", "target": "胸闷"},
            {"source": "气滞血瘀证", "relation": "宜用", "target": "补阳还五汤"},
            {"source": "心血瘀阻证", "relation": "包含", "target": "心悸"},
            {"source": "心血瘀阻证", "relation": "宜用", "target": "血府逐瘀汤"},
            {"source": "胸闷", "relation": "宜用", "target": "血府逐瘀汤"},
        ],
    })


# ---------------------------------------------------------------------------
# Community detection
# ---------------------------------------------------------------------------


class TestCommunity:
    def test_disconnected_components(self):
        raw = RawGraph.from_dict({
            "entities": [
                {"type": "方剂", "name": "F1"},
                {"type": "方剂", "name": "F2"},
                {"type": "中药", "name": "H1"},
                {"type": "中药", "name": "H2"},
            ],
            "relations": [
                {"source": "F1", "relation": "组成", "target": "H1"},
                {"source": "F2", "relation": "组成", "target": "H2"},
            ],
        })
        for seed in range(10):
            result = bipartite_communities(raw.entities, raw.relations, "方剂", "中药", seed=seed)
            membership = result.membership()
            assert membership["F1"] == membership["H1"]
            assert membership["F2"] == membership["H2"]
            assert membership["F1"] != membership["F2"]
            assert result.community_count >= 2

    def test_demo_formula_herbs(self, demo):
        result = bipartite_communities(demo.entities, demo.relations, "方剂", "中药", seed=1)
        membership = result.membership()

        assert len(result.nodes) == 7
        assert result.community_count == 2
        for herb in ["黄芪", "当归", "川芎", "地龙"]:
            assert membership[herb] == membership["补阳还五汤"]
        assert membership["丹参"] == membership["三七"]
        assert membership["丹参"] != membership["补阳还五汤"]

    def test_labels_dense_in_node_order(self, demo):
        result = bipartite_communities(demo.entities, demo.relations, "方剂", "中药", seed=3)
        assert result.nodes[0].id == "补阳还五汤"
        assert result.nodes[0].metrics.community == 0
        assert sorted(set(result.membership().values())) == [0, 1]

    def test_seed_reproducible(self, demo):
        first = bipartite_communities(demo.entities, demo.relations, "症状", "证候", seed=42)
        second = bipartite_communities(demo.entities, demo.relations, "症状", "证候", seed=42)
        assert first.membership() == second.membership()

    def test_links_filtered_to_member_types(self, demo):
        result = bipartite_communities(demo.entities, demo.relations, "方剂", "中药", seed=0)
        ids = {n.id for n in result.nodes}
        assert all(l.source_id in ids and l.target_id in ids for l in result.links)
        # 补阳还五汤 → 气虚血瘀证 leaves the subgraph
        assert len(result.links) == 5

    def test_isolated_nodes_keep_own_label(self):
        propagation = LabelPropagation(["A", "B", "C"], [], seed=0)
        assert propagation.run() == {"A": 0, "B": 1, "C": 2}
        assert propagation.passes == 1

    def test_tie_goes_to_lowest_label(self):
        # B sees A (label 0) and C (label 2) once each
        propagation = LabelPropagation(["A", "B", "C"], [Link("A", "B", "r"), Link("B", "C", "r")])
        assert propagation._best_label("B") == 0

    def test_empty(self, demo):
        result = bipartite_communities(demo.entities, demo.relations, "不存在", "也不存在")
        assert result.nodes == []
        assert result.to_dict() == {"nodes": [], "links": []}


# ---------------------------------------------------------------------------
# Association rules
# ---------------------------------------------------------------------------


class TestAssociation:
    def test_transactions(self, rules_raw):
        transactions = build_transactions(rules_raw.entities, rules_raw.relations, "症状", "方剂")
        assert transactions == {
            "direct_6": {"胸闷", "血府逐瘀汤"},
            "气虚血瘀证": {"胸闷", "补阳还五汤"},
            "气滞血瘀证": {"胸闷", "补阳还五汤"},
            "心血瘀阻证": {"心悸", "血府逐瘀汤"},
        }

    def test_metrics_and_lift_order(self, rules_raw):
        result = mine_association_rules(rules_raw.entities, rules_raw.relations, "症状", "方剂", 0.0, 0.0)

        assert result.transaction_count == 4
        pairs = [(r.source, r.target) for r in result.rules]
        assert pairs == [("心悸", "血府逐瘀汤"), ("胸闷", "补阳还五汤"), ("胸闷", "血府逐瘀汤")]

        top, middle, bottom = result.rules
        assert top.support == pytest.approx(0.25)
        assert top.confidence == pytest.approx(1.0)
        assert top.lift == pytest.approx(2.0)
        assert middle.support == pytest.approx(0.5)
        assert middle.confidence == pytest.approx(2 / 3)
        assert middle.lift == pytest.approx(4 / 3)
        assert middle.cooccur == 2
        assert bottom.lift == pytest.approx(2 / 3)

    @pytest.mark.parametrize("min_support,min_confidence", [
        (0.0, 0.0), (0.3, 0.0), (0.0, 0.5), (0.25, 0.9), (0.6, 0.0),
    ])
    def test_thresholds(self, rules_raw, min_support, min_confidence):
        result = mine_association_rules(
            rules_raw.entities, rules_raw.relations, "症状", "方剂", min_support, min_confidence,
        )
        for rule in result.rules:
            assert rule.support >= min_support
            assert rule.confidence >= min_confidence
        lifts = [r.lift for r in result.rules]
        assert lifts == sorted(lifts, reverse=True)

    def test_support_threshold(self, rules_raw):
        result = mine_association_rules(rules_raw.entities, rules_raw.relations, "症状", "方剂", 0.3, 0.0)
        assert [(r.source, r.target) for r in result.rules] == [("胸闷", "补阳还五汤")]

    def test_nodes_and_links(self, rules_raw):
        result = mine_association_rules(rules_raw.entities, rules_raw.relations, "症状", "方剂", 0.0, 0.5)

        assert {n.id for n in result.nodes} == {"心悸", "血府逐瘀汤", "胸闷", "补阳还五汤"}
        assert len(result.links) == 2
        link = result.links[0]
        assert link.type == ASSOCIATION_LINK_TYPE
        assert link.association.is_rule is True
        assert link.to_dict()["association"]["lift"] == pytest.approx(2.0)

    def test_demo_direct_transactions(self, demo):
        result = mine_association_rules(demo.entities, demo.relations, "症状", "证候", 0.2, 0.5)
        assert result.transaction_count == 4
        assert len(result.rules) == 4
        assert all(r.target == "气虚血瘀证" for r in result.rules)
        assert all(r.lift == pytest.approx(1.0) for r in result.rules)

    def test_no_transactions(self, demo):
        result = mine_association_rules(demo.entities, demo.relations, "症状", "方剂", 0.1, 0.5)
        assert result.rules == []
        assert result.to_dict()["transactionCount"] == 0


# ---------------------------------------------------------------------------
# Centrality
# ---------------------------------------------------------------------------


class TestCentrality:
    def test_path_graph(self, path_abc):
        rankings = centrality_rankings(path_abc.nodes, path_abc.links)

        degree = {e.id: e.val for e in rankings.degree}
        assert degree == {"A": 1, "B": 2, "C": 1}

        betweenness = {e.id: e.val for e in rankings.betweenness}
        assert betweenness["B"] > 0
        assert betweenness["A"] == 0
        assert betweenness["C"] == 0

        closeness = {e.id: e.val for e in rankings.closeness}
        assert closeness["B"] >= closeness["A"]
        assert closeness["B"] == pytest.approx(1.0)
        assert closeness["A"] == pytest.approx(2 / 3)

    def test_sorted_descending_stable(self, path_abc):
        rankings = centrality_rankings(path_abc.nodes, path_abc.links)
        assert [e.id for e in rankings.degree] == ["B", "A", "C"]

    def test_top(self, path_abc):
        rankings = centrality_rankings(path_abc.nodes, path_abc.links).top(1)
        assert rankings.to_dict() == {
            "degree": [{"id": "B", "val": 2}],
            "betweenness": [{"id": "B", "val": 2.0}],
            "closeness": [{"id": "B", "val": 1.0}],
        }

    def test_matches_networkx(self):
        g = nx.karate_club_graph()
        graph = _graph([str(n) for n in g.nodes], [(str(u), str(v)) for u, v in g.edges])
        ours = betweenness_scores(to_networkx(graph))
        theirs = nx.betweenness_centrality(g, normalized=False)
        for node, value in theirs.items():
            assert ours[str(node)] == pytest.approx(2 * value)

        closeness = closeness_scores(to_networkx(graph))
        for node, value in nx.closeness_centrality(g).items():
            assert closeness[str(node)] == pytest.approx(value)

    def test_parallel_links_and_self_loop(self):
        graph = _graph(["A", "B", "C", "Z"], [("A", "B"), ("A", "B"), ("B", "C"), ("A", "A")])
        g = to_networkx(graph)

        assert degree_scores(g) == {"A": 4, "B": 3, "C": 1, "Z": 0}
        # parallel A-B links do not double the A->C path count
        assert betweenness_scores(g) == {"A": 0.0, "B": 2.0, "C": 0.0, "Z": 0.0}
        closeness = closeness_scores(g)
        assert closeness["A"] == pytest.approx(2 / 3)
        assert closeness["B"] == pytest.approx(1.0)
        assert closeness["Z"] == 0.0

    def test_isolated_node(self):
        graph = _graph(["A", "B", "Z"], [("A", "B")])
        rankings = centrality_rankings(graph.nodes, graph.links)
        closeness = {e.id: e.val for e in rankings.closeness}
        assert closeness["Z"] == 0.0

    def test_empty(self):
        rankings = centrality_rankings([], [])
        assert rankings.to_dict() == {"degree": [], "betweenness": [], "closeness": []}


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestMetrics:
    def test_annotate_triangle_with_tail(self):
        graph = _graph(["A", "B", "C", "D"], [("A", "B"), ("B", "C"), ("C", "A"), ("C", "D")])
        graph.nodes[0].metrics = NodeMetrics(community=4)
        annotate_metrics(graph)

        by_id = {n.id: n.metrics for n in graph.nodes}
        assert by_id["A"].k_core == 2
        assert by_id["D"].k_core == 1
        assert by_id["A"].clustering_coefficient == pytest.approx(1.0)
        assert by_id["C"].clustering_coefficient == pytest.approx(1 / 3)
        assert by_id["C"].degree == 3
        assert by_id["A"].community == 4

    def test_self_loops_ignored_for_core(self):
        graph = _graph(["A", "B"], [("A", "B"), ("A", "A")])
        annotate_metrics(graph)
        assert {n.id: n.metrics.k_core for n in graph.nodes} == {"A": 1, "B": 1}

    def test_metadata_path(self, path_abc):
        meta = graph_metadata(path_abc)
        assert meta["density"] == pytest.approx(2 / 3)
        assert meta["avgDegree"] == pytest.approx(4 / 3)
        assert meta["diameter"] == 2
        assert meta["avgPathLength"] == pytest.approx(4 / 3)
        assert meta["globalClusteringCoeff"] == 0

    def test_metadata_largest_component(self):
        graph = _graph(["A", "B", "C", "X", "Y"], [("A", "B"), ("B", "C"), ("X", "Y")])
        assert graph_metadata(graph)["diameter"] == 2

    def test_metadata_empty(self):
        assert graph_metadata(GraphData()) == {
            "density": 0.0,
            "avgDegree": 0.0,
            "diameter": 0,
            "avgPathLength": 0.0,
            "globalClusteringCoeff": 0.0,
        }

    def test_backbone_weight(self):
        graph = _graph(["A", "B", "C"], [("A", "B", 3), ("B", "C", 1)])
        backbone = extract_backbone(graph, 2)
        assert [(l.source_id, l.target_id) for l in backbone.links] == [("A", "B")]
        assert len(backbone.nodes) == 3
        assert extract_backbone(graph, 0) is graph

    def test_backbone_lift(self):
        graph = _graph(["A", "B", "C"], [])
        graph.links = [
            Link("A", "B", "assoc", association=AssociationMetrics(0.5, 0.5, 1.5)),
            Link("A", "C", "assoc", association=AssociationMetrics(0.5, 0.5, 0.8)),
        ]
        backbone = extract_backbone(graph, 1.0, metric="lift")
        assert [l.target_id for l in backbone.links] == ["B"]

    def test_color_groups(self):
        nodes = [
            Node("A", "中药", metrics=NodeMetrics(community=1, k_core=2), clusters=NodeClusters(kmeans=0)),
            Node("B", "方剂"),
        ]
        assert [n.group for n in assign_color_groups(nodes, "community")] == ["C1", "方剂"]
        assert [n.group for n in assign_color_groups(nodes, "kmeans")] == ["KM0", "方剂"]
        assert [n.group for n in assign_color_groups(nodes, "kCore")] == ["Core2", "方剂"]
        assert [n.group for n in assign_color_groups(nodes, "none")] == ["中药", "方剂"]
        # originals untouched
        assert nodes[0].group == "中药"

    def test_color_groups_unknown_source(self):
        with pytest.raises(ValueError):
            assign_color_groups([], "pagerank")
