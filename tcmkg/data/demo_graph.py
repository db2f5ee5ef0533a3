"""Demo knowledge graph for first-use experience.

A small Traditional Chinese Medicine network: one disease with its
Western counterpart, the symptoms of a qi-deficiency / blood-stasis
syndrome, a formula that treats the syndrome and the herbs it is
composed of. It exercises every algorithm:

  co-occurrence  证候 → 症状 (four symptoms under one syndrome)
  k-means        中药 by the formulas/diseases they relate to
  community      方剂 / 中药 bipartite subgraph
  association    症状 → 证候 over the direct 是症状 links
"""

from __future__ import annotations

from typing import Any

from tcmkg.graph.models import RawGraph

# ---------------------------------------------------------------------------
# Scenario: 胸痹 (chest impediment) and 补阳还五汤
#
#   冠状动脉粥样硬化性心脏病 ──属于──> 胸痹 <──治疗── 丹参 ──可以搭配──> 三七
#   胸闷 / 胸痛 / 心悸 / 气短 ──是症状──> 气虚血瘀证
#   补阳还五汤 ──组成──> 黄芪 / 当归 / 川芎 / 地龙
#   补阳还五汤 ──治疗 / 适用──> 气虚血瘀证
# ---------------------------------------------------------------------------

_DEMO_ENTITIES: list[dict[str, Any]] = [
    {"type": "疾病", "name": "胸痹"},
    {"type": "疾病", "name": "冠状动脉粥样硬化性心脏病"},
    {"type": "症状", "name": "胸闷"},
    {"type": "症状", "name": "胸痛"},
    {"type": "证候", "name": "气虚血瘀证"},
    {"type": "中药", "name": "丹参"},
    {"type": "中药", "name": "三七"},
    {"type": "中药", "name": "黄芪"},
    {"type": "方剂", "name": "补阳还五汤"},
    {"type": "症状", "name": "心悸"},
    {"type": "症状", "name": "气短"},
    {"type": "中药", "name": "当归"},
    {"type": "中药", "name": "川芎"},
    {"type": "中药", "name": "地龙"},
]

_DEMO_RELATIONS: list[dict[str, Any]] = [
    {"source": "冠状动脉粥样硬化性心脏病", "relation": "属于", "target": "胸痹"},
    {"source": "胸闷", "relation": "是症状", "target": "气虚血瘀证"},
    {"source": "胸痛", "relation": "是症状", "target": "气虚血瘀证"},
    {"source": "心悸", "relation": "是症状", "target": "气虚血瘀证"},
    {"source": "气短", "relation": "是症状", "target": "气虚血瘀证"},
    {"source": "丹参", "relation": "治疗", "target": "胸痹"},
    {"source": "补阳还五汤", "relation": "组成", "target": "黄芪"},
    {"source": "补阳还五汤", "relation": "组成", "target": "当归"},
    {"source": "补阳还五汤", "relation": "组成", "target": "川芎"},
    {"source": "补阳还五汤", "relation": "组成", "target": "地龙"},
    {"source": "补阳还五汤", "relation": "治疗", "target": "气虚血瘀证"},
    {"source": "丹参", "relation": "可以搭配", "target": "三七"},
    {"source": "气虚血瘀证", "relation": "包含", "target": "胸闷"},
    {"source": "气虚血瘀证", "relation": "包含", "target": "胸痛"},
    {"source": "补阳还五汤", "relation": "适用", "target": "气虚血瘀证"},
]


def get_demo_payload() -> dict[str, Any]:
    """Demo data as plain JSON-compatible dicts (copies)."""
    return {
        "entities": [dict(e) for e in _DEMO_ENTITIES],
        "relations": [dict(r) for r in _DEMO_RELATIONS],
    }


def get_demo_graph() -> RawGraph:
    return RawGraph.from_dict(get_demo_payload())
