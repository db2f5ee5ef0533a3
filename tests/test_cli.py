"""Tests for the tcmkg command-line interface."""

from __future__ import annotations

import json

import pytest

from tcmkg.cli import _parse_param_args, main
from tcmkg.data.demo_graph import get_demo_payload


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(get_demo_payload(), ensure_ascii=False), encoding="utf-8")
    return path


def _json_out(capsys) -> dict:
    return json.loads(capsys.readouterr().out)


class TestParamArgs:
    def test_json_values(self):
        assert _parse_param_args(["k=3", "minSupport=0.2", "targetType=中药"]) == {
            "k": 3, "minSupport": 0.2, "targetType": "中药",
        }

    def test_value_may_contain_equals(self):
        assert _parse_param_args(["name=a=b"]) == {"name": "a=b"}

    def test_missing_equals(self):
        with pytest.raises(ValueError):
            _parse_param_args(["k"])


class TestCommands:
    def test_no_command_exits(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1

    def test_demo(self, capsys):
        main(["demo"])
        data = _json_out(capsys)
        assert len(data["entities"]) == 14
        assert len(data["relations"]) == 15

    def test_run_centrality_top(self, capsys):
        main(["run", "centrality", "--top", "3"])
        data = _json_out(capsys)
        assert len(data["degree"]) == 3
        assert data["degree"][0]["id"] == "气虚血瘀证"

    def test_run_centrality_default_top(self, capsys):
        main(["run", "centrality"])
        assert len(_json_out(capsys)["betweenness"]) == 5

    def test_run_kmeans_from_file(self, capsys, data_file):
        main(["run", "kmeans", "--data", str(data_file), "-p", "targetType=中药", "-p", "k=2"])
        data = _json_out(capsys)
        assert data["result"]["丹参"] == 0

    def test_run_hierarchical_with_cut(self, capsys):
        main([
            "run", "hierarchical", "--container-type", "证候", "--item-type", "症状",
            "--param", "k=2",
        ])
        data = _json_out(capsys)
        assert data["tree"]["distance"] > 0
        assert data["assignments"]["心悸"] == 1
        assert {n["id"]: n["clusters"]["hierarchical"] for n in data["nodes"]} == data["assignments"]

    def test_run_centrality_top_zero(self, capsys):
        main(["run", "centrality", "--top", "0"])
        assert _json_out(capsys) == {"degree": [], "betweenness": [], "closeness": []}


    def test_run_hierarchical_newick(self, capsys):
        main([
            "run", "hierarchical", "--container-type", "证候", "--item-type", "症状",
            "--format", "newick",
        ])
        out = capsys.readouterr().out.strip()
        assert out.startswith("((胸闷:")
        assert out.endswith(";")

    def test_run_association_csv(self, capsys):
        main([
            "run", "association", "-p", "frontType=症状", "-p", "backType=证候",
            "-p", "minSupport=0.2", "-p", "minConfidence=0.5", "--format", "csv",
        ])
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0].strip() == "source,target,support,confidence,lift,cooccur"
        assert len(lines) == 5

    def test_run_output_file(self, capsys, tmp_path):
        out = tmp_path / "result.json"
        main(["run", "community", "-p", "frontType=方剂", "-p", "backType=中药", "-o", str(out)])
        assert "Written to" in capsys.readouterr().out
        assert len(json.loads(out.read_text(encoding="utf-8"))["nodes"]) == 7

    def test_run_missing_param_exits(self):
        with pytest.raises(SystemExit) as exc:
            main(["run", "kmeans"])
        assert exc.value.code == 1

    def test_run_bad_k_exits(self):
        with pytest.raises(SystemExit) as exc:
            main(["run", "kmeans", "-p", "targetType=中药", "-p", "k=0"])
        assert exc.value.code == 1

    def test_format_mismatch_exits(self):
        with pytest.raises(SystemExit) as exc:
            main(["run", "centrality", "--format", "newick"])
        assert exc.value.code == 1

    def test_verbose_reraises(self):
        with pytest.raises(ValueError):
            main(["-v", "run", "kmeans", "-p", "targetType=中药", "-p", "k=0"])

    def test_cooccur_metrics(self, capsys):
        main(["cooccur", "--container-type", "证候", "--item-type", "症状", "--metrics"])
        data = _json_out(capsys)
        assert len(data["nodes"]) == 4
        assert data["metadata"]["diameter"] == 1
        assert data["nodes"][0]["metrics"]["degree"] == 3

    def test_cooccur_backbone(self, capsys):
        main(["cooccur", "--container-type", "证候", "--item-type", "症状", "--backbone", "2"])
        data = _json_out(capsys)
        assert data["links"] == []
        assert len(data["nodes"]) == 4
