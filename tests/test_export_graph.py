from __future__ import annotations

import json
from pathlib import Path

import pytest

from aws_inventory.export.graph import (
    marshal_triples,
    summarize_graph,
    triple_to_dict,
    write_graph_jsonl,
    write_summary,
    write_triples,
)
from aws_inventory.graph import build_infra_graph
from aws_inventory.normalize.schema import (
    GRAPH_JSONL_FIELDS,
    GRAPH_SUMMARY_FIELDS,
    OUT_SCHEMA_FIELD_DOCS,
    InfraSnapshot,
    Instance,
    Subnet,
    Vpc,
    resolve_output_paths,
)
from aws_inventory.util.errors import ExportError


def _graph():
    snapshot = InfraSnapshot(
        vpcs=[Vpc(id="vpc-1")],
        subnets=[Subnet(id="subnet-1", vpc_id="vpc-1")],
        instances=[Instance(id="i-1", subnet_id="subnet-1", instance_type="t2.micro")],
    )
    return build_infra_graph("eu-west-1", snapshot)


def test_marshal_writes_one_tab_separated_line_per_triple() -> None:
    graph = _graph()
    text = marshal_triples(graph)
    lines = text.splitlines()

    assert text.endswith("\n")
    assert len(lines) == len(graph)
    assert lines[0] == '/region<eu-west-1>\t"has_type"@[]\t"/region"^^type:text'
    assert '/vpc<vpc-1>\t"parent_of"@[]\t/subnet<subnet-1>' in lines
    assert '/instance<i-1>\t"instanceType"@[]\t"t2.micro"^^type:text' in lines


def test_triple_to_dict_distinguishes_nodes_and_literals() -> None:
    graph = _graph()
    rows = [triple_to_dict(t) for t in graph]

    assert all(sorted(r) == sorted(GRAPH_JSONL_FIELDS) for r in rows)
    assert rows[0] == {
        "subject": "/region<eu-west-1>",
        "predicate": "has_type",
        "object": "/region",
        "objectType": "literal",
    }
    edge = next(r for r in rows if r["predicate"] == "parent_of")
    assert edge["objectType"] == "node"
    assert edge["object"] == "/vpc<vpc-1>"


def test_write_artifacts_under_region_dir(tmp_path: Path) -> None:
    graph = _graph()
    paths = resolve_output_paths(tmp_path, "infra", "eu-west-1")

    write_triples(paths.triples, graph)
    write_graph_jsonl(paths.graph_jsonl, graph)
    write_summary(paths.summary_json, summarize_graph(graph, graph_kind="infra", region="eu-west-1"))

    assert paths.triples == tmp_path / "eu-west-1" / "infra.triples"
    assert paths.triples.read_text(encoding="utf-8") == marshal_triples(graph)

    jsonl = paths.graph_jsonl.read_text(encoding="utf-8").splitlines()
    assert len(jsonl) == len(graph)
    assert json.loads(jsonl[0])["subject"] == "/region<eu-west-1>"

    summary = json.loads(paths.summary_json.read_text(encoding="utf-8"))
    assert sorted(summary) == sorted(GRAPH_SUMMARY_FIELDS)
    assert summary["total_triples"] == len(graph)
    assert summary["total_nodes"] == 4
    assert summary["counts_by_predicate"]["parent_of"] == 3
    assert summary["counts_by_kind"] == {"/instance": 1, "/region": 1, "/subnet": 1, "/vpc": 1}


def test_write_failure_is_export_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ExportError):
        write_triples(blocker / "eu-west-1" / "infra.triples", _graph())


def test_field_docs_cover_every_output_field() -> None:
    assert sorted(OUT_SCHEMA_FIELD_DOCS["<region>/<graph>.jsonl"]) == sorted(GRAPH_JSONL_FIELDS)
    assert sorted(OUT_SCHEMA_FIELD_DOCS["<region>/<graph>_summary.json"]) == sorted(GRAPH_SUMMARY_FIELDS)
