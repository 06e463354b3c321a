from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable

from ..graph.model import Graph
from ..graph.terms import Node, Triple
from ..normalize.transform import stable_json_dumps
from ..util.errors import ExportError
from ..util.time import utc_now_iso


def marshal_triples(triples: Iterable[Triple]) -> str:
    """
    Render triples in the line-oriented text format, one tab-separated
    triple per line, e.g. /region<eu-west-1> "parent_of"@[] /vpc<vpc-1>
    """
    return "".join(f"{t}\n" for t in triples)


def triple_to_dict(triple: Triple) -> Dict[str, str]:
    obj = triple.object
    if isinstance(obj, Node):
        return {
            "subject": str(triple.subject),
            "predicate": triple.predicate.name,
            "object": str(obj),
            "objectType": "node",
        }
    return {
        "subject": str(triple.subject),
        "predicate": triple.predicate.name,
        "object": obj.text,
        "objectType": "literal",
    }


def summarize_graph(graph: Graph, *, graph_kind: str, region: str) -> Dict[str, Any]:
    return {
        "graph": graph_kind,
        "region": region,
        "generatedAt": utc_now_iso(),
        "total_triples": len(graph),
        "total_nodes": len(graph.nodes()),
        "counts_by_predicate": graph.count_by_predicate(),
        "counts_by_kind": graph.count_by_kind(),
    }


def write_triples(path: Path, graph: Graph) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(marshal_triples(graph), encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write triples to {path}: {e}") from e
    return path


def write_graph_jsonl(path: Path, graph: Graph) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for t in graph:
                f.write(stable_json_dumps(triple_to_dict(t)))
                f.write("\n")
    except OSError as e:
        raise ExportError(f"Failed to write graph JSONL to {path}: {e}") from e
    return path


def write_summary(path: Path, summary: Dict[str, Any]) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(stable_json_dumps(summary) + "\n", encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write graph summary to {path}: {e}") from e
    return path
