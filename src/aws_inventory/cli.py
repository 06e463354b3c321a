from __future__ import annotations

import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .config import RunConfig, dump_config, load_run_config
from .export.graph import summarize_graph, write_graph_jsonl, write_summary, write_triples
from .graph import build_graphs_by_region, default_registry
from .graph.model import Graph
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .normalize.schema import ACCESS_KINDS, INFRA_KINDS, resolve_output_paths
from .normalize.transform import load_snapshot_file, snapshots_from_payload
from .util.errors import ConfigError, ExportError, as_exit_code

LOG = get_logger(__name__)


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    **extra: Any,
) -> None:
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(step)
        elif phase in {"complete", "error"}:
            duration_ms = timers.finish(step)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _write_artifacts(cfg: RunConfig, graph_kind: str, region: str, graph: Graph) -> List[Path]:
    paths = resolve_output_paths(cfg.outdir, graph_kind, region)
    written: List[Path] = []
    if "triples" in cfg.formats:
        written.append(write_triples(paths.triples, graph))
    if "jsonl" in cfg.formats:
        written.append(write_graph_jsonl(paths.graph_jsonl, graph))
    if cfg.summary:
        written.append(write_summary(paths.summary_json, summarize_graph(graph, graph_kind=graph_kind, region=region)))
    return written


def _attach_run_log(path: Path) -> None:
    try:
        add_run_log_file(path)
    except OSError as e:
        raise ExportError(f"Failed to open run log {path}: {e}") from e


def _render_graph_table(graph_kind: str, graphs: Dict[str, Graph]) -> Table:
    table = Table(title=f"{graph_kind} graphs")
    table.add_column("Region")
    table.add_column("Triples", justify="right")
    table.add_column("Nodes", justify="right")
    table.add_column("parent_of", justify="right")
    table.add_column("has_type", justify="right")
    for region, graph in graphs.items():
        counts = graph.count_by_predicate()
        table.add_row(
            region,
            str(len(graph)),
            str(len(graph.nodes())),
            str(counts.get("parent_of", 0)),
            str(counts.get("has_type", 0)),
        )
    return table


def cmd_build(graph_kind: str, cfg: RunConfig, *, console: Optional[Console] = None) -> int:
    if cfg.snapshot is None:
        raise ConfigError(f"{graph_kind} requires a snapshot file")
    timers = _StepTimers()
    LOG.debug("Run configuration", extra={"config": dump_config(cfg)})

    _log_event(LOG, logging.INFO, "Snapshot load started", step="load", phase="start", timers=timers)
    payload = load_snapshot_file(cfg.snapshot)
    snapshots = snapshots_from_payload(graph_kind, payload, region=cfg.region, regions=cfg.regions)
    _log_event(
        LOG,
        logging.INFO,
        "Snapshot load complete",
        step="load",
        phase="complete",
        timers=timers,
        regions=sorted(snapshots),
    )

    _log_event(LOG, logging.INFO, "Graph build started", step="build", phase="start", timers=timers)
    graphs = build_graphs_by_region(graph_kind, snapshots, workers=cfg.workers, dedupe=cfg.dedupe)
    _log_event(
        LOG,
        logging.INFO,
        "Graph build complete",
        step="build",
        phase="complete",
        timers=timers,
        triples=sum(len(g) for g in graphs.values()),
    )

    # Nothing is created under outdir until every graph has been built.
    _attach_run_log(cfg.outdir / "logs" / "debug.log")
    _log_event(LOG, logging.INFO, "Export started", step="export", phase="start", timers=timers)
    written: List[Path] = []
    for region, graph in graphs.items():
        written.extend(_write_artifacts(cfg, graph_kind, region, graph))
    _log_event(
        LOG,
        logging.INFO,
        "Export complete",
        step="export",
        phase="complete",
        timers=timers,
        files=[str(p) for p in written],
    )

    out = console or Console()
    out.print(_render_graph_table(graph_kind, graphs))
    return 0


def _graph_of_kind(kind: str) -> str:
    if kind in INFRA_KINDS:
        return "infra"
    if kind in ACCESS_KINDS:
        return "access"
    return "-"


def cmd_kinds(cfg: RunConfig, *, console: Optional[Console] = None) -> int:
    registry = default_registry()
    table = Table(title="Entity kinds")
    table.add_column("Kind")
    table.add_column("Graph")
    table.add_column("Type tag")
    table.add_column("Properties")
    for kind in registry.registered_kinds():
        schema = registry.resolve(kind)
        table.add_row(kind, _graph_of_kind(kind), schema.type_tag, ", ".join(schema.property_names()) or "-")
    (console or Console()).print(table)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    try:
        command, cfg = load_run_config(argv=argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        # Type tags and property predicates are checked once before any build.
        default_registry().validate()

        if command in {"infra", "access"}:
            code = cmd_build(command, cfg)
        elif command == "kinds":
            code = cmd_kinds(cfg)
        else:
            raise ConfigError(f"Unknown command: {command}")

        sys.exit(code)
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())
        LOG.error("Execution failed", extra={"error": str(e), "error_type": type(e).__name__})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
