from __future__ import annotations

from time import perf_counter
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..logging import get_logger
from ..normalize.schema import AccessSnapshot, InfraSnapshot
from ..util.concurrency import parallel_map_ordered
from ..util.errors import GraphBuildError
from .compiler import compile_region
from .linker import LinkStats, link_access, link_infra
from .model import Graph
from .schema import SchemaRegistry
from .terms import Triple

LOG = get_logger(__name__)

INFRA = "infra"
ACCESS = "access"
GRAPH_KINDS = (INFRA, ACCESS)

Snapshot = Union[InfraSnapshot, AccessSnapshot]
_LinkFunc = Callable[..., List[Triple]]


def _assemble(
    graph_kind: str,
    region: str,
    snapshot: Any,
    link: _LinkFunc,
    *,
    registry: Optional[SchemaRegistry],
    dedupe: bool,
) -> Graph:
    started = perf_counter()
    stats = LinkStats()
    LOG.debug("Graph build started", extra={"step": f"{graph_kind}_graph", "phase": "start", "region": region})
    try:
        region_entity = compile_region(region, registry=registry)
        statements: List[Triple] = list(region_entity.statements)
        statements.extend(link(region_entity.node, snapshot, registry=registry, stats=stats))
    except GraphBuildError as e:
        LOG.error(
            "Graph build failed",
            extra={
                "step": f"{graph_kind}_graph",
                "phase": "error",
                "region": region,
                "error": str(e),
                "duration_ms": int((perf_counter() - started) * 1000),
            },
        )
        raise

    graph = Graph(statements)
    if dedupe:
        graph = graph.deduplicated()
    LOG.info(
        "Graph build complete",
        extra={
            "step": f"{graph_kind}_graph",
            "phase": "complete",
            "region": region,
            "triples": len(graph),
            "entities": stats.entities,
            "parent_edges": stats.parent_edges,
            "orphans": stats.orphans,
            "duration_ms": int((perf_counter() - started) * 1000),
        },
    )
    return graph


def build_infra_graph(
    region: str,
    snapshot: InfraSnapshot,
    *,
    registry: Optional[SchemaRegistry] = None,
    dedupe: bool = False,
) -> Graph:
    """
    Build the region -> vpc -> subnet -> instance graph for one snapshot.

    Subnets and instances whose parent is missing are kept without an edge.
    Any GraphBuildError aborts the build and no graph is returned.
    """
    return _assemble(INFRA, region, snapshot, link_infra, registry=registry, dedupe=dedupe)


def build_access_graph(
    region: str,
    snapshot: AccessSnapshot,
    *,
    registry: Optional[SchemaRegistry] = None,
    dedupe: bool = False,
) -> Graph:
    """
    Build the IAM graph for one snapshot.

    Raises DanglingReferenceError when a group membership or policy
    attachment names a user, group or role that is not in the snapshot.
    """
    return _assemble(ACCESS, region, snapshot, link_access, registry=registry, dedupe=dedupe)


def build_graph(
    graph_kind: str,
    region: str,
    snapshot: Snapshot,
    *,
    registry: Optional[SchemaRegistry] = None,
    dedupe: bool = False,
) -> Graph:
    if graph_kind == INFRA:
        if not isinstance(snapshot, InfraSnapshot):
            raise TypeError("infra graphs require an InfraSnapshot")
        return build_infra_graph(region, snapshot, registry=registry, dedupe=dedupe)
    if graph_kind == ACCESS:
        if not isinstance(snapshot, AccessSnapshot):
            raise TypeError("access graphs require an AccessSnapshot")
        return build_access_graph(region, snapshot, registry=registry, dedupe=dedupe)
    raise ValueError(f"Unknown graph kind: {graph_kind}")


def build_graphs_by_region(
    graph_kind: str,
    snapshots_by_region: Mapping[str, Snapshot],
    *,
    workers: int = 1,
    registry: Optional[SchemaRegistry] = None,
    dedupe: bool = False,
) -> Dict[str, Graph]:
    """
    Build one graph per region. Builds share nothing, so they run in a thread
    pool; results keep the input order and the first failure is propagated.
    """
    items: List[Tuple[str, Snapshot]] = list(snapshots_by_region.items())

    def _build(item: Tuple[str, Snapshot]) -> Graph:
        region, snapshot = item
        return build_graph(graph_kind, region, snapshot, registry=registry, dedupe=dedupe)

    graphs = parallel_map_ordered(_build, items, max_workers=max(1, workers))
    return {region: graph for (region, _), graph in zip(items, graphs)}
