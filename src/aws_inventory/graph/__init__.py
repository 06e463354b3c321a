from __future__ import annotations

from .assembler import ACCESS, GRAPH_KINDS, INFRA, build_access_graph, build_graph, build_graphs_by_region, build_infra_graph
from .compiler import CompiledEntity, compile_entity, compile_region
from .model import Graph
from .schema import (
    EntitySchema,
    SchemaRegistry,
    default_registry,
    field_value,
    list_registered_kinds,
    register_schema,
    resolve_schema,
)
from .terms import HAS_TYPE, PARENT_OF, Literal, Node, Predicate, Triple

__all__ = [
    "ACCESS",
    "GRAPH_KINDS",
    "INFRA",
    "HAS_TYPE",
    "PARENT_OF",
    "CompiledEntity",
    "EntitySchema",
    "Graph",
    "Literal",
    "Node",
    "Predicate",
    "SchemaRegistry",
    "Triple",
    "build_access_graph",
    "build_graph",
    "build_graphs_by_region",
    "build_infra_graph",
    "compile_entity",
    "compile_region",
    "default_registry",
    "field_value",
    "list_registered_kinds",
    "register_schema",
    "resolve_schema",
]
