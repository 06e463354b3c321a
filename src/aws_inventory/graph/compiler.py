from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ..logging import get_logger
from ..normalize.schema import REGION
from .schema import SchemaRegistry, default_registry
from .terms import HAS_TYPE, Node, Triple, build_literal, build_node, build_triple

LOG = get_logger(__name__)


@dataclass(frozen=True)
class CompiledEntity:
    node: Node
    statements: Tuple[Triple, ...]


def compile_entity(
    kind: str,
    natural_id: str,
    record: Any,
    *,
    registry: Optional[SchemaRegistry] = None,
) -> CompiledEntity:
    """
    Compile one input record into its node, its has_type statement and one
    statement per non-empty schema property.

    Raises UnknownKindError for unregistered kinds and the term errors for
    malformed identifiers or values. Nothing is returned on failure, so the
    caller never sees a partially compiled entity.
    """
    reg = registry or default_registry()
    schema = reg.resolve(kind)
    node = build_node(kind, natural_id)

    statements: List[Triple] = [build_triple(node, HAS_TYPE, reg.type_literal(kind))]
    for prop_name, extractor in schema.fields:
        value = extractor(record)
        if not value:
            continue
        statements.append(build_triple(node, reg.property_predicate(prop_name), build_literal(value)))

    LOG.debug(
        "Compiled entity",
        extra={"kind": kind, "natural_id": natural_id, "statements": len(statements)},
    )
    return CompiledEntity(node=node, statements=tuple(statements))


def compile_region(region: str, *, registry: Optional[SchemaRegistry] = None) -> CompiledEntity:
    return compile_entity(REGION, region, None, registry=registry)
