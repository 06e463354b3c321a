from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..logging import get_logger
from ..normalize.schema import GROUP, INSTANCE, POLICY, REGION, ROLE, SUBNET, USER, VPC
from ..util.errors import UnknownKindError
from .terms import Literal, Predicate, build_literal, build_predicate

LOG = get_logger(__name__)

Extractor = Callable[[Any], Optional[str]]


def field_value(attr: str) -> Extractor:
    """Extractor reading one optional attribute of a record."""

    def _extract(record: Any) -> Optional[str]:
        value = getattr(record, attr, None)
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    _extract.__name__ = f"field_value_{attr}"
    return _extract


@dataclass(frozen=True)
class EntitySchema:
    kind: str
    type_tag: str
    fields: Tuple[Tuple[str, Extractor], ...] = ()

    def property_names(self) -> List[str]:
        return [name for name, _ in self.fields]


class SchemaRegistry:
    """
    Registry mapping entity kinds to their EntitySchema.

    Type-tag literals and property predicates are built on first use and
    cached. validate() builds all of them eagerly so that a bad registration
    surfaces as an ordinary error at startup.
    """

    def __init__(self) -> None:
        self._map: Dict[str, EntitySchema] = {}
        self._type_literals: Dict[str, Literal] = {}
        self._predicates: Dict[str, Predicate] = {}
        self._lock = threading.Lock()

    def register(self, schema: EntitySchema) -> None:
        with self._lock:
            self._map[schema.kind] = schema
            self._type_literals.pop(schema.kind, None)

    def is_registered(self, kind: str) -> bool:
        return kind in self._map

    def registered_kinds(self) -> list[str]:
        return sorted(self._map.keys())

    def resolve(self, kind: str) -> EntitySchema:
        schema = self._map.get(kind)
        if schema is None:
            raise UnknownKindError(kind)
        return schema

    def type_literal(self, kind: str) -> Literal:
        lit = self._type_literals.get(kind)
        if lit is not None:
            return lit
        schema = self.resolve(kind)
        lit = build_literal(schema.type_tag)
        with self._lock:
            self._type_literals[kind] = lit
        return lit

    def property_predicate(self, name: str) -> Predicate:
        pred = self._predicates.get(name)
        if pred is not None:
            return pred
        pred = build_predicate(name)
        with self._lock:
            self._predicates[name] = pred
        return pred

    def validate(self) -> None:
        for kind in self.registered_kinds():
            self.type_literal(kind)
            for name in self.resolve(kind).property_names():
                self.property_predicate(name)
        LOG.debug("Schema registry validated", extra={"kinds": self.registered_kinds()})


def _identity_fields() -> Tuple[Tuple[str, Extractor], ...]:
    return (
        ("id", field_value("id")),
        ("name", field_value("name")),
        ("arn", field_value("arn")),
    )


DEFAULT_SCHEMAS: Tuple[EntitySchema, ...] = (
    EntitySchema(kind=REGION, type_tag=REGION),
    EntitySchema(
        kind=VPC,
        type_tag=VPC,
        fields=(
            ("id", field_value("id")),
            ("cidrBlock", field_value("cidr_block")),
            ("isDefault", field_value("is_default")),
            ("state", field_value("state")),
        ),
    ),
    EntitySchema(
        kind=SUBNET,
        type_tag=SUBNET,
        fields=(
            ("id", field_value("id")),
            ("vpcId", field_value("vpc_id")),
            ("cidrBlock", field_value("cidr_block")),
            ("availabilityZone", field_value("availability_zone")),
            ("state", field_value("state")),
        ),
    ),
    EntitySchema(
        kind=INSTANCE,
        type_tag=INSTANCE,
        fields=(
            ("id", field_value("id")),
            ("instanceType", field_value("instance_type")),
            ("subnetId", field_value("subnet_id")),
            ("vpcId", field_value("vpc_id")),
            ("publicIp", field_value("public_ip")),
            ("privateIp", field_value("private_ip")),
            ("imageId", field_value("image_id")),
            ("state", field_value("state")),
        ),
    ),
    EntitySchema(kind=USER, type_tag=USER, fields=_identity_fields()),
    EntitySchema(kind=ROLE, type_tag=ROLE, fields=_identity_fields()),
    EntitySchema(kind=GROUP, type_tag=GROUP, fields=_identity_fields()),
    EntitySchema(kind=POLICY, type_tag=POLICY, fields=_identity_fields()),
)


def new_default_registry() -> SchemaRegistry:
    registry = SchemaRegistry()
    for schema in DEFAULT_SCHEMAS:
        registry.register(schema)
    return registry


_global_registry = new_default_registry()


def default_registry() -> SchemaRegistry:
    return _global_registry


def register_schema(schema: EntitySchema) -> None:
    _global_registry.register(schema)


def resolve_schema(kind: str) -> EntitySchema:
    return _global_registry.resolve(kind)


def is_kind_registered(kind: str) -> bool:
    return _global_registry.is_registered(kind)


def list_registered_kinds() -> list[str]:
    return _global_registry.registered_kinds()
