from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..logging import get_logger
from ..normalize.schema import (
    GROUP,
    INSTANCE,
    POLICY,
    ROLE,
    SUBNET,
    USER,
    VPC,
    AccessSnapshot,
    InfraSnapshot,
)
from ..util.errors import DanglingReferenceError
from .compiler import compile_entity
from .schema import SchemaRegistry
from .terms import PARENT_OF, Node, Triple, build_triple

LOG = get_logger(__name__)

EntityIndex = Dict[str, Node]


@dataclass
class LinkStats:
    entities: int = 0
    parent_edges: int = 0
    orphans: int = 0


class _Linker:
    """Statement buffer shared by the two topologies of one build."""

    def __init__(self, registry: Optional[SchemaRegistry], stats: Optional[LinkStats]) -> None:
        self.registry = registry
        self.statements: List[Triple] = []
        self.stats = stats if stats is not None else LinkStats()

    def add_entity(self, kind: str, record: Any, index: EntityIndex) -> Node:
        compiled = compile_entity(kind, record.id, record, registry=self.registry)
        self.statements.extend(compiled.statements)
        index[record.id] = compiled.node
        self.stats.entities += 1
        return compiled.node

    def parent_of(self, parent: Node, child: Node) -> None:
        self.statements.append(build_triple(parent, PARENT_OF, child))
        self.stats.parent_edges += 1

    def orphan(self, kind: str, natural_id: str, parent_kind: str, parent_id: Optional[str]) -> None:
        self.stats.orphans += 1
        LOG.debug(
            "Parent not in snapshot; edge skipped",
            extra={"kind": kind, "natural_id": natural_id, "parent_kind": parent_kind, "parent_id": parent_id},
        )

    def join(
        self,
        container_kind: str,
        container: Node,
        member_kind: str,
        member_ids: Iterable[str],
        index: EntityIndex,
    ) -> None:
        for member_id in member_ids:
            member = index.get(member_id)
            if member is None:
                raise DanglingReferenceError(container_kind, container.natural_id, member_kind, member_id)
            self.parent_of(container, member)


def _members(table: Mapping[str, Sequence[str]], container_id: str) -> Sequence[str]:
    return table.get(container_id) or ()


def link_infra(
    region_node: Node,
    snapshot: InfraSnapshot,
    *,
    registry: Optional[SchemaRegistry] = None,
    stats: Optional[LinkStats] = None,
) -> List[Triple]:
    """
    Emit the infrastructure tree region -> vpc -> subnet -> instance.

    Each stage reads the index filled by the previous one, so vpcs must be
    linked before subnets and subnets before instances. A subnet or instance
    whose parent is not in the snapshot stays in the graph without a
    parent_of edge.
    """
    linker = _Linker(registry, stats)
    vpcs: EntityIndex = {}
    subnets: EntityIndex = {}

    for vpc in snapshot.vpcs:
        node = linker.add_entity(VPC, vpc, vpcs)
        linker.parent_of(region_node, node)

    for subnet in snapshot.subnets:
        node = linker.add_entity(SUBNET, subnet, subnets)
        parent = vpcs.get(subnet.vpc_id or "")
        if parent is None:
            linker.orphan(SUBNET, subnet.id, VPC, subnet.vpc_id)
            continue
        linker.parent_of(parent, node)

    instances: EntityIndex = {}
    for instance in snapshot.instances:
        node = linker.add_entity(INSTANCE, instance, instances)
        parent = subnets.get(instance.subnet_id or "")
        if parent is None:
            linker.orphan(INSTANCE, instance.id, SUBNET, instance.subnet_id)
            continue
        linker.parent_of(parent, node)

    return linker.statements


def link_access(
    region_node: Node,
    snapshot: AccessSnapshot,
    *,
    registry: Optional[SchemaRegistry] = None,
    stats: Optional[LinkStats] = None,
) -> List[Triple]:
    """
    Emit the access topology: users, roles, groups and local policies under
    the region, plus group membership and policy attachment edges.

    Join tables are authoritative, so a member id missing from the snapshot
    raises DanglingReferenceError. Join entries keyed by a container that is
    not among the records are ignored.
    """
    linker = _Linker(registry, stats)
    users: EntityIndex = {}
    roles: EntityIndex = {}
    groups: EntityIndex = {}
    policies: EntityIndex = {}

    for user in snapshot.users:
        node = linker.add_entity(USER, user, users)
        linker.parent_of(region_node, node)

    for role in snapshot.roles:
        node = linker.add_entity(ROLE, role, roles)
        linker.parent_of(region_node, node)

    for group in snapshot.groups:
        node = linker.add_entity(GROUP, group, groups)
        linker.parent_of(region_node, node)
        linker.join(GROUP, node, USER, _members(snapshot.users_by_group, group.id), users)

    for policy in snapshot.local_policies:
        node = linker.add_entity(POLICY, policy, policies)
        linker.parent_of(region_node, node)
        linker.join(POLICY, node, USER, _members(snapshot.users_by_local_policy, policy.id), users)
        linker.join(POLICY, node, GROUP, _members(snapshot.groups_by_local_policy, policy.id), groups)
        linker.join(POLICY, node, ROLE, _members(snapshot.roles_by_local_policy, policy.id), roles)

    return linker.statements
