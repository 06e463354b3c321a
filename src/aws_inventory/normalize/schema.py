from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

# Entity kinds. The leading slash follows the node type naming of the text
# triple format (e.g. "/vpc<vpc-1>").
REGION = "/region"
VPC = "/vpc"
SUBNET = "/subnet"
INSTANCE = "/instance"
USER = "/user"
ROLE = "/role"
GROUP = "/group"
POLICY = "/policy"

INFRA_KINDS: Tuple[str, ...] = (VPC, SUBNET, INSTANCE)
ACCESS_KINDS: Tuple[str, ...] = (USER, ROLE, GROUP, POLICY)


@dataclass(frozen=True)
class Vpc:
    id: str
    cidr_block: Optional[str] = None
    is_default: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class Subnet:
    id: str
    vpc_id: Optional[str] = None
    cidr_block: Optional[str] = None
    availability_zone: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class Instance:
    id: str
    instance_type: Optional[str] = None
    subnet_id: Optional[str] = None
    vpc_id: Optional[str] = None
    public_ip: Optional[str] = None
    private_ip: Optional[str] = None
    image_id: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class User:
    id: str
    name: Optional[str] = None
    arn: Optional[str] = None


@dataclass(frozen=True)
class Role:
    id: str
    name: Optional[str] = None
    arn: Optional[str] = None


@dataclass(frozen=True)
class Group:
    id: str
    name: Optional[str] = None
    arn: Optional[str] = None


@dataclass(frozen=True)
class Policy:
    id: str
    name: Optional[str] = None
    arn: Optional[str] = None


JoinTable = Mapping[str, Sequence[str]]


@dataclass(frozen=True)
class InfraSnapshot:
    vpcs: Sequence[Vpc] = ()
    subnets: Sequence[Subnet] = ()
    instances: Sequence[Instance] = ()


@dataclass(frozen=True)
class AccessSnapshot:
    """
    IAM inventory for one account.

    The join tables are keyed by the natural id of the container (group or
    local policy) and list the natural ids of its members.
    """

    users: Sequence[User] = ()
    roles: Sequence[Role] = ()
    groups: Sequence[Group] = ()
    local_policies: Sequence[Policy] = ()
    users_by_group: JoinTable = field(default_factory=dict)
    users_by_local_policy: JoinTable = field(default_factory=dict)
    groups_by_local_policy: JoinTable = field(default_factory=dict)
    roles_by_local_policy: JoinTable = field(default_factory=dict)


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    triples: Path
    graph_jsonl: Path
    summary_json: Path


def resolve_output_paths(outdir: Path, graph_kind: str, region: str) -> OutputPaths:
    root = outdir / region
    return OutputPaths(
        root=root,
        triples=root / f"{graph_kind}.triples",
        graph_jsonl=root / f"{graph_kind}.jsonl",
        summary_json=root / f"{graph_kind}_summary.json",
    )


GRAPH_JSONL_FIELDS: List[str] = [
    "subject",
    "predicate",
    "object",
    "objectType",
]

GRAPH_SUMMARY_FIELDS: List[str] = [
    "graph",
    "region",
    "generatedAt",
    "total_triples",
    "total_nodes",
    "counts_by_predicate",
    "counts_by_kind",
]

OUT_SCHEMA_FIELD_DOCS: Dict[str, Dict[str, str]] = {
    "<region>/<graph>.jsonl": {
        "subject": "Subject node, e.g. /vpc<vpc-1>.",
        "predicate": "has_type, parent_of or a property name.",
        "object": "Object node or literal text.",
        "objectType": "node or literal.",
    },
    "<region>/<graph>_summary.json": {
        "graph": "infra or access.",
        "region": "Region identifier.",
        "generatedAt": "UTC timestamp of the build.",
        "total_triples": "Number of triples in the graph.",
        "total_nodes": "Number of distinct nodes.",
        "counts_by_predicate": "Map of predicate -> triple count.",
        "counts_by_kind": "Map of node kind -> node count.",
    },
}
