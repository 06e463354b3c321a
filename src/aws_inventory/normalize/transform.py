from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from ..util.errors import SnapshotError
from .schema import (
    AccessSnapshot,
    Group,
    InfraSnapshot,
    Instance,
    Policy,
    Role,
    Subnet,
    User,
    Vpc,
)


def _key_variants(key: str) -> List[str]:
    # Accept PascalCase (boto3), camelCase and snake_case interchangeably.
    camel = key[:1].lower() + key[1:]
    snake = "".join([("_" + ch.lower()) if ch.isupper() else ch for ch in key]).lstrip("_")
    out: List[str] = []
    for k in (key, camel, snake):
        if k not in out:
            out.append(k)
    return out


def _get(d: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        for k in _key_variants(key):
            if k in d:
                return d[k]
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        # boto3 wraps some enums, e.g. Instance.State = {"Code": 16, "Name": "running"}
        return _text(_get(value, "Name"))
    return str(value)


def _required_id(d: Mapping[str, Any], key: str, what: str) -> str:
    value = _get(d, key, "Id")
    if value is None or value == "":
        raise SnapshotError(f"{what} record is missing {key}: {d!r}")
    return str(value)


def _as_list(value: Any, what: str) -> List[Mapping[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SnapshotError(f"{what} must be a list")
    out: List[Mapping[str, Any]] = []
    for item in value:
        if not isinstance(item, Mapping):
            raise SnapshotError(f"{what} entries must be objects")
        out.append(item)
    return out


def vpc_from_api(d: Mapping[str, Any]) -> Vpc:
    return Vpc(
        id=_required_id(d, "VpcId", "Vpc"),
        cidr_block=_text(_get(d, "CidrBlock")),
        is_default=_text(_get(d, "IsDefault")),
        state=_text(_get(d, "State")),
    )


def subnet_from_api(d: Mapping[str, Any]) -> Subnet:
    return Subnet(
        id=_required_id(d, "SubnetId", "Subnet"),
        vpc_id=_text(_get(d, "VpcId")),
        cidr_block=_text(_get(d, "CidrBlock")),
        availability_zone=_text(_get(d, "AvailabilityZone")),
        state=_text(_get(d, "State")),
    )


def instance_from_api(d: Mapping[str, Any]) -> Instance:
    return Instance(
        id=_required_id(d, "InstanceId", "Instance"),
        instance_type=_text(_get(d, "InstanceType")),
        subnet_id=_text(_get(d, "SubnetId")),
        vpc_id=_text(_get(d, "VpcId")),
        public_ip=_text(_get(d, "PublicIpAddress", "PublicIp")),
        private_ip=_text(_get(d, "PrivateIpAddress", "PrivateIp")),
        image_id=_text(_get(d, "ImageId")),
        state=_text(_get(d, "State")),
    )


def user_from_api(d: Mapping[str, Any]) -> User:
    return User(id=_required_id(d, "UserId", "User"), name=_text(_get(d, "UserName", "Name")), arn=_text(_get(d, "Arn")))


def role_from_api(d: Mapping[str, Any]) -> Role:
    return Role(id=_required_id(d, "RoleId", "Role"), name=_text(_get(d, "RoleName", "Name")), arn=_text(_get(d, "Arn")))


def group_from_api(d: Mapping[str, Any]) -> Group:
    return Group(
        id=_required_id(d, "GroupId", "Group"), name=_text(_get(d, "GroupName", "Name")), arn=_text(_get(d, "Arn"))
    )


def policy_from_api(d: Mapping[str, Any]) -> Policy:
    return Policy(
        id=_required_id(d, "PolicyId", "Policy"),
        name=_text(_get(d, "PolicyName", "Name")),
        arn=_text(_get(d, "Arn")),
    )


def _instances(payload: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    out = _as_list(_get(payload, "Instances"), "Instances")
    # describe_instances groups instances by reservation
    for reservation in _as_list(_get(payload, "Reservations"), "Reservations"):
        out.extend(_as_list(_get(reservation, "Instances"), "Reservations[].Instances"))
    return out


def _join_table(value: Any, what: str) -> Dict[str, List[str]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SnapshotError(f"{what} must map ids to lists of ids")
    out: Dict[str, List[str]] = {}
    for container_id, members in value.items():
        if isinstance(members, str):
            members = [members]
        if not isinstance(members, list):
            raise SnapshotError(f"{what}[{container_id}] must be a list of ids")
        if not all(isinstance(m, str) and m for m in members):
            raise SnapshotError(f"{what}[{container_id}] must list non-empty string ids")
        out[str(container_id)] = list(members)
    return out


def infra_snapshot_from_dict(payload: Mapping[str, Any]) -> InfraSnapshot:
    return InfraSnapshot(
        vpcs=[vpc_from_api(d) for d in _as_list(_get(payload, "Vpcs"), "Vpcs")],
        subnets=[subnet_from_api(d) for d in _as_list(_get(payload, "Subnets"), "Subnets")],
        instances=[instance_from_api(d) for d in _instances(payload)],
    )


def access_snapshot_from_dict(payload: Mapping[str, Any]) -> AccessSnapshot:
    return AccessSnapshot(
        users=[user_from_api(d) for d in _as_list(_get(payload, "Users"), "Users")],
        roles=[role_from_api(d) for d in _as_list(_get(payload, "Roles"), "Roles")],
        groups=[group_from_api(d) for d in _as_list(_get(payload, "Groups"), "Groups")],
        local_policies=[
            policy_from_api(d) for d in _as_list(_get(payload, "LocalPolicies", "Policies"), "Policies")
        ],
        users_by_group=_join_table(_get(payload, "UsersByGroup"), "UsersByGroup"),
        users_by_local_policy=_join_table(
            _get(payload, "UsersByLocalPolicy", "UsersByLocalPolicies"), "UsersByLocalPolicy"
        ),
        groups_by_local_policy=_join_table(
            _get(payload, "GroupsByLocalPolicy", "GroupsByLocalPolicies"), "GroupsByLocalPolicy"
        ),
        roles_by_local_policy=_join_table(
            _get(payload, "RolesByLocalPolicy", "RolesByLocalPolicies"), "RolesByLocalPolicy"
        ),
    )


def load_snapshot_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise SnapshotError(f"Snapshot file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SnapshotError(f"Failed to read snapshot file {path}: {e}") from e
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            # YAML is a superset of JSON
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise SnapshotError(f"Failed to parse snapshot file {path}: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError("Top-level snapshot must be an object")
    return data


def snapshots_from_payload(
    graph_kind: str,
    payload: Mapping[str, Any],
    *,
    region: Optional[str] = None,
    regions: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Build region -> snapshot from a loaded payload.

    The payload is either a single snapshot (region from its "Region" key or
    the region argument) or a "Regions" mapping of region -> snapshot. When
    regions is given, only those regions are kept.
    """
    if graph_kind == "infra":
        convert = infra_snapshot_from_dict
    elif graph_kind == "access":
        convert = access_snapshot_from_dict
    else:
        raise ValueError(f"Unknown graph kind: {graph_kind}")

    by_region = _get(payload, "Regions")
    out: Dict[str, Any] = {}
    if by_region is not None:
        if not isinstance(by_region, Mapping):
            raise SnapshotError("Regions must map region names to snapshots")
        for name, sub in by_region.items():
            if not isinstance(sub, Mapping):
                raise SnapshotError(f"Snapshot for region {name} must be an object")
            out[str(name)] = convert(sub)
    else:
        name = region or _text(_get(payload, "Region"))
        if not name:
            raise SnapshotError("Snapshot has no Region and no --region was given")
        out[name] = convert(payload)

    if regions:
        wanted = set(regions)
        missing = sorted(wanted - set(out))
        if missing:
            raise SnapshotError(f"Regions not present in snapshot: {', '.join(missing)}")
        out = {k: v for k, v in out.items() if k in wanted}
    return out


def stable_json_dumps(obj: Any) -> str:
    """
    Dump JSON with sort_keys=True and separators to ensure stable output.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
