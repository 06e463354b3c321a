from __future__ import annotations

import json
from pathlib import Path

import pytest

from aws_inventory.normalize.schema import InfraSnapshot
from aws_inventory.normalize.transform import (
    access_snapshot_from_dict,
    infra_snapshot_from_dict,
    instance_from_api,
    load_snapshot_file,
    snapshots_from_payload,
    stable_json_dumps,
    vpc_from_api,
)
from aws_inventory.util.errors import SnapshotError


def test_vpc_from_boto3_shape() -> None:
    vpc = vpc_from_api({"VpcId": "vpc-1", "CidrBlock": "10.0.0.0/16", "IsDefault": False, "State": "available"})

    assert vpc.id == "vpc-1"
    assert vpc.cidr_block == "10.0.0.0/16"
    assert vpc.is_default == "false"
    assert vpc.state == "available"


def test_instance_accepts_snake_case_and_wrapped_state() -> None:
    inst = instance_from_api(
        {
            "instance_id": "i-1",
            "instance_type": "t3.small",
            "SubnetId": "subnet-1",
            "PrivateIpAddress": "10.0.1.5",
            "State": {"Code": 16, "Name": "running"},
        }
    )

    assert inst.id == "i-1"
    assert inst.instance_type == "t3.small"
    assert inst.private_ip == "10.0.1.5"
    assert inst.public_ip is None
    assert inst.state == "running"


def test_record_without_id_is_rejected() -> None:
    with pytest.raises(SnapshotError):
        vpc_from_api({"CidrBlock": "10.0.0.0/16"})


def test_infra_snapshot_flattens_reservations() -> None:
    snapshot = infra_snapshot_from_dict(
        {
            "Vpcs": [{"VpcId": "vpc-1"}],
            "Subnets": [{"SubnetId": "subnet-1", "VpcId": "vpc-1"}],
            "Instances": [{"InstanceId": "i-0"}],
            "Reservations": [
                {"Instances": [{"InstanceId": "i-1"}, {"InstanceId": "i-2"}]},
                {"Instances": [{"InstanceId": "i-3"}]},
            ],
        }
    )

    assert [i.id for i in snapshot.instances] == ["i-0", "i-1", "i-2", "i-3"]
    assert snapshot.subnets[0].vpc_id == "vpc-1"


def test_access_snapshot_reads_join_tables() -> None:
    snapshot = access_snapshot_from_dict(
        {
            "Users": [{"UserId": "u-1", "UserName": "alice", "Arn": "arn:aws:iam::1:user/alice"}],
            "Groups": [{"GroupId": "g-1", "GroupName": "admins"}],
            "Policies": [{"PolicyId": "p-1", "PolicyName": "AdminAccess"}],
            "UsersByGroup": {"g-1": ["u-1"]},
            "GroupsByLocalPolicy": {"p-1": "g-1"},
        }
    )

    assert snapshot.users[0].name == "alice"
    assert snapshot.local_policies[0].id == "p-1"
    assert snapshot.users_by_group == {"g-1": ["u-1"]}
    assert snapshot.groups_by_local_policy == {"p-1": ["g-1"]}
    assert snapshot.roles_by_local_policy == {}


def test_malformed_lists_are_rejected() -> None:
    with pytest.raises(SnapshotError):
        infra_snapshot_from_dict({"Vpcs": {"VpcId": "vpc-1"}})
    with pytest.raises(SnapshotError):
        access_snapshot_from_dict({"UsersByGroup": {"g-1": 7}})


def test_single_region_payload_uses_region_key_or_argument() -> None:
    payload = {"Region": "eu-west-1", "Vpcs": [{"VpcId": "vpc-1"}]}

    by_region = snapshots_from_payload("infra", payload)
    assert list(by_region) == ["eu-west-1"]
    assert isinstance(by_region["eu-west-1"], InfraSnapshot)

    overridden = snapshots_from_payload("infra", payload, region="us-east-1")
    assert list(overridden) == ["us-east-1"]


def test_single_region_payload_without_region_fails() -> None:
    with pytest.raises(SnapshotError):
        snapshots_from_payload("infra", {"Vpcs": []})


def test_regions_mapping_is_filtered_in_input_order() -> None:
    payload = {
        "Regions": {
            "us-east-1": {"Vpcs": [{"VpcId": "vpc-a"}]},
            "eu-west-1": {"Vpcs": [{"VpcId": "vpc-b"}]},
            "ap-south-1": {},
        }
    }

    assert list(snapshots_from_payload("infra", payload)) == ["us-east-1", "eu-west-1", "ap-south-1"]
    picked = snapshots_from_payload("infra", payload, regions=["ap-south-1", "us-east-1"])
    assert list(picked) == ["us-east-1", "ap-south-1"]

    with pytest.raises(SnapshotError):
        snapshots_from_payload("infra", payload, regions=["sa-east-1"])


def test_unknown_graph_kind_is_value_error() -> None:
    with pytest.raises(ValueError):
        snapshots_from_payload("network", {"Region": "eu-west-1"})


def test_load_snapshot_file_json_and_yaml(tmp_path: Path) -> None:
    as_json = tmp_path / "snap.json"
    as_json.write_text(json.dumps({"Region": "eu-west-1", "Vpcs": []}), encoding="utf-8")
    as_yaml = tmp_path / "snap.yaml"
    as_yaml.write_text("Region: eu-west-1\nVpcs:\n  - VpcId: vpc-1\n", encoding="utf-8")

    assert load_snapshot_file(as_json)["Region"] == "eu-west-1"
    assert load_snapshot_file(as_yaml)["Vpcs"] == [{"VpcId": "vpc-1"}]


def test_load_snapshot_file_errors(tmp_path: Path) -> None:
    with pytest.raises(SnapshotError):
        load_snapshot_file(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(SnapshotError):
        load_snapshot_file(broken)

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(SnapshotError):
        load_snapshot_file(scalar)


def test_stable_json_dumps_sorts_keys() -> None:
    assert stable_json_dumps({"b": 1, "a": "é"}) == '{"a":"é","b":1}'


def test_load_snapshot_file_unreadable_is_snapshot_error(tmp_path: Path) -> None:
    binary = tmp_path / "snap.json"
    binary.write_bytes(b'{"Region": "eu-west-1"}\xff\xfe')
    with pytest.raises(SnapshotError):
        load_snapshot_file(binary)

    folder = tmp_path / "snap.yaml"
    folder.mkdir()
    with pytest.raises(SnapshotError):
        load_snapshot_file(folder)


def test_join_table_rejects_null_members() -> None:
    with pytest.raises(SnapshotError, match="UsersByGroup"):
        access_snapshot_from_dict({"UsersByGroup": {"g-1": [None]}})
    with pytest.raises(SnapshotError):
        access_snapshot_from_dict({"RolesByLocalPolicy": {"p-1": ["r-1", ""]}})
