from __future__ import annotations

import pytest

from aws_inventory.graph.compiler import compile_entity, compile_region
from aws_inventory.graph.terms import HAS_TYPE, Literal, Node
from aws_inventory.normalize.schema import Instance, Subnet, User
from aws_inventory.util.errors import InvalidIdentifierError, InvalidLiteralError, UnknownKindError


def test_compile_instance_emits_type_and_non_empty_properties() -> None:
    record = Instance(id="i-1", instance_type="t2.micro", subnet_id="subnet-1", public_ip="")

    compiled = compile_entity("/instance", "i-1", record)

    assert compiled.node == Node("/instance", "i-1")
    first = compiled.statements[0]
    assert first.predicate == HAS_TYPE
    assert first.object == Literal("/instance")

    props = {t.predicate.name: t.object for t in compiled.statements[1:]}
    assert props == {
        "id": Literal("i-1"),
        "instanceType": Literal("t2.micro"),
        "subnetId": Literal("subnet-1"),
    }


def test_compile_is_idempotent_for_the_same_record() -> None:
    record = Subnet(id="subnet-1", vpc_id="vpc-1", cidr_block="10.0.0.0/24")

    a = compile_entity("/subnet", "subnet-1", record)
    b = compile_entity("/subnet", "subnet-1", record)

    assert a.node == b.node
    assert a.statements == b.statements


def test_compile_unknown_kind_fails_before_emitting() -> None:
    with pytest.raises(UnknownKindError):
        compile_entity("/bucket", "logs", object())


def test_compile_rejects_invalid_identifier() -> None:
    with pytest.raises(InvalidIdentifierError):
        compile_entity("/user", "", User(id=""))


def test_compile_rejects_invalid_property_value() -> None:
    with pytest.raises(InvalidLiteralError):
        compile_entity("/user", "AIDA1", User(id="AIDA1", name="bad\nname"))


def test_compile_region_has_single_type_statement() -> None:
    compiled = compile_region("eu-west-1")

    assert compiled.node == Node("/region", "eu-west-1")
    assert len(compiled.statements) == 1
    assert compiled.statements[0].object == Literal("/region")
