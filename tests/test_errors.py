from __future__ import annotations

from aws_inventory.util.errors import (
    ConfigError,
    DanglingReferenceError,
    ExitCode,
    ExportError,
    GraphBuildError,
    InvalidLiteralError,
    SnapshotError,
    UnknownKindError,
    as_exit_code,
)


def test_exit_codes_by_error_family() -> None:
    assert as_exit_code(ConfigError("x")) == ExitCode.CONFIG_ERROR
    assert as_exit_code(ValueError("x")) == ExitCode.CONFIG_ERROR
    assert as_exit_code(SnapshotError("x")) == ExitCode.SNAPSHOT_ERROR
    assert as_exit_code(InvalidLiteralError("x")) == ExitCode.GRAPH_ERROR
    assert as_exit_code(UnknownKindError("/bucket")) == ExitCode.GRAPH_ERROR
    assert as_exit_code(ExportError("x")) == ExitCode.RUNTIME_ERROR
    assert as_exit_code(RuntimeError("x")) == 1


def test_unknown_kind_message() -> None:
    assert str(UnknownKindError("/bucket")) == "type /bucket is not managed"


def test_dangling_reference_names_member_kind() -> None:
    err = DanglingReferenceError("/policy", "p-1", "/group", "g-1")

    assert isinstance(err, GraphBuildError)
    assert str(err) == "policy p-1 has group g-1, but this group does not exist"
