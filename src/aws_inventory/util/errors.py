from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    SNAPSHOT_ERROR = 3
    GRAPH_ERROR = 4
    RUNTIME_ERROR = 5


class InventoryError(Exception):
    """Base error for the inventory graph pipeline."""


class ConfigError(InventoryError):
    """Raised for configuration or argument issues."""


class SnapshotError(InventoryError):
    """Raised when a snapshot file cannot be read or has an unexpected shape."""


class ExportError(InventoryError):
    """Raised when writing graph artifacts fails."""


class GraphBuildError(InventoryError):
    """Base error for graph compilation. Always fatal to the current build."""


class InvalidIdentifierError(GraphBuildError):
    """Raised when a node kind or natural id violates the term grammar."""


class InvalidLiteralError(GraphBuildError):
    """Raised when literal text violates the term grammar."""


class InvalidPredicateError(GraphBuildError):
    """Raised when a predicate name violates the term grammar."""


class UnknownKindError(GraphBuildError):
    """Raised when no schema is registered for an entity kind."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"type {kind} is not managed")
        self.kind = kind


class DanglingReferenceError(GraphBuildError):
    """
    Raised when an access join table (group membership, policy attachment)
    names an entity that is absent from the snapshot.
    """

    def __init__(self, container_kind: str, container_id: str, member_kind: str, member_id: str) -> None:
        container_label = container_kind.lstrip("/")
        member_label = member_kind.lstrip("/")
        super().__init__(
            f"{container_label} {container_id} has {member_label} {member_id}, "
            f"but this {member_label} does not exist"
        )
        self.container_kind = container_kind
        self.container_id = container_id
        self.member_kind = member_kind
        self.member_id = member_id


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, SnapshotError):
        return int(ExitCode.SNAPSHOT_ERROR)
    if isinstance(exc, GraphBuildError):
        return int(ExitCode.GRAPH_ERROR)
    if isinstance(exc, (ExportError, InventoryError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1
