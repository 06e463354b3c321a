from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from ..util.errors import InvalidIdentifierError, InvalidLiteralError, InvalidPredicateError

# Node kinds are path-like type names, e.g. "/vpc" or "/iam/user".
_KIND_RE = re.compile(r"^/[^\s<>]+$")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_PREDICATE_RE = re.compile(r"^[^\s\"@\[\]]+$")


@dataclass(frozen=True)
class Node:
    kind: str
    natural_id: str

    def __str__(self) -> str:
        return f"{self.kind}<{self.natural_id}>"


@dataclass(frozen=True)
class Literal:
    text: str

    def __str__(self) -> str:
        return f'"{self.text}"^^type:text'


@dataclass(frozen=True)
class Predicate:
    name: str

    def __str__(self) -> str:
        return f'"{self.name}"@[]'


TripleObject = Union[Node, Literal]


@dataclass(frozen=True)
class Triple:
    subject: Node
    predicate: Predicate
    object: TripleObject

    def __str__(self) -> str:
        return f"{self.subject}\t{self.predicate}\t{self.object}"


def build_node(kind: str, natural_id: str) -> Node:
    if not isinstance(kind, str) or not _KIND_RE.match(kind):
        raise InvalidIdentifierError(f"invalid node kind {kind!r}: must start with '/' and contain no spaces or '<>'")
    if not isinstance(natural_id, str) or not natural_id:
        raise InvalidIdentifierError(f"empty identifier for node kind {kind}")
    if "<" in natural_id or ">" in natural_id or _CONTROL_RE.search(natural_id):
        raise InvalidIdentifierError(f"invalid identifier {natural_id!r} for node kind {kind}")
    return Node(kind=kind, natural_id=natural_id)


def build_literal(text: str, *, max_length: Optional[int] = None) -> Literal:
    """
    Build a text literal.

    Control characters are rejected because the text serialization is one
    triple per line. ``max_length`` bounds the text size when set.
    """
    if not isinstance(text, str):
        raise InvalidLiteralError(f"literal must be text, got {type(text).__name__}")
    if _CONTROL_RE.search(text):
        raise InvalidLiteralError(f"literal {text!r} contains control characters")
    if max_length is not None and len(text) > max_length:
        raise InvalidLiteralError(f"literal of length {len(text)} exceeds the maximum of {max_length}")
    return Literal(text=text)


def build_predicate(name: str) -> Predicate:
    if not isinstance(name, str) or not _PREDICATE_RE.match(name):
        raise InvalidPredicateError(f"invalid predicate name {name!r}")
    return Predicate(name=name)


def build_triple(subject: Node, predicate: Predicate, obj: TripleObject) -> Triple:
    if not isinstance(subject, Node):
        raise InvalidIdentifierError(f"triple subject must be a node, got {type(subject).__name__}")
    if not isinstance(obj, (Node, Literal)):
        raise InvalidLiteralError(f"triple object must be a node or literal, got {type(obj).__name__}")
    return Triple(subject=subject, predicate=predicate, object=obj)


HAS_TYPE = build_predicate("has_type")
PARENT_OF = build_predicate("parent_of")
