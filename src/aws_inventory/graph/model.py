from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .terms import HAS_TYPE, PARENT_OF, Literal, Node, Predicate, Triple


class Graph:
    """
    Immutable, ordered sequence of triples produced by one build.

    Order is insertion order. Duplicate triples are kept unless the graph was
    built with deduplication; a graph read as a set is unaffected by them.
    """

    __slots__ = ("_triples",)

    def __init__(self, triples: Iterable[Triple] = ()) -> None:
        self._triples: Tuple[Triple, ...] = tuple(triples)

    @property
    def triples(self) -> Tuple[Triple, ...]:
        return self._triples

    def __len__(self) -> int:
        return len(self._triples)

    def __iter__(self) -> Iterator[Triple]:
        return iter(self._triples)

    def __contains__(self, triple: object) -> bool:
        return triple in self._triples

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return self._triples == other._triples

    def __hash__(self) -> int:
        return hash(self._triples)

    def __repr__(self) -> str:
        return f"Graph(triples={len(self._triples)})"

    def nodes(self) -> List[Node]:
        """Distinct nodes in order of first appearance."""
        seen: Set[Node] = set()
        out: List[Node] = []
        for t in self._triples:
            for candidate in (t.subject, t.object):
                if isinstance(candidate, Node) and candidate not in seen:
                    seen.add(candidate)
                    out.append(candidate)
        return out

    def nodes_of_kind(self, kind: str) -> List[Node]:
        return [n for n in self.nodes() if n.kind == kind]

    def triples_for_subject_predicate(self, subject: Node, predicate: Predicate) -> List[Triple]:
        return [t for t in self._triples if t.subject == subject and t.predicate == predicate]

    def type_of(self, node: Node) -> Optional[str]:
        for t in self.triples_for_subject_predicate(node, HAS_TYPE):
            if isinstance(t.object, Literal):
                return t.object.text
        return None

    def properties_of(self, node: Node) -> Dict[str, str]:
        props: Dict[str, str] = {}
        for t in self._triples:
            if t.subject != node or t.predicate in (HAS_TYPE, PARENT_OF):
                continue
            if isinstance(t.object, Literal):
                props.setdefault(t.predicate.name, t.object.text)
        return props

    def children_of(self, node: Node) -> List[Node]:
        return [t.object for t in self.triples_for_subject_predicate(node, PARENT_OF) if isinstance(t.object, Node)]

    def parents_of(self, node: Node) -> List[Node]:
        return [t.subject for t in self._triples if t.predicate == PARENT_OF and t.object == node]

    def count_by_predicate(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for t in self._triples:
            counts[t.predicate.name] = counts.get(t.predicate.name, 0) + 1
        return dict(sorted(counts.items()))

    def count_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for n in self.nodes():
            counts[n.kind] = counts.get(n.kind, 0) + 1
        return dict(sorted(counts.items()))

    def deduplicated(self) -> Graph:
        """Drop exact duplicate triples, keeping the first occurrence."""
        seen: Set[Triple] = set()
        out: List[Triple] = []
        for t in self._triples:
            if t in seen:
                continue
            seen.add(t)
            out.append(t)
        return Graph(out)
