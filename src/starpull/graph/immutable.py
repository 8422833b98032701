"""
Immutable set-backed graph.

Every write returns a new graph; the original is untouched. This is the
graph type produced by pull().
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from starpull.graph.base import GraphName, SyncGraph, matches
from starpull.terms import Quad, Term


class ImmutableSetGraph(SyncGraph):
    """
    Persistent graph over a frozenset of quads.

    Two ImmutableSetGraphs are equal when they hold the same quads, so they
    can themselves be dict keys.
    """

    def __init__(self, iri: Optional[GraphName] = None, quads: Optional[Iterable[Quad]] = None):
        super().__init__(iri)
        if isinstance(quads, frozenset):
            self.data: frozenset = quads
        else:
            self.data = frozenset(quads) if quads is not None else frozenset()

    def quads(self) -> Iterator[Quad]:
        return iter(self.data)

    def find(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        obj: Optional[Term] = None,
        graph: Optional[Term] = None,
    ) -> list:
        return [q for q in self.data if matches(q, subject, predicate, obj, graph)]

    def add(self, quads: Iterable[Quad]) -> "ImmutableSetGraph":
        return ImmutableSetGraph(self.iri, self.data | {self._in_graph(q) for q in quads})

    def remove(self, quads: Iterable[Quad]) -> "ImmutableSetGraph":
        return ImmutableSetGraph(self.iri, self.data - {self._in_graph(q) for q in quads})

    def __len__(self) -> int:
        return len(self.data)

    def __contains__(self, quad: object) -> bool:
        return quad in self.data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImmutableSetGraph):
            return NotImplemented
        return self.data == other.data

    def __hash__(self) -> int:
        return hash(self.data)

    def __repr__(self) -> str:
        return f"ImmutableSetGraph(iri={self.iri!r}, size={len(self.data)})"
