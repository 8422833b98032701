"""
Graph contract shared by every backend.

A graph answers two questions:
- find(subject, predicate, obj, graph): quads matching a pattern, None = wildcard
- quads(): every quad

Synchronous backends return plain iterables. Asynchronous backends (remote
stores) return awaitables. Callers that must work with both go through
resolve().
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, List, Optional, Union

from starpull.terms import DefaultGraph, NamedNode, Quad, Term


GraphName = Union[NamedNode, DefaultGraph]


async def resolve(result: Any) -> List[Quad]:
    """
    Materialize the result of find()/quads() into a list.

    Accepts a plain iterable, an awaitable of an iterable, or an async
    iterable.
    """
    if inspect.isawaitable(result):
        result = await result
    if hasattr(result, "__aiter__"):
        return [quad async for quad in result]
    return list(result)


def matches(
    quad: Quad,
    subject: Optional[Term] = None,
    predicate: Optional[Term] = None,
    obj: Optional[Term] = None,
    graph: Optional[Term] = None,
) -> bool:
    """Pattern test used by the set-backed graphs."""
    if subject is not None and quad.subject != subject:
        return False
    if predicate is not None and quad.predicate != predicate:
        return False
    if obj is not None and quad.object != obj:
        return False
    if graph is not None and quad.graph != graph:
        return False
    return True


class Graph(ABC):
    """
    Abstract RDF graph.

    Attributes:
        iri: Name of the graph. Quads added in the default graph are stored
            under this name.
    """

    def __init__(self, iri: Optional[GraphName] = None):
        self.iri: GraphName = iri if iri is not None else DefaultGraph()

    @abstractmethod
    def quads(self):
        """All quads (iterable, or awaitable of one for async graphs)."""

    @abstractmethod
    def find(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        obj: Optional[Term] = None,
        graph: Optional[Term] = None,
    ):
        """Quads matching the pattern (iterable, or awaitable of one)."""

    def _in_graph(self, quad: Quad) -> Quad:
        """Re-home a default-graph quad into this graph's name."""
        if isinstance(quad.graph, DefaultGraph) and not isinstance(self.iri, DefaultGraph):
            return Quad(quad.subject, quad.predicate, quad.object, self.iri)
        return quad

    def __repr__(self) -> str:
        return f"{type(self).__name__}(iri={self.iri!r})"


class SyncGraph(Graph):
    """A graph answering lookups in-process. Adds the container protocol."""

    @abstractmethod
    def quads(self) -> Iterable[Quad]:
        ...

    @abstractmethod
    def find(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        obj: Optional[Term] = None,
        graph: Optional[Term] = None,
    ) -> Iterable[Quad]:
        ...

    def __iter__(self) -> Iterator[Quad]:
        return iter(self.quads())

    def __len__(self) -> int:
        return sum(1 for _ in self.quads())

    def __contains__(self, quad: object) -> bool:
        if not isinstance(quad, Quad):
            return False
        return any(True for _ in self.find(quad.subject, quad.predicate, quad.object, quad.graph))

    def subjects(self) -> set:
        """Distinct subjects."""
        return {q.subject for q in self.quads()}
