"""
Changeset overlay graph.

Records writes against an immutable base so the net delta (added / removed
quads) can be inspected or replayed onto another graph.
"""

from __future__ import annotations

import inspect
import logging
from typing import Iterable, Iterator, Optional

from starpull.graph.base import SyncGraph
from starpull.graph.immutable import ImmutableSetGraph
from starpull.terms import Quad, Term

logger = logging.getLogger(__name__)


class ChangeSetGraph(SyncGraph):
    """
    Mutable view over an ImmutableSetGraph.

    Usage:
        changes = ChangeSetGraph(base)
        changes.add([q1]).remove([q2])
        target = await changes.apply_delta(target)
    """

    def __init__(self, graph: Optional[ImmutableSetGraph] = None):
        graph = graph if graph is not None else ImmutableSetGraph()
        super().__init__(graph.iri)
        self._original = graph
        self.current = graph

    @property
    def original(self) -> ImmutableSetGraph:
        return self._original

    def quads(self) -> Iterator[Quad]:
        return self.current.quads()

    def find(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        obj: Optional[Term] = None,
        graph: Optional[Term] = None,
    ) -> list:
        return self.current.find(subject, predicate, obj, graph)

    def add(self, quads: Iterable[Quad]) -> "ChangeSetGraph":
        self.current = self.current.add(quads)
        return self

    def remove(self, quads: Iterable[Quad]) -> "ChangeSetGraph":
        self.current = self.current.remove(quads)
        return self

    def delete_all(self) -> None:
        self.current = ImmutableSetGraph(self.iri)

    def added(self) -> frozenset:
        """Quads present now that were not in the original."""
        return self.current.data - self._original.data

    def removed(self) -> frozenset:
        """Quads of the original that are no longer present."""
        return self._original.data - self.current.data

    def __len__(self) -> int:
        return len(self.current)

    async def apply_delta(self, other):
        """
        Replay this changeset's delta onto another writable graph.

        Works with mutable graphs (add/remove return self), immutable graphs
        (add/remove return a new graph) and async graphs. Returns the
        resulting graph.
        """
        added = self.added()
        removed = self.removed()
        logger.debug(f"Applying delta: +{len(added)} -{len(removed)} quads")

        if added:
            other = await _settle(other.add(added))
        if removed:
            other = await _settle(other.remove(removed))
        return other


async def _settle(result):
    if inspect.isawaitable(result):
        return await result
    return result
