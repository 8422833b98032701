"""
Resource: property access to one subject through a changeset.

Values are read and written as native Python values; named node objects come
back as Resources bound to the same changeset.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Tuple, Union

from starpull.graph.changeset import ChangeSetGraph
from starpull.pull import pull
from starpull.terms import NamedNode, Quad, Term, factory

ResourceValue = Union["Resource", NamedNode, str, int, float, bool, datetime]


class Resource:
    """
    A named node view over a ChangeSetGraph.

    Usage:
        john = Resource(changes, PERSON.john)
        john.set(FOAF.name, "John Doe")
        john.get(FOAF.knows).get(FOAF.name)
    """

    def __init__(self, changeset: ChangeSetGraph, node: NamedNode):
        self.changeset = changeset
        self.node = node

    @classmethod
    def with_node(cls, resource: "Resource", node: NamedNode) -> "Resource":
        """A Resource for another node sharing this resource's changeset."""
        return cls(resource.changeset, node)

    @property
    def value(self) -> str:
        return self.node.value

    def _to_term(self, value: ResourceValue) -> Term:
        if isinstance(value, Resource):
            return value.node
        return factory.from_py(value)

    def _to_value(self, term: Term) -> ResourceValue:
        if isinstance(term, NamedNode):
            return Resource(self.changeset, term)
        return factory.to_py(term)

    def _existing(self, predicate: Optional[NamedNode]) -> List[Quad]:
        return list(self.changeset.find(self.node, predicate, None))

    def get(self, predicate: NamedNode) -> Optional[ResourceValue]:
        """First value of predicate, or None."""
        quads = self._existing(predicate)
        if not quads:
            return None
        return self._to_value(quads[0].object)

    def get_all(self, predicate: NamedNode) -> List[ResourceValue]:
        return [self._to_value(q.object) for q in self._existing(predicate)]

    def set(self, predicate: NamedNode, value: ResourceValue) -> "Resource":
        """Replace every value of predicate with one value."""
        return self.set_all(predicate, [value])

    def set_all(self, predicate: NamedNode, values: Iterable[ResourceValue]) -> "Resource":
        existing = self._existing(predicate)
        if existing:
            self.changeset.remove(existing)
        self.changeset.add(
            factory.quad(self.node, predicate, self._to_term(v)) for v in values
        )
        return self

    def has(self, predicate: NamedNode) -> bool:
        return bool(self._existing(predicate))

    def delete(self, predicate: NamedNode) -> "Resource":
        existing = self._existing(predicate)
        if existing:
            self.changeset.remove(existing)
        return self

    def entries(self) -> List[Tuple[NamedNode, ResourceValue]]:
        return [(q.predicate, self._to_value(q.object)) for q in self._existing(None)]

    async def pull(self, expr, config=None):
        """Run a pull expression rooted at this resource."""
        return await pull(self.changeset, expr, self.node, config=config)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Resource):
            return self.node == other.node
        if isinstance(other, NamedNode):
            return self.node == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.node)

    def __repr__(self) -> str:
        return f"Resource({self.node.value!r})"
