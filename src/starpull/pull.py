"""
Pull: declarative sub-graph extraction.

A pull expression is a list of property specifiers evaluated from a starting
node (or from every subject when none is given):

    [FOAF.name]                          name of the node
    ["*"]                                every outgoing quad
    [(FOAF.age, 30)]                     age, only if it equals 30
    [(FOAF.knows, None)]                 knows, unconstrained
    [(FOAF.knows, [FOAF.name])]          names of everyone the node knows
    [(FOAF.knows, "...")]                transitive closure over knows

Expressions are normalized once into a PullPlan of tagged specifiers, then
evaluated against any graph honoring the find()/quads() contract. Lookups
are awaited, so synchronous and remote graphs are handled the same way.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Set, Tuple, Union

from starpull.config import PullConfig
from starpull.graph.base import resolve
from starpull.graph.immutable import ImmutableSetGraph
from starpull.terms import BlankNode, NamedNode, Quad, Term, factory

logger = logging.getLogger(__name__)

WILDCARD = "*"
RECURSE = "..."


class PullExprError(ValueError):
    """Raised when a pull expression is malformed."""
    pass


# =============================================================================
# Expression Model
# =============================================================================

@dataclass(frozen=True)
class PropertySpec:
    """All objects of one predicate."""
    predicate: NamedNode


@dataclass(frozen=True)
class WildcardSpec:
    """Every outgoing predicate/object pair."""


@dataclass(frozen=True)
class ConstraintSpec:
    """
    Objects of a predicate that equal a value.

    A value of None leaves the predicate unconstrained.
    """
    predicate: NamedNode
    value: Any = None

    @property
    def bound(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class NestedSpec:
    """Follow a predicate and pull a sub-expression from each object."""
    predicate: NamedNode
    plan: "PullPlan"


@dataclass(frozen=True)
class RecursiveSpec:
    """Transitive closure over a predicate."""
    predicate: NamedNode


Specifier = Union[PropertySpec, WildcardSpec, ConstraintSpec, NestedSpec, RecursiveSpec]


@dataclass(frozen=True)
class PullPlan:
    """A normalized pull expression."""
    specs: Tuple[Specifier, ...] = ()

    @property
    def is_filter(self) -> bool:
        """True when every specifier is a bound-value constraint."""
        return bool(self.specs) and all(
            isinstance(spec, ConstraintSpec) and spec.bound for spec in self.specs
        )

    def filters(self, strict: bool = False) -> Tuple[ConstraintSpec, ...]:
        """Specifiers a subject must satisfy to contribute anything."""
        if strict:
            return tuple(spec for spec in self.specs if isinstance(spec, ConstraintSpec))
        if self.is_filter:
            return self.specs
        return ()

    def __len__(self) -> int:
        return len(self.specs)


RawExpr = Union[PullPlan, Iterable[Any]]


def _check_predicate(predicate: Any, item: Any) -> NamedNode:
    if not isinstance(predicate, NamedNode):
        raise PullExprError(f"Predicate must be a NamedNode in {item!r}")
    return predicate


def compile_expr(expr: RawExpr) -> PullPlan:
    """
    Normalize a raw pull expression into a PullPlan.

    Raises:
        PullExprError: if any specifier has an unsupported shape
    """
    if isinstance(expr, PullPlan):
        return expr
    if isinstance(expr, (str, bytes)) or not isinstance(expr, Iterable):
        raise PullExprError(f"Pull expression must be a list, got {expr!r}")

    specs: List[Specifier] = []
    for item in expr:
        if isinstance(item, str):
            if item != WILDCARD:
                raise PullExprError(f"Unknown specifier {item!r}")
            specs.append(WildcardSpec())
        elif isinstance(item, NamedNode):
            specs.append(PropertySpec(item))
        elif isinstance(item, (list, tuple)):
            if len(item) != 2:
                raise PullExprError(f"Specifier must be (predicate, value), got {item!r}")
            predicate, value = item
            predicate = _check_predicate(predicate, item)
            if isinstance(value, str) and value == RECURSE:
                specs.append(RecursiveSpec(predicate))
            elif isinstance(value, (list, tuple, PullPlan)):
                specs.append(NestedSpec(predicate, compile_expr(value)))
            else:
                specs.append(ConstraintSpec(predicate, value))
        else:
            raise PullExprError(f"Unsupported specifier {item!r}")
    return PullPlan(tuple(specs))


# =============================================================================
# Constraint Evaluation
# =============================================================================

def satisfies(candidate: Term, constraint: Any) -> bool:
    """
    Check a candidate object against a constraint value.

    None accepts anything. Terms compare structurally. Native values are
    converted to their canonical literal first, so a datatype mismatch is
    simply no match.
    """
    if constraint is None:
        return True
    try:
        expected = factory.from_py(constraint)
    except (TypeError, ValueError):
        return False
    return candidate == expected


# =============================================================================
# Engine
# =============================================================================

_EXPANDABLE = (NamedNode, BlankNode, Quad)


async def _gather(coros: Iterable[Awaitable[Any]]) -> List[Any]:
    """
    Await coroutines concurrently, results in order.

    On the first failure (or if the caller is cancelled) every sibling still
    running is cancelled and awaited before the error propagates, so no
    lookup outlives the call that issued it.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    if not tasks:
        return []
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        await _cancel_all(tasks)
        raise

    error = None
    for task in done:
        if not task.cancelled() and task.exception() is not None and error is None:
            error = task.exception()
    if error is not None:
        await _cancel_all(pending)
        raise error
    return [task.result() for task in tasks]


async def _cancel_all(tasks) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class PullEngine:
    """
    Evaluates PullPlans against one graph.

    State (lookup cache, statistics) is scoped to the engine; pull() builds a
    fresh engine per call.
    """

    def __init__(self, graph, config: Optional[PullConfig] = None):
        self.graph = graph
        self.config = (config or PullConfig()).ensure_valid()
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent_lookups)
        self._cache: Dict[Tuple[Term, Optional[Term]], asyncio.Future] = {}
        self.lookup_count = 0

    async def _fetch(self, subject: Term, predicate: Optional[Term]) -> List[Quad]:
        async with self._semaphore:
            self.lookup_count += 1
            return await resolve(self.graph.find(subject, predicate, None, None))

    async def lookup(self, subject: Term, predicate: Optional[Term] = None) -> List[Quad]:
        """Quads with this subject (and predicate, when given)."""
        if not self.config.cache_lookups:
            return await self._fetch(subject, predicate)
        key = (subject, predicate)
        future = self._cache.get(key)
        if future is None:
            future = asyncio.ensure_future(self._fetch(subject, predicate))
            self._cache[key] = future
        return await future

    async def subjects(self) -> List[Term]:
        """Distinct subjects of the whole graph."""
        quads = await resolve(self.graph.quads())
        return list(dict.fromkeys(q.subject for q in quads))

    async def run(self, plan: PullPlan, start: Optional[Term] = None) -> Set[Quad]:
        try:
            subjects = [start] if start is not None else await self.subjects()
            results = await _gather(self.evaluate(plan, s) for s in subjects)
        except BaseException:
            await self._drain_cache()
            raise
        return set().union(*(r for r in results if r is not None))

    async def _drain_cache(self) -> None:
        """Cancel cached lookups still in flight after a failure."""
        futures = list(self._cache.values())
        for future in futures:
            if not future.done():
                future.cancel()
        await asyncio.gather(*futures, return_exceptions=True)

    async def evaluate(self, plan: PullPlan, subject: Term) -> Optional[Set[Quad]]:
        """
        Evaluate one plan level from one subject.

        Returns None when the subject fails the level's filters, which is
        distinct from an empty contribution.
        """
        filters = plan.filters(self.config.strict_constraints)
        filtered = await _gather(self._constrained(spec, subject) for spec in filters)
        if not all(filtered):
            return None

        rest = [spec for spec in plan.specs if spec not in filters]
        parts = await _gather(self._specifier(spec, subject) for spec in rest)
        return set().union(*filtered, *parts)

    async def _specifier(self, spec: Specifier, subject: Term) -> Set[Quad]:
        if isinstance(spec, WildcardSpec):
            return set(await self.lookup(subject))
        if isinstance(spec, PropertySpec):
            return set(await self.lookup(subject, spec.predicate))
        if isinstance(spec, ConstraintSpec):
            return await self._constrained(spec, subject)
        if isinstance(spec, NestedSpec):
            return await self._nested(spec, subject)
        if isinstance(spec, RecursiveSpec):
            return await self._recurse(spec.predicate, subject)
        raise PullExprError(f"Unsupported specifier {spec!r}")

    async def _constrained(self, spec: ConstraintSpec, subject: Term) -> Set[Quad]:
        quads = await self.lookup(subject, spec.predicate)
        return {q for q in quads if satisfies(q.object, spec.value)}

    async def _nested(self, spec: NestedSpec, subject: Term) -> Set[Quad]:
        links = await self.lookup(subject, spec.predicate)
        nested = await _gather(self.evaluate(spec.plan, link.object) for link in links)
        result: Set[Quad] = set()
        for link, quads in zip(links, nested):
            # Object rejected by the nested level's filters: drop the link too
            if quads is None:
                continue
            result.add(link)
            result |= quads
        return result

    async def _recurse(self, predicate: NamedNode, subject: Term) -> Set[Quad]:
        """
        Breadth-first transitive closure over predicate.

        visited only grows and is touched between levels, so every node is
        expanded at most once and cycles terminate.
        """
        visited = {subject}
        frontier = [subject]
        result: Set[Quad] = set()
        while frontier:
            expansions = await _gather(self.lookup(node, predicate) for node in frontier)
            next_frontier = []
            for quads in expansions:
                for quad in quads:
                    result.add(quad)
                    target = quad.object
                    if target not in visited:
                        visited.add(target)
                        if isinstance(target, _EXPANDABLE):
                            next_frontier.append(target)
            frontier = next_frontier
        return result


async def pull(
    graph,
    expr: RawExpr,
    start: Optional[Term] = None,
    *,
    config: Optional[PullConfig] = None,
) -> ImmutableSetGraph:
    """
    Extract the sub-graph described by expr.

    Args:
        graph: Any graph with find()/quads(), sync or async
        expr: Pull expression (raw list or compiled PullPlan)
        start: Starting node; every subject of the graph when omitted
        config: Engine settings

    Returns:
        ImmutableSetGraph of the selected quads (possibly empty)

    Raises:
        PullExprError: if expr is malformed
        Whatever the graph raises on lookup failure, unchanged
    """
    plan = compile_expr(expr)
    engine = PullEngine(graph, config)
    start_time = time.time()
    quads = await engine.run(plan, start)
    logger.debug(
        f"Pulled {len(quads)} quads with {engine.lookup_count} lookups in "
        f"{(time.time() - start_time) * 1000:.1f}ms"
    )
    return ImmutableSetGraph(getattr(graph, "iri", None), quads)
