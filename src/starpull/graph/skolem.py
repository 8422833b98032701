"""Blank node skolemization."""

from __future__ import annotations

import itertools
import logging
from typing import Dict

from starpull.graph.base import resolve
from starpull.graph.changeset import ChangeSetGraph
from starpull.graph.immutable import ImmutableSetGraph
from starpull.terms import BlankNode, NamedNode, Quad

logger = logging.getLogger(__name__)

_skolem_counter = itertools.count()


async def skolemize(graph, prefix: str):
    """
    Replace every blank node in subject or object position with a fresh IRI.

    Each blank node label maps to one IRI ``<prefix><n>``; for a named graph
    the prefix is appended to the graph IRI. The rewrite is applied to
    ``graph`` through a changeset delta, and the resulting graph is returned
    (``graph`` itself for mutable graphs, a new graph for immutable ones).
    """
    if isinstance(graph.iri, NamedNode):
        prefix = graph.iri.value + prefix

    nodes: Dict[BlankNode, NamedNode] = {}

    def replace(term):
        if not isinstance(term, BlankNode):
            return term
        if term not in nodes:
            nodes[term] = NamedNode(f"{prefix}{next(_skolem_counter)}")
        return nodes[term]

    snapshot = await resolve(graph.quads())
    changes = ChangeSetGraph(ImmutableSetGraph(graph.iri, snapshot))
    for quad in snapshot:
        if isinstance(quad.subject, BlankNode) or isinstance(quad.object, BlankNode):
            rewritten = Quad(replace(quad.subject), quad.predicate, replace(quad.object), quad.graph)
            changes.add([rewritten]).remove([quad])

    logger.debug(f"Skolemized {len(nodes)} blank nodes under {prefix}")
    return await changes.apply_delta(graph)
