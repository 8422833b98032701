"""
Remote SPARQL endpoint graph.

Answers find()/quads() by sending a single triple-pattern SELECT to a
SPARQL 1.1 protocol endpoint and decoding the JSON results. Every lookup is
a coroutine; HTTP failures propagate as httpx exceptions.

Blank nodes returned by an endpoint are scoped to one result set, so a
lookup with a bound blank node finds nothing instead of being sent.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from starpull.config import SPARQLEndpointConfig
from starpull.graph.base import Graph, GraphName
from starpull.terms import (
    RDF_LANGSTRING,
    BlankNode,
    DefaultGraph,
    Literal,
    NamedNode,
    Quad,
    Term,
)

logger = logging.getLogger(__name__)


class SPARQLEndpointError(Exception):
    """Raised when an endpoint answers with a body that is not SPARQL JSON results."""
    pass


def term_from_binding(binding: Dict[str, Any]) -> Term:
    """Decode one SPARQL JSON results binding value into a term."""
    kind = binding.get("type")
    value = binding.get("value")
    if kind == "uri":
        return NamedNode(value)
    if kind == "bnode":
        return BlankNode(value)
    if kind in ("literal", "typed-literal"):
        lang = binding.get("xml:lang")
        if lang:
            return Literal(value, RDF_LANGSTRING, lang, binding.get("its:dir"))
        datatype = binding.get("datatype")
        if datatype:
            return Literal(value, NamedNode(datatype))
        return Literal(value)
    if kind == "triple":
        return Quad(
            term_from_binding(value["subject"]),
            term_from_binding(value["predicate"]),
            term_from_binding(value["object"]),
        )
    raise SPARQLEndpointError(f"Unsupported binding type {kind!r}")


def _mentions_blank_node(term: Optional[Term]) -> bool:
    if isinstance(term, BlankNode):
        return True
    if isinstance(term, Quad):
        return any(_mentions_blank_node(t) for t in (term.subject, term.predicate, term.object))
    return False


class SPARQLEndpointGraph(Graph):
    """
    Read-only graph over a remote SPARQL endpoint.

    Usage:
        config = SPARQLEndpointConfig(url="http://localhost:7200/repositories/demo")
        async with SPARQLEndpointGraph(config) as graph:
            result = await pull(graph, [FOAF.name], john)
    """

    def __init__(
        self,
        config: SPARQLEndpointConfig,
        iri: Optional[GraphName] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(iri)
        self.config = config
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SPARQLEndpointGraph":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def select(self, query: str) -> List[Dict[str, Term]]:
        """Run a SELECT query, returning one {variable: term} dict per solution."""
        start_time = time.time()
        response = await self._get_client().post(
            self.config.url,
            data={"query": query},
            headers=self.config.request_headers(),
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()
        data = response.json()
        try:
            rows = data["results"]["bindings"]
        except (KeyError, TypeError) as e:
            raise SPARQLEndpointError(f"Malformed results from {self.config.url}") from e

        solutions = [
            {var: term_from_binding(val) for var, val in row.items()}
            for row in rows
        ]
        logger.debug(
            f"SELECT returned {len(solutions)} rows in "
            f"{(time.time() - start_time) * 1000:.1f}ms"
        )
        return solutions

    def build_find_query(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        obj: Optional[Term] = None,
        graph: Optional[Term] = None,
    ) -> str:
        pattern = " ".join((
            subject.n3() if subject is not None else "?s",
            predicate.n3() if predicate is not None else "?p",
            obj.n3() if obj is not None else "?o",
        ))
        context = self._context(graph)
        if isinstance(context, NamedNode):
            return f"SELECT * WHERE {{ GRAPH {context.n3()} {{ {pattern} }} }}"
        return f"SELECT * WHERE {{ {pattern} }}"

    def _context(self, graph: Optional[Term]) -> Term:
        if graph is not None and not isinstance(graph, DefaultGraph):
            return graph
        return self.iri

    async def find(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        obj: Optional[Term] = None,
        graph: Optional[Term] = None,
    ) -> List[Quad]:
        # A _:label in a query pattern is a variable, not the store's node
        if any(_mentions_blank_node(t) for t in (subject, predicate, obj)):
            logger.debug("Skipping lookup on a blank node, labels are not addressable remotely")
            return []
        query = self.build_find_query(subject, predicate, obj, graph)
        context = self._context(graph)
        solutions = await self.select(query)
        found = (
            Quad(
                subject if subject is not None else row["s"],
                predicate if predicate is not None else row["p"],
                obj if obj is not None else row["o"],
                context,
            )
            for row in solutions
        )
        # Endpoints may repeat solutions; keep set semantics, stable order
        return list(dict.fromkeys(found))

    async def quads(self) -> List[Quad]:
        return await self.find()
