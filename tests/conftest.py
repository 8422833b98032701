"""Shared fixtures: a small FOAF social graph served by every backend."""
import json
import re
from urllib.parse import parse_qs

import httpx
import pytest

from starpull.config import SPARQLEndpointConfig
from starpull.graph import (
    ChangeSetGraph,
    ColumnarGraph,
    Graph,
    ImmutableSetGraph,
    SPARQLEndpointGraph,
)
from starpull.terms import (
    FOAF,
    RDF,
    BlankNode,
    Literal,
    NamedNode,
    Namespace,
    Quad,
    XSD_STRING,
    factory,
)

PERSON = Namespace("http://example.com/person/")

john = PERSON.john
jane = PERSON.jane
bob = PERSON.bob
alice = PERSON.alice
charlie = PERSON.charlie

john_homepage = NamedNode("http://johndoe.com")
jane_homepage = NamedNode("http://janesmith.com")
bob_homepage = NamedNode("http://bobwilson.com")


def social_quads():
    """
    John knows Jane; Jane knows John and Bob; Bob knows Jane; Charlie knows
    John. Alice has friends but no knows edges.
    """
    q = factory.quad
    lit = factory.from_py
    return [
        # John: 8 quads
        q(john, RDF.type, FOAF.Person),
        q(john, FOAF.name, lit("John Doe")),
        q(john, FOAF.age, lit(30)),
        q(john, FOAF.email, lit("john@example.com")),
        q(john, FOAF.active, lit(True)),
        q(john, FOAF.knows, jane),
        q(john, FOAF.friend, bob),
        q(john, FOAF.homepage, john_homepage),
        # Jane: 9 quads
        q(jane, RDF.type, FOAF.Person),
        q(jane, FOAF.name, lit("Jane Smith")),
        q(jane, FOAF.age, lit(25)),
        q(jane, FOAF.email, lit("jane@example.com")),
        q(jane, FOAF.active, lit(True)),
        q(jane, FOAF.knows, john),
        q(jane, FOAF.knows, bob),
        q(jane, FOAF.friend, alice),
        q(jane, FOAF.homepage, jane_homepage),
        # Bob: 9 quads
        q(bob, RDF.type, FOAF.Person),
        q(bob, FOAF.name, lit("Bob Wilson")),
        q(bob, FOAF.age, lit(35)),
        q(bob, FOAF.email, lit("bob@example.com")),
        q(bob, FOAF.active, lit(False)),
        q(bob, FOAF.knows, jane),
        q(bob, FOAF.friend, john),
        q(bob, FOAF.friend, alice),
        q(bob, FOAF.homepage, bob_homepage),
        # Alice: 6 quads, no knows
        q(alice, RDF.type, FOAF.Person),
        q(alice, FOAF.name, lit("Alice Johnson")),
        q(alice, FOAF.age, lit(28)),
        q(alice, FOAF.email, lit("alice@example.com")),
        q(alice, FOAF.friend, jane),
        q(alice, FOAF.friend, bob),
        # Charlie: 5 quads
        q(charlie, RDF.type, FOAF.Person),
        q(charlie, FOAF.name, lit("Charlie Brown")),
        q(charlie, FOAF.age, lit(40)),
        q(charlie, FOAF.active, lit(True)),
        q(charlie, FOAF.knows, john),
    ]


class AsyncSetGraph(Graph):
    """Wraps a set graph behind coroutine lookups, like a remote store."""

    def __init__(self, quads=None):
        super().__init__()
        self.inner = ImmutableSetGraph(quads=quads)
        self.calls = []

    async def quads(self):
        return list(self.inner.quads())

    async def find(self, subject=None, predicate=None, obj=None, graph=None):
        self.calls.append((subject, predicate, obj, graph))
        return self.inner.find(subject, predicate, obj, graph)


class FailingGraph(Graph):
    """Every lookup fails."""

    def __init__(self, error):
        super().__init__()
        self.error = error

    async def quads(self):
        raise self.error

    async def find(self, subject=None, predicate=None, obj=None, graph=None):
        raise self.error


# =============================================================================
# Mock SPARQL endpoint
# =============================================================================

_TOKEN = re.compile(
    r'<[^>]*>|_:[^\s{}]+|\?\w+|"(?:[^"\\]|\\.)*"(?:\^\^<[^>]*>|@[\w-]+)?'
)
_LITERAL = re.compile(r'^"((?:[^"\\]|\\.)*)"(?:\^\^<([^>]*)>|@([\w-]+))?$')


def parse_token(token):
    """
    Decode one pattern token; variables come back as None.

    A _:label in a pattern is a non-projected variable, as on a real endpoint.
    """
    if token.startswith(("?", "_:")):
        return None
    if token.startswith("<"):
        return NamedNode(token[1:-1])
    match = _LITERAL.match(token)
    value = match.group(1).replace('\\"', '"').replace("\\\\", "\\")
    if match.group(3):
        return factory.literal(value, match.group(3))
    if match.group(2):
        return Literal(value, NamedNode(match.group(2)))
    return Literal(value)


def term_to_binding(term):
    if isinstance(term, NamedNode):
        return {"type": "uri", "value": term.value}
    if isinstance(term, BlankNode):
        return {"type": "bnode", "value": term.value}
    if isinstance(term, Quad):
        return {
            "type": "triple",
            "value": {
                "subject": term_to_binding(term.subject),
                "predicate": term_to_binding(term.predicate),
                "object": term_to_binding(term.object),
            },
        }
    binding = {"type": "literal", "value": term.value}
    if term.language:
        binding["xml:lang"] = term.language
    elif term.datatype != XSD_STRING:
        binding["datatype"] = term.datatype.value
    return binding


def sparql_handler(graph, requests=None):
    """MockTransport handler answering triple-pattern SELECTs from graph."""

    def handler(request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        query = form["query"][0]
        if requests is not None:
            requests.append(request)
        pattern = re.findall(r"\{([^{}]*)\}", query)[-1]
        tokens = _TOKEN.findall(pattern)
        names = ("s", "p", "o")
        terms = [parse_token(t) for t in tokens]
        rows = []
        projected = [n for n, t in zip(names, tokens) if t.startswith("?")]
        for quad in graph.find(*terms):
            values = dict(zip(names, (quad.subject, quad.predicate, quad.object)))
            rows.append({n: term_to_binding(values[n]) for n in projected})
        body = {"head": {"vars": projected},
                "results": {"bindings": rows}}
        return httpx.Response(200, content=json.dumps(body),
                              headers={"Content-Type": "application/sparql-results+json"})

    return handler


def make_sparql_graph(quads, requests=None):
    source = ImmutableSetGraph(quads=quads)
    client = httpx.AsyncClient(transport=httpx.MockTransport(sparql_handler(source, requests)))
    config = SPARQLEndpointConfig(url="http://sparql.example.com/query")
    return SPARQLEndpointGraph(config, client=client)


# =============================================================================
# Fixtures
# =============================================================================

def _build(kind, quads):
    if kind == "columnar":
        return ColumnarGraph(quads=quads)
    if kind == "immutable":
        return ImmutableSetGraph(quads=quads)
    if kind == "changeset":
        return ChangeSetGraph(ImmutableSetGraph()).add(quads)
    if kind == "async":
        return AsyncSetGraph(quads)
    if kind == "sparql":
        return make_sparql_graph(quads)
    raise ValueError(kind)


BACKENDS = ["columnar", "immutable", "changeset", "async", "sparql"]


@pytest.fixture(params=BACKENDS)
def social_graph(request):
    """The social graph served by each backend in turn."""
    return _build(request.param, social_quads())


@pytest.fixture
def build_graph():
    """Factory for graphs of a given backend from arbitrary quads."""
    return _build
