"""Tests for blank node skolemization."""
import asyncio

from starpull.graph import ColumnarGraph, ImmutableSetGraph, skolemize
from starpull.terms import FOAF, BlankNode, Literal, NamedNode, Namespace, factory

EX = Namespace("http://example.com/")


def sample_quads():
    b1 = BlankNode("b1")
    b2 = BlankNode("b2")
    return [
        factory.quad(EX.alice, FOAF.knows, b1),
        factory.quad(b1, FOAF.name, Literal("Someone")),
        factory.quad(b1, FOAF.knows, b2),
        factory.quad(EX.alice, FOAF.name, Literal("Alice")),
    ]


class TestSkolemize:
    def test_replaces_blank_nodes(self):
        graph = ColumnarGraph(quads=sample_quads())
        result = asyncio.run(skolemize(graph, "http://example.com/.well-known/genid/"))
        assert result is graph
        assert len(result) == 4
        for quad in result:
            assert not isinstance(quad.subject, BlankNode)
            assert not isinstance(quad.object, BlankNode)

    def test_consistent_per_label(self):
        graph = ImmutableSetGraph(quads=sample_quads())
        result = asyncio.run(skolemize(graph, "urn:skolem:"))
        link = result.find(EX.alice, FOAF.knows)[0].object
        assert isinstance(link, NamedNode)
        assert link.value.startswith("urn:skolem:")
        assert {q.predicate for q in result.find(link)} == {FOAF.name, FOAF.knows}

    def test_distinct_labels_get_distinct_iris(self):
        graph = ImmutableSetGraph(quads=sample_quads())
        result = asyncio.run(skolemize(graph, "urn:skolem:"))
        link = result.find(EX.alice, FOAF.knows)[0].object
        onward = result.find(link, FOAF.knows)[0].object
        assert onward != link

    def test_immutable_source_untouched(self):
        graph = ImmutableSetGraph(quads=sample_quads())
        result = asyncio.run(skolemize(graph, "urn:skolem:"))
        assert result is not graph
        assert factory.quad(EX.alice, FOAF.knows, BlankNode("b1")) in graph

    def test_ground_quads_kept(self):
        graph = ImmutableSetGraph(quads=sample_quads())
        result = asyncio.run(skolemize(graph, "urn:skolem:"))
        assert factory.quad(EX.alice, FOAF.name, Literal("Alice")) in result

    def test_named_graph_prefix(self):
        iri = NamedNode("http://example.com/data")
        graph = ImmutableSetGraph(iri).add(sample_quads())
        result = asyncio.run(skolemize(graph, "/genid/"))
        link = result.find(EX.alice, FOAF.knows)[0].object
        assert link.value.startswith("http://example.com/data/genid/")
        assert all(quad.graph == iri for quad in result)

    def test_no_blank_nodes(self):
        quads = [factory.quad(EX.alice, FOAF.name, Literal("Alice"))]
        graph = ImmutableSetGraph(quads=quads)
        result = asyncio.run(skolemize(graph, "urn:skolem:"))
        assert set(result) == set(quads)
