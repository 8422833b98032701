"""
starpull graph backends.

All backends satisfy the find()/quads() contract from graph.base.
"""

from starpull.graph.base import Graph, SyncGraph, GraphName, resolve, matches
from starpull.graph.immutable import ImmutableSetGraph
from starpull.graph.changeset import ChangeSetGraph
from starpull.graph.columnar import (
    ColumnarGraph,
    GraphStatistics,
    TermDictionary,
    TermKind,
    TermId,
    DEFAULT_GRAPH_ID,
)
from starpull.graph.sparql import SPARQLEndpointGraph, SPARQLEndpointError
from starpull.graph.skolem import skolemize

__all__ = [
    "Graph",
    "SyncGraph",
    "GraphName",
    "resolve",
    "matches",
    "ImmutableSetGraph",
    "ChangeSetGraph",
    "ColumnarGraph",
    "GraphStatistics",
    "TermDictionary",
    "TermKind",
    "TermId",
    "DEFAULT_GRAPH_ID",
    "SPARQLEndpointGraph",
    "SPARQLEndpointError",
    "skolemize",
]
