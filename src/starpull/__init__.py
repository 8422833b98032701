"""
starpull: RDF-star terms, pluggable graphs and declarative Pull traversal.

Pull extracts the sub-graph described by a small expression language
(properties, wildcards, constraints, nested and recursive traversal) from any
graph backend, in-memory or remote.
"""

__version__ = "0.1.0"

from starpull.terms import (
    NamedNode,
    BlankNode,
    Literal,
    Variable,
    DefaultGraph,
    Quad,
    Term,
    DataFactory,
    Namespace,
    factory,
    XSD,
    RDF,
    RDFS,
    OWL,
    DC,
    DCTERMS,
    FOAF,
    SKOS,
    VCARD,
)
from starpull.graph import (
    Graph,
    SyncGraph,
    ImmutableSetGraph,
    ChangeSetGraph,
    ColumnarGraph,
    SPARQLEndpointGraph,
    SPARQLEndpointError,
    resolve,
    skolemize,
)
from starpull.pull import (
    pull,
    compile_expr,
    satisfies,
    PullEngine,
    PullPlan,
    PullExprError,
    WILDCARD,
    RECURSE,
)
from starpull.resource import Resource
from starpull.config import PullConfig, SPARQLEndpointConfig, ConfigValidationError

__all__ = [
    # Terms
    "NamedNode",
    "BlankNode",
    "Literal",
    "Variable",
    "DefaultGraph",
    "Quad",
    "Term",
    "DataFactory",
    "Namespace",
    "factory",
    "XSD",
    "RDF",
    "RDFS",
    "OWL",
    "DC",
    "DCTERMS",
    "FOAF",
    "SKOS",
    "VCARD",
    # Graphs
    "Graph",
    "SyncGraph",
    "ImmutableSetGraph",
    "ChangeSetGraph",
    "ColumnarGraph",
    "SPARQLEndpointGraph",
    "SPARQLEndpointError",
    "resolve",
    "skolemize",
    # Pull
    "pull",
    "compile_expr",
    "satisfies",
    "PullEngine",
    "PullPlan",
    "PullExprError",
    "WILDCARD",
    "RECURSE",
    # Resources
    "Resource",
    # Configuration
    "PullConfig",
    "SPARQLEndpointConfig",
    "ConfigValidationError",
]
