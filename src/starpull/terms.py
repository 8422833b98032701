"""
RDF Term and Quad Model.

Immutable value objects for RDF terms with structural equality and hashing,
so they can be used directly as dict keys and set members.

Provides:
- NamedNode, BlankNode, Literal, Variable, DefaultGraph
- Quad (also usable as an RDF-star triple term)
- DataFactory for building terms and converting native Python values
- Namespace helpers for common vocabularies
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Optional, Union


# =============================================================================
# Terms
# =============================================================================

@dataclass(frozen=True, slots=True)
class NamedNode:
    """An IRI reference."""
    value: str
    term_type: ClassVar[str] = "NamedNode"

    def n3(self) -> str:
        return f"<{self.value}>"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class BlankNode:
    """A blank node, identified by its label."""
    value: str
    term_type: ClassVar[str] = "BlankNode"

    def n3(self) -> str:
        return f"_:{self.value}"

    def __str__(self) -> str:
        return f"[BlankNode {self.value}]"


@dataclass(frozen=True, slots=True)
class Variable:
    """A query variable."""
    value: str
    term_type: ClassVar[str] = "Variable"

    def n3(self) -> str:
        return f"?{self.value}"

    def __str__(self) -> str:
        return f"?{self.value}"


@dataclass(frozen=True, slots=True)
class DefaultGraph:
    """The unnamed default graph. All instances are equal."""
    value: ClassVar[str] = ""
    term_type: ClassVar[str] = "DefaultGraph"

    def n3(self) -> str:
        return ""

    def __str__(self) -> str:
        return "[DefaultGraph]"


XSD_NS = "http://www.w3.org/2001/XMLSchema#"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"

XSD_STRING = NamedNode(XSD_NS + "string")
RDF_LANGSTRING = NamedNode(RDF_NS + "langString")


@dataclass(frozen=True, slots=True)
class Literal:
    """
    An RDF literal.

    Attributes:
        value: Lexical form
        datatype: Datatype IRI (xsd:string unless given, rdf:langString when
            a language tag is present)
        language: Language tag, empty string when absent
        direction: Base direction ("ltr" / "rtl") or None
    """
    value: str
    datatype: NamedNode = XSD_STRING
    language: str = ""
    direction: Optional[str] = None
    term_type: ClassVar[str] = "Literal"

    def n3(self) -> str:
        lex = '"' + _escape(self.value) + '"'
        if self.language:
            if self.direction:
                return f"{lex}@{self.language}--{self.direction}"
            return f"{lex}@{self.language}"
        if self.datatype == XSD_STRING:
            return lex
        return f"{lex}^^{self.datatype.n3()}"

    def __str__(self) -> str:
        return self.n3()


@dataclass(frozen=True, slots=True)
class Quad:
    """
    A (subject, predicate, object, graph) statement.

    A Quad is itself a term, so it can appear as the subject or object of
    another Quad (RDF-star triple term). Equality and hashing recurse into
    the components.
    """
    subject: "Term"
    predicate: "Term"
    object: "Term"
    graph: "Term" = field(default_factory=DefaultGraph)
    term_type: ClassVar[str] = "Quad"
    value: ClassVar[str] = ""

    def n3(self) -> str:
        return f"<< {self.subject.n3()} {self.predicate.n3()} {self.object.n3()} >>"

    def __iter__(self):
        return iter((self.subject, self.predicate, self.object, self.graph))

    def __str__(self) -> str:
        inner = f"{self.subject.n3()} {self.predicate.n3()} {self.object.n3()}"
        if isinstance(self.graph, DefaultGraph):
            return f"{inner} ."
        return f"{inner} {self.graph.n3()} ."


Term = Union[NamedNode, BlankNode, Literal, Variable, DefaultGraph, Quad]

TERM_TYPES = (NamedNode, BlankNode, Literal, Variable, DefaultGraph, Quad)


def is_term(value: Any) -> bool:
    """Check whether a value is one of the RDF term classes."""
    return isinstance(value, TERM_TYPES)


def _escape(lex: str) -> str:
    return (
        lex.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


# =============================================================================
# Namespaces
# =============================================================================

class Namespace:
    """
    Mints NamedNodes under a base IRI.

    Usage:
        FOAF = Namespace("http://xmlns.com/foaf/0.1/")
        FOAF.name         # NamedNode("http://xmlns.com/foaf/0.1/name")
        FOAF["knows"]     # NamedNode("http://xmlns.com/foaf/0.1/knows")
    """

    def __init__(self, base: str):
        self._base = base

    @property
    def base(self) -> str:
        return self._base

    def term(self, name: str) -> NamedNode:
        return NamedNode(self._base + name)

    def __getattr__(self, name: str) -> NamedNode:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.term(name)

    def __getitem__(self, name: str) -> NamedNode:
        return self.term(name)

    def __contains__(self, term: Any) -> bool:
        return isinstance(term, NamedNode) and term.value.startswith(self._base)

    def __repr__(self) -> str:
        return f"Namespace({self._base!r})"


XSD = Namespace(XSD_NS)
RDF = Namespace(RDF_NS)
RDFS = Namespace("http://www.w3.org/2000/01/rdf-schema#")
OWL = Namespace("http://www.w3.org/2002/07/owl#")
DC = Namespace("http://purl.org/dc/elements/1.1/")
DCTERMS = Namespace("http://purl.org/dc/terms/")
FOAF = Namespace("http://xmlns.com/foaf/0.1/")
SKOS = Namespace("http://www.w3.org/2004/02/skos/core#")
VCARD = Namespace("http://www.w3.org/2006/vcard/ns#")

GLOBAL_PREFIXES = {
    "xsd": XSD.base,
    "rdf": RDF.base,
    "rdfs": RDFS.base,
    "owl": OWL.base,
}

_INTEGER_TYPES = frozenset(
    XSD[name] for name in (
        "integer", "int", "long", "short", "byte",
        "nonNegativeInteger", "positiveInteger",
        "nonPositiveInteger", "negativeInteger",
        "unsignedLong", "unsignedInt", "unsignedShort", "unsignedByte",
    )
)
_FLOAT_TYPES = frozenset((XSD.decimal, XSD.double, XSD.float))


# =============================================================================
# Data Factory
# =============================================================================

class DataFactory:
    """
    Builds terms and quads, and converts between native values and literals.

    Thread-safety: blank node label allocation is NOT synchronized.
    """

    def __init__(self, bnode_prefix: str = "bnode_"):
        self._bnode_prefix = bnode_prefix
        self._bnode_counter = itertools.count()

    def named_node(self, value: str) -> NamedNode:
        return NamedNode(value)

    def blank_node(self, value: Optional[str] = None) -> BlankNode:
        if not value:
            value = f"{self._bnode_prefix}{next(self._bnode_counter)}"
        return BlankNode(value)

    def literal(
        self,
        value: str,
        language_or_datatype: Union[str, NamedNode, None] = None,
        direction: Optional[str] = None,
    ) -> Literal:
        """
        Create a literal.

        A string second argument is a language tag, a NamedNode is a datatype.
        """
        if language_or_datatype is None:
            return Literal(value)
        if isinstance(language_or_datatype, NamedNode):
            return Literal(value, datatype=language_or_datatype)
        return Literal(
            value,
            datatype=RDF_LANGSTRING,
            language=language_or_datatype,
            direction=direction or None,
        )

    def variable(self, value: str) -> Variable:
        return Variable(value)

    def default_graph(self) -> DefaultGraph:
        return DefaultGraph()

    def quad(
        self,
        subject: Term,
        predicate: Term,
        obj: Term,
        graph: Optional[Term] = None,
    ) -> Quad:
        return Quad(subject, predicate, obj, graph if graph is not None else DefaultGraph())

    def triple_term(self, subject: Term, predicate: Term, obj: Term) -> Quad:
        """Create an RDF-star triple term (a quad in the default graph)."""
        return Quad(subject, predicate, obj, DefaultGraph())

    def from_py(self, value: Any) -> Term:
        """Convert a native Python value to its canonical term."""
        if is_term(value):
            return value
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return Literal("true" if value else "false", datatype=XSD.boolean)
        if isinstance(value, int):
            return Literal(str(value), datatype=XSD.integer)
        if isinstance(value, float):
            if value.is_integer():
                return Literal(str(int(value)), datatype=XSD.integer)
            return Literal(repr(value), datatype=XSD.decimal)
        if isinstance(value, Decimal):
            return Literal(str(value), datatype=XSD.decimal)
        if isinstance(value, datetime):
            return Literal(value.isoformat(), datatype=XSD.dateTime)
        if isinstance(value, date):
            return Literal(value.isoformat(), datatype=XSD.date)
        return Literal(str(value))

    def to_py(self, term: Term) -> Any:
        """
        Convert a literal to a native Python value.

        Non-literals are returned unchanged. Unknown datatypes and malformed
        lexical forms come back as the lexical string.
        """
        if not isinstance(term, Literal):
            return term
        dt = term.datatype
        lex = term.value
        try:
            if dt in _INTEGER_TYPES:
                return int(lex)
            if dt in _FLOAT_TYPES:
                return float(lex)
            if dt == XSD.boolean:
                return lex.strip() in ("true", "1")
            if dt == XSD.dateTime:
                return datetime.fromisoformat(_strip_zulu(lex))
            if dt == XSD.date:
                return date.fromisoformat(lex)
        except (ValueError, InvalidOperation):
            return lex
        return lex


def _strip_zulu(lex: str) -> str:
    if lex.endswith("Z"):
        return lex[:-1] + "+00:00"
    return lex


factory = DataFactory()


def n3(term: Term) -> str:
    """Render a term in N-Triples / SPARQL syntax."""
    return term.n3()
