"""
Columnar in-memory graph.

Terms are dictionary-encoded into tagged 64-bit ids and quads are stored as
four UInt64 columns in a Polars DataFrame.

Key design decisions:
- Tagged ID space: high 2 bits encode term kind for O(1) kind detection
- TermId 0 is reserved for the default graph
- Pattern lookups resolve bound terms to ids first; an unknown term means
  no match without scanning the frame
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterable, Iterator, List, Optional

import polars as pl

from starpull.graph.base import GraphName, SyncGraph
from starpull.terms import (
    BlankNode,
    DefaultGraph,
    Literal,
    NamedNode,
    Quad,
    Term,
    Variable,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Term Identity and Encoding
# =============================================================================

class TermKind(IntEnum):
    """
    RDF term kind enumeration.

    Encoded in the high 2 bits of TermId.
    """
    IRI = 0
    LITERAL = 1
    BNODE = 2
    QUOTED_TRIPLE = 3


TermId = int

KIND_SHIFT = 62
KIND_MASK = 0x3
PAYLOAD_MASK = (1 << KIND_SHIFT) - 1

DEFAULT_GRAPH_ID: TermId = 0


def make_term_id(kind: TermKind, payload: int) -> TermId:
    """Create a TermId from kind and payload."""
    return (kind << KIND_SHIFT) | (payload & PAYLOAD_MASK)


def get_term_kind(term_id: TermId) -> TermKind:
    """Extract the term kind from a TermId."""
    return TermKind((term_id >> KIND_SHIFT) & KIND_MASK)


def kind_of(term: Term) -> TermKind:
    if isinstance(term, NamedNode):
        return TermKind.IRI
    if isinstance(term, Literal):
        return TermKind.LITERAL
    if isinstance(term, BlankNode):
        return TermKind.BNODE
    if isinstance(term, Quad):
        return TermKind.QUOTED_TRIPLE
    raise ValueError(f"Cannot store {type(term).__name__} term {term!r}")


class TermDictionary:
    """
    Maps RDF terms to TermIds and back.

    Thread-safety: NOT thread-safe. Use external synchronization for
    concurrent writers.
    """

    def __init__(self):
        # Start at 1 so no real term collides with DEFAULT_GRAPH_ID
        self._next_payload: Dict[TermKind, int] = {kind: 1 for kind in TermKind}
        self._term_to_id: Dict[Term, TermId] = {}
        self._id_to_term: Dict[TermId, Term] = {}

    def _allocate_id(self, kind: TermKind) -> TermId:
        payload = self._next_payload[kind]
        self._next_payload[kind] = payload + 1
        return make_term_id(kind, payload)

    def get_or_create(self, term: Term) -> TermId:
        """Intern a term, returning its TermId."""
        if isinstance(term, DefaultGraph):
            return DEFAULT_GRAPH_ID
        existing = self._term_to_id.get(term)
        if existing is not None:
            return existing
        term_id = self._allocate_id(kind_of(term))
        self._term_to_id[term] = term_id
        self._id_to_term[term_id] = term
        return term_id

    def get_id(self, term: Term) -> Optional[TermId]:
        """TermId of an already interned term, without creating it."""
        if isinstance(term, DefaultGraph):
            return DEFAULT_GRAPH_ID
        return self._term_to_id.get(term)

    def lookup(self, term_id: TermId) -> Term:
        if term_id == DEFAULT_GRAPH_ID:
            return DefaultGraph()
        return self._id_to_term[term_id]

    def __len__(self) -> int:
        return len(self._id_to_term)

    def __contains__(self, term: object) -> bool:
        return term in self._term_to_id


# =============================================================================
# Statistics
# =============================================================================

@dataclass
class GraphStatistics:
    """Statistics for a columnar graph."""
    quad_count: int = 0
    subject_count: int = 0
    predicate_count: int = 0
    object_count: int = 0
    literal_count: int = 0
    blank_node_count: int = 0
    quoted_triple_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quad_count": self.quad_count,
            "subject_count": self.subject_count,
            "predicate_count": self.predicate_count,
            "object_count": self.object_count,
            "literal_count": self.literal_count,
            "blank_node_count": self.blank_node_count,
            "quoted_triple_count": self.quoted_triple_count,
        }


# =============================================================================
# Graph
# =============================================================================

COLUMNS = ("graph", "subject", "predicate", "object")
SCHEMA = {name: pl.UInt64 for name in COLUMNS}


def _kind_range(column: str, kind: TermKind) -> pl.Expr:
    lower = pl.col(column) >= pl.lit(make_term_id(kind, 0), dtype=pl.UInt64)
    if kind == TermKind.QUOTED_TRIPLE:
        return lower
    upper = pl.col(column) < pl.lit(make_term_id(TermKind(kind + 1), 0), dtype=pl.UInt64)
    return lower & upper


class ColumnarGraph(SyncGraph):
    """
    Mutable graph backed by a dictionary-encoded Polars frame.

    Usage:
        g = ColumnarGraph()
        g.add([factory.quad(s, p, o)])
        list(g.find(s, None, None))
    """

    def __init__(self, iri: Optional[GraphName] = None, quads: Optional[Iterable[Quad]] = None):
        super().__init__(iri)
        self._terms = TermDictionary()
        self._df = pl.DataFrame(schema=SCHEMA)
        if quads is not None:
            self.add(quads)

    @property
    def term_dict(self) -> TermDictionary:
        return self._terms

    @property
    def frame(self) -> pl.DataFrame:
        """The encoded quad frame (graph, subject, predicate, object)."""
        return self._df

    def _encode(self, quad: Quad) -> tuple:
        quad = self._in_graph(quad)
        for term in quad:
            if isinstance(term, Variable):
                raise ValueError(f"Cannot store quad with variable {term.n3()}")
        return (
            self._terms.get_or_create(quad.graph),
            self._terms.get_or_create(quad.subject),
            self._terms.get_or_create(quad.predicate),
            self._terms.get_or_create(quad.object),
        )

    def _decode(self, row: tuple) -> Quad:
        g, s, p, o = row
        lookup = self._terms.lookup
        return Quad(lookup(s), lookup(p), lookup(o), lookup(g))

    def _frame_of(self, rows: List[tuple]) -> pl.DataFrame:
        return pl.DataFrame(rows, schema=SCHEMA, orient="row")

    def add(self, quads: Iterable[Quad]) -> "ColumnarGraph":
        rows = [self._encode(q) for q in quads]
        if rows:
            self._df = pl.concat([self._df, self._frame_of(rows)]).unique(maintain_order=True)
            logger.debug(f"Added {len(rows)} quads, graph now holds {self._df.height}")
        return self

    def remove(self, quads: Iterable[Quad]) -> "ColumnarGraph":
        rows = []
        for quad in quads:
            ids = tuple(self._terms.get_id(t) for t in self._in_graph(quad))
            # A quad with a never-seen term cannot be stored
            if None not in ids:
                rows.append((ids[3], ids[0], ids[1], ids[2]))
        if rows:
            self._df = self._df.join(self._frame_of(rows), on=list(COLUMNS), how="anti")
        return self

    def delete_all(self) -> None:
        self._df = pl.DataFrame(schema=SCHEMA)

    def quads(self) -> Iterator[Quad]:
        return (self._decode(row) for row in self._df.iter_rows())

    def find(
        self,
        subject: Optional[Term] = None,
        predicate: Optional[Term] = None,
        obj: Optional[Term] = None,
        graph: Optional[Term] = None,
    ) -> List[Quad]:
        lf = self._df.lazy()
        for column, term in zip(COLUMNS, (graph, subject, predicate, obj)):
            if term is None:
                continue
            term_id = self._terms.get_id(term)
            if term_id is None:
                return []
            lf = lf.filter(pl.col(column) == pl.lit(term_id, dtype=pl.UInt64))
        return [self._decode(row) for row in lf.collect().iter_rows()]

    def statistics(self) -> GraphStatistics:
        df = self._df
        if df.height == 0:
            return GraphStatistics()
        return GraphStatistics(
            quad_count=df.height,
            subject_count=df["subject"].n_unique(),
            predicate_count=df["predicate"].n_unique(),
            object_count=df["object"].n_unique(),
            literal_count=df.filter(_kind_range("object", TermKind.LITERAL)).height,
            blank_node_count=df.filter(
                _kind_range("subject", TermKind.BNODE) | _kind_range("object", TermKind.BNODE)
            ).height,
            quoted_triple_count=df.filter(
                _kind_range("subject", TermKind.QUOTED_TRIPLE)
                | _kind_range("object", TermKind.QUOTED_TRIPLE)
            ).height,
        )

    def __len__(self) -> int:
        return self._df.height
