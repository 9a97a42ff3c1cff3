"""
Read-only view of one node in an rdflib graph.

Cube metadata, dimensions and validation results are plain value types that
hold a GraphNode instead of subclassing a common node wrapper.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterator, List, Optional

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.collection import Collection
from rdflib.term import Node

from .namespaces import CUBE, RDF, RDFS, SCHEMA, SH

log = logging.getLogger(__name__)

LANGUAGES = ("de", "en", "fr", "it")


@dataclass(frozen=True)
class GraphNode:
    graph: Graph
    term: Node

    @property
    def iri(self) -> str:
        return str(self.term)

    def objects(self, predicate: URIRef) -> List[Node]:
        return list(self.graph.objects(self.term, predicate))

    def values(self, predicate: URIRef) -> List[str]:
        return [str(o) for o in self.objects(predicate)]

    def first(self, predicate: URIRef) -> Optional[Node]:
        found = self.objects(predicate)
        if not found:
            return None
        if len(found) > 1:
            log.warning("Multiple %s values found for %s. Using the first one.", predicate, self.term)
        return found[0]

    def out(self, predicate: URIRef) -> List["GraphNode"]:
        return [GraphNode(self.graph, o) for o in self.objects(predicate)]

    def subjects_in(self, predicate: URIRef) -> List["GraphNode"]:
        return [GraphNode(self.graph, s) for s in self.graph.subjects(predicate, self.term)]

    def literals(self, predicate: URIRef, lang: Optional[str] = None) -> List[str]:
        """Literal values of `predicate`; lang=None means untagged literals only."""
        out = []
        for o in self.objects(predicate):
            if isinstance(o, Literal) and (o.language or None) == lang:
                out.append(str(o))
        return out

    def has_type(self, cls: URIRef) -> bool:
        return (self.term, RDF.type, cls) in self.graph

    def predicates(self) -> List[URIRef]:
        seen: Dict[URIRef, None] = {}
        for p in self.graph.predicates(self.term, None):
            seen.setdefault(p, None)
        return list(seen)

    def is_list(self) -> bool:
        return self.term == RDF.nil or (self.term, RDF.first, None) in self.graph

    def list_items(self) -> List["GraphNode"]:
        return [GraphNode(self.graph, item) for item in Collection(self.graph, self.term)]

    def to_table(self) -> List[Dict[str, str]]:
        subject = self.term.n3()
        rows = []
        for p in self.predicates():
            for o in self.objects(p):
                rows.append({"subject": subject, "predicate": p.n3(), "object": o.n3()})
        return rows


def _join(values: List[str]) -> Optional[str]:
    return ", ".join(values) if values else None


@dataclass(frozen=True)
class Dimension:
    node: GraphNode

    @property
    def iri(self) -> str:
        return self.node.iri

    @property
    def path(self) -> str:
        p = self.node.first(SH.path)
        return str(p) if p is not None else ""

    @property
    def label(self) -> str:
        labels: List[str] = []
        for dim in self.node.out(CUBE.dimension):
            labels.extend(dim.values(RDFS.label))
        if not labels:
            labels = self.node.values(SCHEMA.name)
        return " ".join(labels)

    def to_turtle(self) -> str:
        g = Graph()
        g.namespace_manager = self.node.graph.namespace_manager
        for t in self.node.graph.triples((self.node.term, None, None)):
            g.add(t)
        return g.serialize(format="turtle")


@dataclass(frozen=True)
class CubeMetadata:
    node: GraphNode

    @classmethod
    def from_graph(cls, graph: Graph, cube_iri: str) -> "CubeMetadata":
        return cls(GraphNode(graph, URIRef(cube_iri)))

    @property
    def iri(self) -> str:
        return self.node.iri

    def name(self, lang: Optional[str] = None) -> Optional[str]:
        return _join(self.node.literals(SCHEMA.name, lang))

    def description(self, lang: Optional[str] = None) -> Optional[str]:
        return _join(self.node.literals(SCHEMA.description, lang))

    def display_name(self, lang: str = "de") -> Optional[str]:
        """Name in `lang`, then untagged, then the other site languages in order."""
        for candidate in [lang, None, *[l for l in LANGUAGES if l != lang]]:
            value = self.name(candidate)
            if value is not None:
                return value
        return None

    @property
    def date_published(self) -> Optional[date]:
        value = self.node.first(SCHEMA.datePublished)
        if value is None:
            return None
        py = value.toPython() if isinstance(value, Literal) else None
        if isinstance(py, datetime):
            return py.date()
        if isinstance(py, date):
            return py
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            return None

    @property
    def work_examples(self) -> List[str]:
        return self.node.values(SCHEMA.workExample)

    @property
    def dimensions(self) -> List[Dimension]:
        out: List[Dimension] = []
        for constraint in self.node.out(CUBE.observationConstraint):
            out.extend(Dimension(n) for n in constraint.out(SH.property))
        return out

    def iter_languages(self) -> Iterator[str]:
        for lang in LANGUAGES:
            if self.name(lang) is not None:
                yield lang


def is_blank(node: GraphNode) -> bool:
    return isinstance(node.term, BNode)
