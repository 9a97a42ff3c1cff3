# mcp-farm/packages/mcp_cube/mcp_cube/report.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set

from rdflib import Graph, Literal, URIRef
from rdflib.term import Node

from .rdf.graph_node import Dimension, GraphNode
from .rdf.namespaces import CUBE, RDF, SH
from .shapes import ShapeGraph
from .validators.shacl import EngineResult

log = logging.getLogger(__name__)

SEVERITY_MAP: Mapping[URIRef, str] = MappingProxyType({
    SH.Info: "informational",
    SH.Warning: "warning",
    SH.Violation: "error",
})
UNKNOWN_SEVERITY = "unknown"


def severity_label(severity: Optional[Node]) -> str:
    # never fall back to "error": a missing severity is not a violation
    if severity is None:
        return UNKNOWN_SEVERITY
    return SEVERITY_MAP.get(severity, UNKNOWN_SEVERITY)


def _term_text(term: Optional[Node]) -> Optional[str]:
    return None if term is None else str(term)


@dataclass
class ValidationResult:
    node: Node
    focus_node: Optional[Node]
    severity: Optional[Node]
    result_path: Optional[Node]
    source_shape: Optional[Node]
    message: str
    value: Optional[Node] = None
    source_constraint_component: Optional[Node] = None
    detail: List["ValidationResult"] = field(default_factory=list)
    is_detail: bool = False

    @classmethod
    def from_node(cls, node: GraphNode, is_detail: bool = False,
                  _seen: Optional[Set[Node]] = None) -> "ValidationResult":
        seen = (_seen or set()) | {node.term}
        detail = [
            cls.from_node(d, is_detail=True, _seen=seen)
            for d in node.out(SH.detail)
            if d.term not in seen
        ]
        return cls(
            node=node.term,
            focus_node=node.first(SH.focusNode),
            severity=node.first(SH.resultSeverity),
            result_path=node.first(SH.resultPath),
            source_shape=node.first(SH.sourceShape),
            message=" ".join(node.values(SH.resultMessage)),
            value=node.first(SH.value),
            source_constraint_component=node.first(SH.sourceConstraintComponent),
            detail=detail,
            is_detail=is_detail,
        )

    @property
    def severity_label(self) -> str:
        return severity_label(self.severity)

    @property
    def dimension_node(self) -> Optional[Node]:
        # a detail describes a related property shape failing on its own, so
        # the dimension is its focus node; for the parent it is the value
        return self.focus_node if self.is_detail else self.value

    def dimension(self, graph: Graph) -> Optional[Dimension]:
        term = self.dimension_node
        if term is None or isinstance(term, Literal):
            return None
        return Dimension(GraphNode(graph, term))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focusNode": _term_text(self.focus_node),
            "severity": self.severity_label,
            "resultPath": _term_text(self.result_path),
            "sourceShape": _term_text(self.source_shape),
            "sourceConstraintComponent": _term_text(self.source_constraint_component),
            "message": self.message,
            "value": _term_text(self.value),
            "detail": [d.to_dict() for d in self.detail],
        }


def parse_results(results_graph: Graph) -> List[ValidationResult]:
    """Top-level results of a SHACL report graph (those linked by sh:result)."""
    reports = list(results_graph.subjects(RDF.type, SH.ValidationReport))
    if reports:
        nodes: List[Node] = []
        for report in reports:
            nodes.extend(results_graph.objects(report, SH.result))
    else:
        details = set(results_graph.objects(None, SH.detail))
        nodes = [n for n in results_graph.subjects(RDF.type, SH.ValidationResult) if n not in details]
    return [ValidationResult.from_node(GraphNode(results_graph, n)) for n in nodes]


@dataclass
class ValidationReport:
    violations: List[ValidationResult]
    shape_graph: ShapeGraph
    data_graph: Graph
    results_graph: Graph
    pages_fetched: int = 0
    termination: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def conforms(self) -> bool:
        return not self.violations

    def to_dict(self, include_graphs: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "conforms": self.conforms,
            "violationCount": len(self.violations),
            "violations": [v.to_dict() for v in self.violations],
            "pagesFetched": self.pages_fetched,
            "termination": self.termination,
            "warnings": list(self.warnings),
        }
        if include_graphs:
            out["shapeGraph"] = self.shape_graph.serialized
            out["dataGraph"] = self.data_graph.serialize(format="turtle")
        return out


class ReportAggregator:
    """Accumulates engine output window by window into one report."""

    def __init__(self, shape_graph: ShapeGraph):
        self.shape_graph = shape_graph
        self.data_graph = Graph()
        self.results_graph = Graph()
        self.violations: List[ValidationResult] = []

    def add(self, data_graph: Graph, result: EngineResult) -> List[ValidationResult]:
        self.data_graph += data_graph
        self.results_graph += result.results_graph
        page = parse_results(result.results_graph)
        self.violations.extend(page)
        return page

    def build(self, pages_fetched: int = 0, termination: Optional[str] = None,
              warnings: Optional[List[str]] = None) -> ValidationReport:
        return ValidationReport(
            violations=list(self.violations),
            shape_graph=self.shape_graph,
            data_graph=self.data_graph,
            results_graph=self.results_graph,
            pages_fetched=pages_fetched,
            termination=termination,
            warnings=list(warnings or []),
        )


# ---------------- Classification ----------------

def _is_about_cube(lookup: Graph, result: ValidationResult) -> bool:
    return result.focus_node is not None and (result.focus_node, RDF.type, CUBE.Cube) in lookup


def _is_about_dimensions(lookup: Graph, result: ValidationResult) -> bool:
    focus = result.focus_node
    if focus is None:
        return False
    if (focus, RDF.type, CUBE.Constraint) in lookup:
        return True
    return any((s, RDF.type, CUBE.Constraint) in lookup for s in lookup.subjects(SH.property, focus))


@dataclass
class Classification:
    cube_level: List[ValidationResult]
    dimension_level: List[ValidationResult]
    lookup: Graph

    def dimension_rows(self) -> Iterator[ValidationResult]:
        """Dimension results followed by their own dimension-level details."""
        for result in self.dimension_level:
            yield result
            for d in result.detail:
                if _is_about_dimensions(self.lookup, d):
                    yield d


def classify(report: ValidationReport) -> Classification:
    """Split results into cube-level and dimension-level groups.

    Cube-level: focus node typed cube:Cube, including matching sh:detail
    results. Dimension-level: focus node typed cube:Constraint or attached
    to one via sh:property; results that are another result's detail are
    only reported nested. A result never lands in both groups.
    """
    lookup = Graph()
    lookup += report.data_graph
    lookup += report.results_graph

    candidates = [
        ValidationResult.from_node(GraphNode(report.results_graph, n))
        for n in dict.fromkeys(report.results_graph.subjects(RDF.type, SH.ValidationResult))
    ]
    detail_nodes = {d.node for r in candidates for d in r.detail}

    cube_level: List[ValidationResult] = []
    seen: Set[Node] = set()
    for r in candidates:
        if r.node not in detail_nodes and _is_about_cube(lookup, r):
            cube_level.append(r)
            seen.add(r.node)
    for r in candidates:
        for d in r.detail:
            if d.node not in seen and _is_about_cube(lookup, d):
                cube_level.append(d)
                seen.add(d.node)

    dimension_level = [
        r for r in candidates
        if r.node not in detail_nodes and r.node not in seen and _is_about_dimensions(lookup, r)
    ]
    return Classification(cube_level=cube_level, dimension_level=dimension_level, lookup=lookup)
