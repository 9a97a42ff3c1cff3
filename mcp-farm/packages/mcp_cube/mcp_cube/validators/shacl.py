# mcp-farm/packages/mcp_cube/mcp_cube/validators/shacl.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
from rdflib import BNode, Graph, Literal
from rdflib.namespace import RDF, SH
from pyshacl import validate


@dataclass
class EngineResult:
    conforms: bool
    results_graph: Graph
    report_text: str


def _empty_report() -> Tuple[Graph, str]:
    g = Graph()
    report = BNode()
    g.add((report, RDF.type, SH.ValidationReport))
    g.add((report, SH.conforms, Literal(True)))
    return g, "Validation Report\nConforms: True\n"


def run_shacl(shape_graph: Graph, data_graph: Graph) -> EngineResult:
    if len(shape_graph) == 0:
        # nothing to check against; still a real (vacuously conforming) run
        g, text = _empty_report()
        return EngineResult(True, g, text)
    # The shape graph is only read; pyshacl copies what it needs, so one
    # instance can be reused across every page of a run.
    conforms, results_graph, report_text = validate(
        data_graph=data_graph,
        shacl_graph=shape_graph,
        inference="none",
        abort_on_first=False,
        allow_warnings=False,
        meta_shacl=False,
        advanced=True,
        debug=False,
    )
    return EngineResult(bool(conforms), results_graph, str(report_text))


def run_shacl_ttl(data_graph_ttl: str, shapes_ttl: str) -> Tuple[bool, str]:
    data_g = Graph()
    data_g.parse(data=data_graph_ttl, format="turtle")
    shapes_g = Graph()
    shapes_g.parse(data=shapes_ttl, format="turtle")
    res = run_shacl(shapes_g, data_g)
    return res.conforms, res.report_text
