# packages/mcp_cube/tests/test_report.py
from rdflib import Graph, Literal, URIRef
from rdflib.namespace import RDF, SH

from mcp_cube.report import ReportAggregator, ValidationReport, classify, parse_results, severity_label
from mcp_cube.shapes import ShapeGraph
from mcp_cube.validators.shacl import EngineResult

from conftest import CUBE, CUBE_IRI, EX, build_cube

CUBE_NODE = URIRef(CUBE_IRI)
CONSTRAINT = URIRef(f"{CUBE_IRI}/shape/")
PROP = URIRef(f"{CUBE_IRI}/shape/value")


def _result(g, node, focus, severity=SH.Violation, message="", value=None, details=()):
    g.add((node, RDF.type, SH.ValidationResult))
    g.add((node, SH.focusNode, focus))
    if severity is not None:
        g.add((node, SH.resultSeverity, severity))
    if message:
        g.add((node, SH.resultMessage, Literal(message)))
    if value is not None:
        g.add((node, SH.value, value))
    for d in details:
        g.add((node, SH.detail, d))


def _results_graph():
    g = Graph()
    report = EX.report
    g.add((report, RDF.type, SH.ValidationReport))
    g.add((report, SH.conforms, Literal(False)))
    _result(g, EX.r1, CUBE_NODE, SH.Warning, "missing datePublished", details=[EX.d1])
    _result(g, EX.d1, EX.elsewhere, SH.Warning)
    _result(g, EX.r2, CONSTRAINT, SH.Violation, "bad dimension", value=PROP, details=[EX.d2])
    _result(g, EX.d2, PROP, SH.Violation, "missing sh:datatype")
    _result(g, EX.r3, PROP, severity=None, message="no severity")
    _result(g, EX.r4, EX.elsewhere, SH.Info, details=[EX.d3])
    _result(g, EX.d3, CUBE_NODE, SH.Info, "about the cube, nested")
    _result(g, EX.r5, EX.both, SH.Violation)
    for r in (EX.r1, EX.r2, EX.r3, EX.r4, EX.r5):
        g.add((report, SH.result, r))
    return g


def _report(results_graph, data_graph):
    violations = parse_results(results_graph)
    return ValidationReport(violations, ShapeGraph.from_graph(Graph()), data_graph, results_graph)


def _data_graph():
    g = build_cube(0)
    g.add((EX.both, RDF.type, CUBE.Cube))
    g.add((EX.both, RDF.type, CUBE.Constraint))
    return g


def test_severity_mapping():
    assert severity_label(SH.Info) == "informational"
    assert severity_label(SH.Warning) == "warning"
    assert severity_label(SH.Violation) == "error"
    assert severity_label(None) == "unknown"
    assert severity_label(EX.custom) == "unknown"


def test_parse_results_skips_details_at_top_level():
    results = parse_results(_results_graph())
    assert {r.node for r in results} == {EX.r1, EX.r2, EX.r3, EX.r4, EX.r5}
    r2 = next(r for r in results if r.node == EX.r2)
    assert [d.node for d in r2.detail] == [EX.d2]
    assert r2.detail[0].is_detail


def test_parse_results_without_report_node():
    g = _results_graph()
    g.remove((EX.report, None, None))
    assert {r.node for r in parse_results(g)} == {EX.r1, EX.r2, EX.r3, EX.r4, EX.r5}


def test_classification_groups_are_disjoint():
    groups = classify(_report(_results_graph(), _data_graph()))
    cube = {r.node for r in groups.cube_level}
    dims = {r.node for r in groups.dimension_level}

    assert cube == {EX.r1, EX.d3, EX.r5}
    assert dims == {EX.r2, EX.r3}
    assert not cube & dims


def test_details_are_only_reported_nested():
    groups = classify(_report(_results_graph(), _data_graph()))
    assert EX.d2 not in {r.node for r in groups.dimension_level}
    rows = [r.node for r in groups.dimension_rows()]
    assert rows.index(EX.d2) == rows.index(EX.r2) + 1


def test_missing_severity_is_unknown_not_error():
    groups = classify(_report(_results_graph(), _data_graph()))
    r3 = next(r for r in groups.dimension_level if r.node == EX.r3)
    assert r3.severity_label == "unknown"
    assert r3.to_dict()["severity"] == "unknown"


def test_dimension_node_of_parent_and_detail():
    groups = classify(_report(_results_graph(), _data_graph()))
    r2 = next(r for r in groups.dimension_level if r.node == EX.r2)
    assert r2.dimension_node == PROP
    assert r2.detail[0].dimension_node == PROP
    assert r2.dimension(_data_graph()).path == str(EX.value)


def test_type_lookup_uses_results_graph_too():
    # the cube's type only appears in the results graph
    results = _results_graph()
    results.add((CUBE_NODE, RDF.type, CUBE.Cube))
    groups = classify(_report(results, Graph()))
    assert EX.r1 in {r.node for r in groups.cube_level}


def test_aggregator_unions_windows():
    shape = ShapeGraph.from_graph(Graph())
    agg = ReportAggregator(shape)
    first = Graph()
    _result(first, EX.a, EX.o1)
    second = Graph()
    _result(second, EX.b, EX.o2)
    agg.add(build_cube(2), EngineResult(False, first, ""))
    agg.add(build_cube(3), EngineResult(False, second, ""))

    report = agg.build(pages_fetched=2, termination="exhausted")
    assert [v.node for v in report.violations] == [EX.a, EX.b]
    assert len(set(report.data_graph.subjects(RDF.type, CUBE.Observation))) == 3
    assert report.to_dict()["violationCount"] == 2
    assert report.conforms is False
    assert "shapeGraph" in report.to_dict(include_graphs=True)
