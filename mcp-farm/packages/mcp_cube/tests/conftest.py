# packages/mcp_cube/tests/conftest.py
"""
Offline SPARQL endpoint for the pipeline tests.

LocalEndpoint answers the real query text with rdflib against an in-memory
store and serves profile documents from a dict, so SparqlClient runs
unchanged on top of FakeSession.
"""

from __future__ import annotations
import re
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from rdflib import Graph, Literal, Namespace, URIRef
from rdflib.namespace import RDF, SH, XSD

from mcp_cube.db.sparql_client import SparqlClient

CUBE = Namespace("https://cube.link/")
SCHEMA = Namespace("http://schema.org/")
EX = Namespace("https://example.org/")

ENDPOINT = "https://example.org/query"
CUBE_IRI = "https://example.org/cube/1"

_BIND_CUBE = re.compile(r"BIND\(<([^>]+)> AS \?cube\)")
_OFFSET = re.compile(r"OFFSET (\d+)")


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.text = text
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        import json
        return json.loads(self.text)


class LocalEndpoint:
    def __init__(self, store: Graph, documents: Optional[Dict[str, Tuple[int, str]]] = None):
        self.store = store
        self.documents = documents or {}
        self.queries: List[str] = []
        self.fail_when: Optional[Callable[[str], bool]] = None

    def page_queries(self) -> List[int]:
        return [int(m.group(1)) for q in self.queries if (m := _OFFSET.search(q))]

    def _describe(self, query: str) -> Graph:
        out = Graph()
        m = _BIND_CUBE.search(query)
        if not m:
            return out
        cube = URIRef(m.group(1))
        out += self.store.cbd(cube)
        for constraint in self.store.objects(cube, CUBE.observationConstraint):
            out += self.store.cbd(constraint)
            # published cubes nest property shapes as blank nodes, so a real
            # CBD carries them; the fixtures name them for easier asserts
            for prop in self.store.objects(constraint, SH.property):
                out += self.store.cbd(prop)
        return out

    def post(self, url, data=None, headers=None, timeout=None) -> FakeResponse:
        query = data["query"]
        self.queries.append(query)
        if self.fail_when is not None and self.fail_when(query):
            return FakeResponse(503, "Service Unavailable")
        accept = (headers or {}).get("Accept", "")
        if "sparql-results+json" in accept:
            body = self.store.query(query).serialize(format="json")
            return FakeResponse(200, body.decode("utf-8"), {"Content-Type": "application/sparql-results+json"})
        if "DESCRIBE" in query:
            graph = self._describe(query)
        else:
            graph = self.store.query(query).graph
        return FakeResponse(200, graph.serialize(format="turtle"), {"Content-Type": "text/turtle"})

    def get(self, url, headers=None, timeout=None) -> FakeResponse:
        status, text = self.documents.get(url, (404, "Not Found"))
        return FakeResponse(status, text, {"Content-Type": "text/turtle"})


class FakeSession:
    def __init__(self, endpoint: LocalEndpoint):
        self.endpoint = endpoint
        self.closed = False

    def post(self, url, **kw):
        return self.endpoint.post(url, **kw)

    def get(self, url, **kw):
        return self.endpoint.get(url, **kw)

    def close(self):
        self.closed = True


def build_cube(n_observations: int, bad: Callable[[int], bool] = lambda i: False,
               with_constraint: bool = True, cube_iri: str = CUBE_IRI) -> Graph:
    """A cube whose observations carry ex:value; bad(i) makes observation i non-decimal."""
    g = Graph()
    cube = URIRef(cube_iri)
    obs_set = URIRef(f"{cube_iri}/observation/")
    g.add((cube, RDF.type, CUBE.Cube))
    g.add((cube, SCHEMA.name, Literal("Test cube", lang="en")))
    g.add((cube, CUBE.observationSet, obs_set))
    g.add((obs_set, RDF.type, CUBE.ObservationSet))
    if with_constraint:
        constraint = URIRef(f"{cube_iri}/shape/")
        g.add((cube, CUBE.observationConstraint, constraint))
        g.add((constraint, RDF.type, CUBE.Constraint))
        g.add((constraint, RDF.type, SH.NodeShape))
        prop = URIRef(f"{cube_iri}/shape/value")
        g.add((constraint, SH.property, prop))
        g.add((prop, SH.path, EX.value))
        g.add((prop, SH.datatype, XSD.decimal))
        g.add((prop, SH.minCount, Literal(1)))
        g.add((prop, SH.maxCount, Literal(1)))
    for i in range(n_observations):
        obs = URIRef(f"{cube_iri}/observation/{i:04d}")
        g.add((obs_set, CUBE.observation, obs))
        g.add((obs, RDF.type, CUBE.Observation))
        if bad(i):
            g.add((obs, EX.value, Literal("not a number")))
        else:
            g.add((obs, EX.value, Literal(str(i), datatype=XSD.decimal)))
    return g


def make_client(endpoint: LocalEndpoint) -> SparqlClient:
    return SparqlClient(ENDPOINT, timeout=5, session=FakeSession(endpoint))


@pytest.fixture
def local_endpoint():
    def _make(store: Graph, documents: Optional[Dict[str, Tuple[int, str]]] = None) -> LocalEndpoint:
        return LocalEndpoint(store, documents)
    return _make
