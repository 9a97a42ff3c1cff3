# mcp-farm/packages/mcp_cube/mcp_cube/shapes.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

from rdflib import Graph
from rdflib.compare import to_canonical_graph

from mcp_common.uri import CubeReference

from .db.sparql_client import SparqlClient
from .profiles import ValidationProfile
from .queries import cube_shape_graph
from .rdf.namespaces import CODE, CUBE, OWL, RDF, SH

log = logging.getLogger(__name__)

IMPORT_PREDICATES = (OWL.imports, CODE.imports)


def canonical_text(graph: Graph) -> str:
    """Sorted N-Triples of the canonicalized graph (stable blank node labels)."""
    nt = to_canonical_graph(graph).serialize(format="nt")
    lines = sorted(line for line in nt.splitlines() if line.strip())
    return "\n".join(lines) + ("\n" if lines else "")


@dataclass
class ShapeGraph:
    graph: Graph
    serialized: str

    @classmethod
    def from_graph(cls, graph: Graph) -> "ShapeGraph":
        return cls(graph=graph, serialized=canonical_text(graph))

    def __len__(self) -> int:
        return len(self.graph)


def resolve_imports(graph: Graph, fetch: Callable[[str], Graph], seen: Optional[Set[str]] = None) -> Graph:
    """Merge every owl:imports / code:imports target into `graph`, recursively.

    The import statements themselves are dropped so the result is one flat
    shape graph. Each document is fetched at most once.
    """
    seen = seen if seen is not None else set()
    pending = [(s, p, o) for p in IMPORT_PREDICATES for s, o in graph.subject_objects(p)]
    for s, p, o in pending:
        graph.remove((s, p, o))
        url = str(o)
        if url in seen:
            continue
        seen.add(url)
        log.debug("resolving graph import %s", url)
        imported = fetch(url)
        resolve_imports(imported, fetch, seen)
        graph += imported
    return graph


def inject_target_class(graph: Graph) -> bool:
    """Assert sh:targetClass cube:Observation on every cube:Constraint node.

    Upstream constraints omit the target; without it a SHACL engine would
    test every resource in the data graph. Returns False when the graph has
    no constraint node. Adding an existing triple is a no-op, so calling
    this twice leaves a single sh:targetClass triple.
    """
    constraints = list(graph.subjects(RDF.type, CUBE.Constraint))
    if not constraints:
        log.warning(
            "could not find a constraint. The cube does not have a constraint; "
            "this is not a mistake but the cube is not validated against a constraint."
        )
        return False
    for node in constraints:
        graph.add((node, SH.targetClass, CUBE.Observation))
    return True


class ShapeGraphLoader:
    def __init__(self, client: SparqlClient):
        self.client = client

    def _fetch_graph(self, url: str) -> Graph:
        return self.client.fetch_document(url).graph

    def load_for_profile(self, profile: ValidationProfile) -> ShapeGraph:
        """Fetch the profile's shape document and collapse its imports.

        Raises ConfigurationError (with the HTTP status) when the document or
        any of its imports cannot be retrieved.
        """
        doc = self.client.fetch_document(profile.shape_graph_iri)
        graph = resolve_imports(doc.graph, self._fetch_graph, {profile.shape_graph_iri})
        log.info("loaded profile %s (%d triples)", profile.key, len(graph))
        return ShapeGraph.from_graph(graph)

    def load_for_observation_constraint(self, cube: CubeReference) -> ShapeGraph:
        res = self.client.construct(cube_shape_graph(cube.cube_iri))
        graph = Graph()
        graph += res.graph
        inject_target_class(graph)
        return ShapeGraph.from_graph(graph)

    def load_cube_description(self, cube: CubeReference) -> Graph:
        """The cube node plus its observationConstraint, untouched."""
        return self.client.construct(cube_shape_graph(cube.cube_iri)).graph
