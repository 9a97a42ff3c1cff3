# mcp-farm/packages/mcp_cube/mcp_cube/queries.py
from __future__ import annotations
import re

LIVENESS_SELECT = "SELECT * WHERE { ?s ?p ?o } LIMIT 1"

_BAD_IRI = re.compile(r'[<>"{}|\\^`\s]')


def _iri(value: str) -> str:
    if not value or _BAD_IRI.search(value):
        raise ValueError(f"Not a usable IRI: {value!r}")
    return f"<{value}>"


CONSTRUCT_CUBE_ITEMS = """
PREFIX cube: <https://cube.link/>
PREFIX schema: <http://schema.org/>
PREFIX rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#>

CONSTRUCT {
  ?cube ?p ?o .
} WHERE {
  {
    SELECT ?cube WHERE {
      ?cube a cube:Cube .
      FILTER NOT EXISTS { ?cube schema:expires ?expires }
    }
  }
  VALUES ?p {
    rdf:type
    schema:name
    schema:description
    schema:datePublished
  }
  ?cube ?p ?o .
}
"""


def cube_shape_graph(cube_iri: str) -> str:
    """Concise bounded description of the cube and its observationConstraint."""
    return f"""
#pragma describe.strategy cbd

PREFIX cube: <https://cube.link/>

DESCRIBE ?s ?cube
WHERE {{
  BIND({_iri(cube_iri)} AS ?cube)
  OPTIONAL {{
    ?cube cube:observationConstraint ?s .
  }}
}}
"""


def one_observation(cube_iri: str) -> str:
    cube = _iri(cube_iri)
    return f"""
PREFIX cube: <https://cube.link/>

CONSTRUCT {{
  {cube} cube:observationSet ?set .
  ?set cube:observation ?s .
  ?s ?p ?o .
}}
WHERE {{
  {{
    SELECT ?set WHERE {{
      {cube} cube:observationSet ?set .
    }} LIMIT 1
  }}
  {{
    SELECT ?s WHERE {{
      {cube} cube:observationSet/cube:observation ?s .
    }} LIMIT 1
  }}
  ?s ?p ?o .
}}
"""


def observation_page(cube_iri: str, page: int, chunk_size: int) -> str:
    return f"""
PREFIX cube: <https://cube.link/>

CONSTRUCT {{
  ?observation ?p ?o .
}} WHERE {{
  {{
    SELECT ?observation WHERE {{
      {_iri(cube_iri)} cube:observationSet/cube:observation ?observation .
    }} ORDER BY ?observation LIMIT {int(chunk_size)} OFFSET {int(page) * int(chunk_size)}
  }}
  ?observation ?p ?o .
}}
"""
