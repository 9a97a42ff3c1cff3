# mcp-farm/packages/mcp_cube/mcp_cube/playground.py
from __future__ import annotations
import urllib.parse
from typing import Optional

from rdflib import Graph

PLAYGROUND_BASE = "https://shacl-playground.zazuko.com/"


def playground_url(shape_graph: Graph, data_graph: Graph, base: str = PLAYGROUND_BASE) -> str:
    """Shareable SHACL playground link carrying both graphs as Turtle in the fragment."""
    fragment = urllib.parse.urlencode({
        "page": "0",
        "shapesGraph": shape_graph.serialize(format="turtle"),
        "shapesGraphFormat": "text/turtle",
        "dataGraph": data_graph.serialize(format="turtle"),
        "dataGraphFormat": "text/turtle",
    }, quote_via=urllib.parse.quote)
    return f"{base}#{fragment}"


def _quotable(*values: Optional[str]) -> bool:
    return all(v and '"' not in v for v in values)


def cube_check_command(endpoint: str, cube_iri: str, profile_url: Optional[str]) -> Optional[str]:
    """barnard59 pipeline reproducing the cube-level check outside the server."""
    if not _quotable(endpoint, cube_iri, profile_url):
        return None
    return (
        f'npx barnard59 cube fetch-metadata --endpoint "{endpoint}" --cube "{cube_iri}"'
        f' | npx barnard59 cube check-metadata --profile "{profile_url}"'
        f" | npx barnard59 shacl report-summary"
    )


def observation_check_command(endpoint: str, cube_iri: str) -> Optional[str]:
    if not _quotable(endpoint, cube_iri):
        return None
    return (
        f'npx barnard59 cube fetch-metadata --endpoint "{endpoint}" --cube "{cube_iri}" > metadata.ttl\n'
        f'npx barnard59 cube fetch-observations --endpoint "{endpoint}" --cube "{cube_iri}"'
        f" | npx barnard59 cube check-observations --constraint metadata.ttl"
        f" | npx barnard59 shacl report-summary"
    )
