# mcp-farm/packages/mcp_cube/mcp_cube/fetcher.py
from __future__ import annotations
import logging

from rdflib import Graph

from mcp_common.uri import CubeReference

from .db.sparql_client import SparqlClient
from .queries import observation_page, one_observation

log = logging.getLogger(__name__)


class ChunkedFetcher:
    """Windowed reads of a cube's observations. Keeps no state between calls."""

    def __init__(self, client: SparqlClient):
        self.client = client

    def fetch_page(self, cube: CubeReference, page_index: int, chunk_size: int) -> Graph:
        """Triples of observations [page_index*chunk_size, +chunk_size).

        A window past the end of the data yields an empty graph, not an error.
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        if page_index < 0:
            raise ValueError(f"page_index must be >= 0, got {page_index}")
        res = self.client.construct(observation_page(cube.cube_iri, page_index, chunk_size))
        log.debug("page %d of %s: %d triples", page_index, cube.cube_iri, len(res.graph))
        return res.graph

    def fetch_one_observation(self, cube: CubeReference) -> Graph:
        return self.client.construct(one_observation(cube.cube_iri)).graph
