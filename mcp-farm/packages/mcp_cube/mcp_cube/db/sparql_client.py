# mcp-farm/packages/mcp_cube/mcp_cube/db/sparql_client.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from rdflib import Graph

from ..errors import ConfigurationError, RdfParseError, TransportError
from ..queries import LIVENESS_SELECT

log = logging.getLogger(__name__)

TURTLE = "text/turtle"
SPARQL_JSON = "application/sparql-results+json"
# profile documents are served as static files; accept the usual RDF syntaxes
RDF_DOCUMENT_ACCEPT = "text/turtle, application/n-triples;q=0.9, application/ld+json;q=0.8, application/rdf+xml;q=0.7"

_FORMATS = {
    "text/turtle": "turtle",
    "application/x-turtle": "turtle",
    "application/n-triples": "nt",
    "application/ld+json": "json-ld",
    "application/rdf+xml": "xml",
}

DEFAULT_USER_AGENT = "CubeValidatorMCP/0.1 (+contact)"


@dataclass
class GraphResult:
    graph: Graph
    serialized: str


def _rdf_format(content_type: str, url: str = "") -> str:
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype in _FORMATS:
        return _FORMATS[ctype]
    lowered = url.lower()
    if lowered.endswith(".nt"):
        return "nt"
    if lowered.endswith(".jsonld") or lowered.endswith(".json"):
        return "json-ld"
    if lowered.endswith(".rdf") or lowered.endswith(".owl"):
        return "xml"
    return "turtle"


def parse_graph(text: str, fmt: str = "turtle", url: Optional[str] = None) -> Graph:
    g = Graph()
    if not text.strip():
        return g
    try:
        g.parse(data=text, format=fmt, publicID=url)
    except Exception as exc:  # rdflib raises a zoo of parser exceptions
        raise RdfParseError(f"Failed to parse {fmt} response: {exc}", url=url) from exc
    return g


class SparqlClient:
    """Thin SPARQL protocol client over a requests.Session.

    One client per validation run; closing it closes the session so no
    connection outlives the run.
    """

    def __init__(self, endpoint_url: str, timeout: float = 60.0,
                 user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[requests.Session] = None):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = session or requests.Session()

    def __enter__(self) -> "SparqlClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    # ---------------- Queries ----------------
    def _post(self, query: str, accept: str) -> requests.Response:
        try:
            r = self._session.post(
                self.endpoint_url,
                data={"query": query},
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": accept,
                    "User-Agent": self.user_agent,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"SPARQL request to {self.endpoint_url} failed: {exc}",
                                 url=self.endpoint_url) from exc
        if not r.ok:
            msg = f"SPARQL query failed [{r.status_code}] at {self.endpoint_url}\n--- RESPONSE ---\n{r.text[:2000]}"
            raise TransportError(msg, url=self.endpoint_url, status=r.status_code)
        return r

    def construct(self, query: str) -> GraphResult:
        """CONSTRUCT/DESCRIBE query; the endpoint answers with Turtle."""
        r = self._post(query, TURTLE)
        text = r.text
        graph = parse_graph(text, _rdf_format(r.headers.get("Content-Type", TURTLE)), url=self.endpoint_url)
        log.debug("construct returned %d triples", len(graph))
        return GraphResult(graph=graph, serialized=text)

    def select(self, query: str) -> Dict[str, Any]:
        r = self._post(query, SPARQL_JSON)
        try:
            return r.json()
        except ValueError as exc:
            raise RdfParseError(f"Invalid SPARQL JSON results: {exc}", url=self.endpoint_url) from exc

    def is_online(self) -> bool:
        try:
            res = self.select(LIVENESS_SELECT)
        except TransportError as exc:
            log.warning("endpoint %s not reachable: %s", self.endpoint_url, exc)
            return False
        return len(res.get("results", {}).get("bindings", [])) > 0

    # ---------------- Documents ----------------
    def fetch_document(self, url: str) -> GraphResult:
        """GET an RDF document (profile / shape graph).

        Failures here are configuration problems, so they raise
        ConfigurationError with the HTTP status attached.
        """
        try:
            r = self._session.get(
                url,
                headers={"Accept": RDF_DOCUMENT_ACCEPT, "User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ConfigurationError(f"Failed to fetch profile {url}: {exc}", url=url) from exc
        if not r.ok:
            raise ConfigurationError(f"Failed to fetch profile: {r.status_code}", url=url, status=r.status_code)
        text = r.text
        try:
            graph = parse_graph(text, _rdf_format(r.headers.get("Content-Type", ""), url), url=url)
        except RdfParseError as exc:
            raise ConfigurationError(f"Profile {url} is not parseable RDF: {exc}", url=url,
                                     status=r.status_code) from exc
        return GraphResult(graph=graph, serialized=text)
