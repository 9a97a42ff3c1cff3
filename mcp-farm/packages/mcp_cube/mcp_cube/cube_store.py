# mcp-farm/packages/mcp_cube/mcp_cube/cube_store.py
from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from dotenv import load_dotenv
from rdflib import URIRef

from mcp_common.uri import CubeReference

from .cube_level import CubeLevelValidator
from .db.sparql_client import DEFAULT_USER_AGENT, SparqlClient
from .fetcher import ChunkedFetcher
from .incremental import CancelToken, IncrementalValidator
from .profiles import ProfileResolver, ValidationProfile, get_profile, manual_profile
from .queries import CONSTRUCT_CUBE_ITEMS
from .rdf.graph_node import CubeMetadata
from .rdf.namespaces import CUBE, RDF
from .report import ValidationReport
from .shapes import ShapeGraphLoader

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


@dataclass
class CubeConfig:
    endpoint: str = field(default_factory=lambda: os.getenv("CUBE_SPARQL_ENDPOINT", "https://lindas.admin.ch/query"))
    timeout: float = field(default_factory=lambda: float(os.getenv("CUBE_HTTP_TIMEOUT", "60")))
    chunk_size: int = field(default_factory=lambda: _env_int("CUBE_CHUNK_SIZE", 10))
    max_pages: int = field(default_factory=lambda: _env_int("CUBE_MAX_PAGES", 10))
    max_violations: int = field(default_factory=lambda: _env_int("CUBE_MAX_VIOLATIONS", 20))
    partial_on_error: bool = field(default_factory=lambda: _env_bool("CUBE_PARTIAL_ON_ERROR"))
    prefetch: bool = field(default_factory=lambda: _env_bool("CUBE_PREFETCH"))
    user_agent: str = field(default_factory=lambda: os.getenv("CUBE_USER_AGENT", DEFAULT_USER_AGENT))
    log_level: str = field(default_factory=lambda: os.getenv("CUBE_LOG_LEVEL", "INFO"))


class CubeStore:
    """Wires transport, loaders and validators for one endpoint."""

    def __init__(self, cfg: Optional[CubeConfig] = None, client: Optional[SparqlClient] = None):
        self.cfg = cfg or CubeConfig()
        self._client = client
        self.resolver = ProfileResolver()

    # ---------------- Transport ----------------
    def _ensure_client(self) -> SparqlClient:
        if self._client is None:
            self._client = SparqlClient(self.cfg.endpoint, timeout=self.cfg.timeout, user_agent=self.cfg.user_agent)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "CubeStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def reference(self, cube_iri: str) -> CubeReference:
        return CubeReference(endpoint_url=self.cfg.endpoint, cube_iri=cube_iri)

    def _loader(self) -> ShapeGraphLoader:
        return ShapeGraphLoader(self._ensure_client())

    def _fetcher(self) -> ChunkedFetcher:
        return ChunkedFetcher(self._ensure_client())

    # ---------------- Cubes ----------------
    def is_online(self) -> bool:
        return self._ensure_client().is_online()

    def list_cubes(self, lang: str = "de") -> List[Dict[str, Any]]:
        g = self._ensure_client().construct(CONSTRUCT_CUBE_ITEMS).graph
        out = []
        for s in sorted(set(g.subjects(RDF.type, CUBE.Cube))):
            meta = CubeMetadata.from_graph(g, str(s))
            published = meta.date_published
            out.append({
                "iri": meta.iri,
                "name": meta.display_name(lang),
                "description": meta.description(lang) or meta.description(),
                "datePublished": published.isoformat() if published else None,
            })
        return out

    def get_cube(self, cube_iri: str) -> CubeMetadata:
        g = self._loader().load_cube_description(self.reference(cube_iri))
        return CubeMetadata.from_graph(g, cube_iri)

    def has_cube(self, meta: CubeMetadata) -> bool:
        return (URIRef(meta.iri), None, None) in meta.node.graph

    # ---------------- Profiles ----------------
    def available_profiles(self, cube_iri: str) -> List[ValidationProfile]:
        return self.resolver.get_available_profiles(self.get_cube(cube_iri))

    def select_profile(self, cube_iri: str, profile_key: Optional[str] = None,
                       profile_url: Optional[str] = None) -> ValidationProfile:
        if profile_url:
            return manual_profile(profile_url)
        if profile_key:
            profile = get_profile(profile_key)
            if profile is None:
                raise ValueError(f"Unknown profile key: {profile_key}")
            return profile
        return self.resolver.resolve(self.get_cube(cube_iri))

    # ---------------- Validation ----------------
    def validate_cube(self, cube_iri: str, profile_key: Optional[str] = None,
                      profile_url: Optional[str] = None) -> Tuple[ValidationReport, ValidationProfile]:
        profile = self.select_profile(cube_iri, profile_key, profile_url)
        validator = CubeLevelValidator(self._loader(), self._fetcher())
        return validator.validate_cube(self.reference(cube_iri), profile), profile

    def validate_observations(self, cube_iri: str, chunk_size: Optional[int] = None,
                              max_pages: Optional[int] = None, max_violations: Optional[int] = None,
                              cancel: Optional[CancelToken] = None) -> ValidationReport:
        validator = IncrementalValidator(
            self._loader(), self._fetcher(),
            partial_on_error=self.cfg.partial_on_error, prefetch=self.cfg.prefetch,
        )
        return validator.validate_observations(
            self.reference(cube_iri),
            chunk_size=chunk_size if chunk_size is not None else self.cfg.chunk_size,
            max_pages=max_pages if max_pages is not None else self.cfg.max_pages,
            max_violations=max_violations if max_violations is not None else self.cfg.max_violations,
            cancel=cancel,
        )
