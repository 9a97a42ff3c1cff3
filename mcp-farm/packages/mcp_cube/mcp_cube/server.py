# mcp-farm/packages/mcp_cube/mcp_cube/server.py
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
import orjson
from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP
from .cube_store import CubeStore, CubeConfig
from .errors import ConfigurationError, TransportError
from .playground import cube_check_command, observation_check_command, playground_url
from .profiles import PROFILES
from .rdf.describe import describe_node
from .report import ValidationReport, classify

load_dotenv()
app = FastMCP("cube-validator")
log = logging.getLogger(__name__)


def _json_safe(obj: Dict[str, Any]) -> Dict[str, Any]:
    # round-trip through orjson so every value the client sees is plain JSON
    return orjson.loads(orjson.dumps(obj, default=str))


def _report_payload(report: ValidationReport, with_link: bool) -> Dict[str, Any]:
    data = report.to_dict()
    groups = classify(report)
    data["cubeResults"] = [r.to_dict() for r in groups.cube_level]
    data["dimensionResults"] = [r.to_dict() for r in groups.dimension_level]
    if with_link:
        data["playgroundUrl"] = playground_url(report.shape_graph.graph, report.data_graph)
    return data


def _failure(exc: Exception) -> Dict[str, Any]:
    if isinstance(exc, ConfigurationError):
        return {"ok": False, "kind": "configuration", "error": str(exc), "status": exc.status, "url": exc.url}
    if isinstance(exc, TransportError):
        return {"ok": False, "kind": "transport", "error": str(exc), "status": exc.status, "url": exc.url}
    return {"ok": False, "kind": "invalid_request", "error": str(exc)}


@app.tool()
def cube_endpoint_online(endpoint: Optional[str] = None) -> Dict[str, Any]:
    cfg = CubeConfig(endpoint=endpoint) if endpoint else CubeConfig()
    with CubeStore(cfg) as store:
        return {"ok": True, "endpoint": cfg.endpoint, "online": store.is_online()}


@app.tool()
def cube_list(endpoint: Optional[str] = None, lang: str = "de") -> Dict[str, Any]:
    cfg = CubeConfig(endpoint=endpoint) if endpoint else CubeConfig()
    try:
        with CubeStore(cfg) as store:
            return _json_safe({"ok": True, "cubes": store.list_cubes(lang)})
    except TransportError as exc:
        return _failure(exc)


@app.tool()
def cube_profiles(cube_iri: str, endpoint: Optional[str] = None) -> Dict[str, Any]:
    """Profiles applicable to a cube; the default profile is always last."""
    cfg = CubeConfig(endpoint=endpoint) if endpoint else CubeConfig()
    try:
        with CubeStore(cfg) as store:
            meta = store.get_cube(cube_iri)
            available = store.resolver.get_available_profiles(meta)
            selected = store.resolver.resolve(meta)
    except (TransportError, ValueError) as exc:
        return _failure(exc)
    return {
        "ok": True,
        "selected": selected.key,
        "available": [{"key": p.key, "label": p.label, "shapeGraph": p.shape_graph_iri} for p in available],
        "configured": [p.key for p in PROFILES],
    }


@app.tool()
def cube_validate(cube_iri: str, endpoint: Optional[str] = None, profile: Optional[str] = None,
                  profile_url: Optional[str] = None, playground: bool = False) -> Dict[str, Any]:
    """Validate cube metadata and constraint against a profile (auto-selected when omitted)."""
    cfg = CubeConfig(endpoint=endpoint) if endpoint else CubeConfig()
    try:
        with CubeStore(cfg) as store:
            report, used = store.validate_cube(cube_iri, profile_key=profile, profile_url=profile_url)
            payload = _report_payload(report, playground)
    except (ConfigurationError, TransportError, ValueError) as exc:
        return _failure(exc)
    payload.update({"ok": True, "profile": used.key, "profileUrl": used.shape_graph_iri})
    return _json_safe(payload)


@app.tool()
def cube_validate_observations(cube_iri: str, endpoint: Optional[str] = None,
                               chunk_size: Optional[int] = None, max_pages: Optional[int] = None,
                               max_violations: Optional[int] = None, playground: bool = False) -> Dict[str, Any]:
    cfg = CubeConfig(endpoint=endpoint) if endpoint else CubeConfig()
    try:
        with CubeStore(cfg) as store:
            report = store.validate_observations(cube_iri, chunk_size, max_pages, max_violations)
            payload = _report_payload(report, playground)
    except (TransportError, ValueError) as exc:
        return _failure(exc)
    payload["ok"] = True
    return _json_safe(payload)


@app.tool()
def cube_describe(cube_iri: str, endpoint: Optional[str] = None, lang: str = "de") -> Dict[str, Any]:
    cfg = CubeConfig(endpoint=endpoint) if endpoint else CubeConfig()
    try:
        with CubeStore(cfg) as store:
            meta = store.get_cube(cube_iri)
    except (TransportError, ValueError) as exc:
        return _failure(exc)
    if not store.has_cube(meta):
        return {"ok": False, "kind": "not_found", "error": f"Cube not found: {cube_iri}"}
    return _json_safe({
        "ok": True,
        "iri": meta.iri,
        "name": meta.display_name(lang),
        "languages": list(meta.iter_languages()),
        "workExamples": meta.work_examples,
        "dimensions": [{"iri": d.iri, "path": d.path, "label": d.label} for d in meta.dimensions],
        "properties": describe_node(meta.node),
    })


@app.tool()
def cube_cli_command(cube_iri: str, endpoint: Optional[str] = None,
                     profile_url: Optional[str] = None) -> Dict[str, Any]:
    """barnard59 commands that reproduce the cube and observation checks."""
    cfg = CubeConfig(endpoint=endpoint) if endpoint else CubeConfig()
    return {
        "ok": True,
        "cube": cube_check_command(cfg.endpoint, cube_iri, profile_url),
        "observations": observation_check_command(cfg.endpoint, cube_iri),
    }


def main():
    logging.basicConfig(level=CubeConfig().log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run()


if __name__ == "__main__":
    main()
