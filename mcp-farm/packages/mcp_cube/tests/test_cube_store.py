# packages/mcp_cube/tests/test_cube_store.py
import pytest

from mcp_cube.cube_store import CubeConfig, CubeStore
from mcp_cube.db.sparql_client import DEFAULT_USER_AGENT

from conftest import CUBE_IRI, ENDPOINT, build_cube, make_client


def test_user_agent_is_read_when_config_is_built(monkeypatch):
    monkeypatch.delenv("CUBE_USER_AGENT", raising=False)
    assert CubeConfig().user_agent == DEFAULT_USER_AGENT
    monkeypatch.setenv("CUBE_USER_AGENT", "FromEnv/1.0")
    assert CubeConfig().user_agent == "FromEnv/1.0"


def test_store_client_uses_configured_user_agent(monkeypatch):
    monkeypatch.setenv("CUBE_USER_AGENT", "FromEnv/1.0")
    store = CubeStore(CubeConfig(endpoint=ENDPOINT))
    try:
        assert store._ensure_client().user_agent == "FromEnv/1.0"
    finally:
        store.close()


@pytest.mark.parametrize("kwargs", [
    {"chunk_size": 0}, {"max_pages": 0}, {"max_violations": 0},
])
def test_explicit_zero_limits_are_rejected_not_defaulted(local_endpoint, kwargs):
    ep = local_endpoint(build_cube(5))
    with CubeStore(CubeConfig(endpoint=ENDPOINT), client=make_client(ep)) as store:
        with pytest.raises(ValueError):
            store.validate_observations(CUBE_IRI, **kwargs)
    assert ep.page_queries() == []


def test_omitted_limits_fall_back_to_config(local_endpoint):
    ep = local_endpoint(build_cube(30))
    cfg = CubeConfig(endpoint=ENDPOINT, chunk_size=10, max_pages=2, max_violations=20)
    with CubeStore(cfg, client=make_client(ep)) as store:
        report = store.validate_observations(CUBE_IRI)
    assert report.pages_fetched == 2
    assert ep.page_queries() == [0, 10]
