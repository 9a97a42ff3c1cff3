from __future__ import annotations
from dataclasses import dataclass

_SCHEME = "cube+"

@dataclass(frozen=True)
class CubeReference:
    endpoint_url: str
    cube_iri: str

    def __post_init__(self):
        if not self.endpoint_url:
            raise ValueError("endpoint_url is required")
        if not self.cube_iri:
            raise ValueError("cube_iri is required")

    def __str__(self) -> str:
        return f"{_SCHEME}{self.endpoint_url}#{self.cube_iri}"

    @classmethod
    def parse(cls, ref: str) -> "CubeReference":
        # the cube IRI itself may contain '#', split on the first one only
        if not ref.startswith(_SCHEME) or "#" not in ref:
            raise ValueError(f"not a cube reference: {ref!r}")
        endpoint, cube_iri = ref[len(_SCHEME):].split("#", 1)
        return cls(endpoint_url=endpoint, cube_iri=cube_iri)
