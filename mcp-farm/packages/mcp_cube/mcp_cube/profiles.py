# mcp-farm/packages/mcp_cube/mcp_cube/profiles.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .rdf.graph_node import CubeMetadata

log = logging.getLogger(__name__)

PROFILE_KEYS = ("visualize", "opendataswiss", "default", "manual")


@dataclass(frozen=True)
class ValidationProfile:
    key: str
    shape_graph_iri: str
    label: str
    work_example_iri: str = ""

    def __post_init__(self):
        if self.key not in PROFILE_KEYS:
            raise ValueError(f"Unknown profile key: {self.key!r}. Known: {PROFILE_KEYS}")
        if not self.shape_graph_iri:
            raise ValueError("shape_graph_iri is required")


# Declaration order matters: it decides which profile wins when a cube
# advertises several applications.
PROFILES: Tuple[ValidationProfile, ...] = (
    ValidationProfile(
        key="visualize",
        shape_graph_iri="https://cube.link/ref/main/shape/profile-visualize",
        label="Visualize",
        work_example_iri="https://ld.admin.ch/application/visualize",
    ),
    ValidationProfile(
        key="opendataswiss",
        shape_graph_iri="https://cube.link/ref/main/shape/profile-opendataswiss",
        label="OpenDataSwiss",
        work_example_iri="https://ld.admin.ch/application/opendataswiss",
    ),
    ValidationProfile(
        key="default",
        shape_graph_iri="https://cube.link/ref/main/shape/standalone-cube-constraint",
        label="Basic",
    ),
)

DEFAULT_PROFILE = next(p for p in PROFILES if p.key == "default")


def get_profile(key: str) -> Optional[ValidationProfile]:
    for p in PROFILES:
        if p.key == key:
            return p
    return None


def manual_profile(shape_graph_iri: str, label: str = "Manual") -> ValidationProfile:
    return ValidationProfile(key="manual", shape_graph_iri=shape_graph_iri, label=label)


class ProfileResolver:
    """Pick the shape-graph profile for a cube from its schema:workExample links.

    Works on cube metadata that was already fetched; no I/O.
    """

    def __init__(self, profiles: Iterable[ValidationProfile] = PROFILES,
                 default: ValidationProfile = DEFAULT_PROFILE):
        self.profiles = tuple(profiles)
        self.default = default

    def _matching(self, work_examples: Iterable[str]) -> List[ValidationProfile]:
        examples = set(work_examples)
        return [
            p for p in self.profiles
            if p.key != self.default.key and p.work_example_iri and p.work_example_iri in examples
        ]

    def get_available_profiles(self, cube: CubeMetadata) -> List[ValidationProfile]:
        available = self._matching(cube.work_examples)
        available.append(self.default)
        return available

    def resolve(self, cube: CubeMetadata) -> ValidationProfile:
        matches = self._matching(cube.work_examples)
        if not matches:
            return self.default
        if len(matches) > 1:
            log.warning(
                "Multiple work examples found for %s (%s). Using %s as validation profile.",
                cube.iri, ", ".join(p.label for p in matches), matches[0].label,
            )
        return matches[0]
