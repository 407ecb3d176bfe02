"""Adaptive layer height profiles.

Layer heights are chosen bottom-up so that the cusp, the distance from the
corner of a rectangular extrusion to the chordal line of the sloped mesh
surface, stays below a prescribed value. The geometric query itself is
delegated to a cusp oracle.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from layerplan.config import get_settings
from layerplan.slicing.params import SlicingParameters
from layerplan.slicing.profile import LayerHeightProfile
from layerplan.utils import clamp, get_logger

logger = get_logger("slicing.adaptive")


@dataclass
class FacetCursor:
    """Scan position of an oracle, advanced as slice_z grows."""
    index: int = 0


@dataclass
class ModelVolume:
    """A mesh of the object; modifier volumes do not contribute geometry."""
    mesh: Any
    modifier: bool = False


@runtime_checkable
class CuspOracle(Protocol):
    """Geometric query answering the largest admissible layer height."""

    def prepare(self, meshes: Sequence[Any]) -> None:
        ...

    def cusp_height(self, slice_z: float, cusp_value: float, cursor: FacetCursor) -> float:
        ...


class ConstantCuspOracle:
    """Oracle returning the same height everywhere."""

    def __init__(self, height: float):
        self.height = height
        self.meshes: List[Any] = []

    def prepare(self, meshes: Sequence[Any]) -> None:
        self.meshes = list(meshes)

    def cusp_height(self, slice_z: float, cusp_value: float, cursor: FacetCursor) -> float:
        return self.height


class FunctionCuspOracle:
    """
    Oracle backed by a function of (slice_z, cusp_value).

    Results are clamped to the layer height range of the slicing
    parameters, and the cursor counts the queries.
    """

    def __init__(self, params: SlicingParameters, func: Callable[[float, float], float]):
        self.params = params
        self.func = func
        self.meshes: List[Any] = []

    def prepare(self, meshes: Sequence[Any]) -> None:
        self.meshes = list(meshes)

    def cusp_height(self, slice_z: float, cusp_value: float, cursor: FacetCursor) -> float:
        cursor.index += 1
        return clamp(
            self.params.min_layer_height,
            self.params.max_layer_height,
            self.func(slice_z, cusp_value),
        )


def layer_height_profile_adaptive(
    params: SlicingParameters,
    ranges: Iterable,
    volumes: Iterable[ModelVolume],
    oracle: CuspOracle,
    cusp_value: Optional[float] = None,
) -> LayerHeightProfile:
    """
    Build a profile bounding the cusp height of every layer.

    Args:
        params: Slicing parameters
        ranges: User layer height ranges, currently not applied
        volumes: Object volumes; modifiers are skipped
        oracle: Cusp height oracle
        cusp_value: Maximum cusp in mm, defaults to the configured value

    Returns:
        Layer height profile
    """
    if cusp_value is None:
        cusp_value = get_settings().cusp_value

    oracle.prepare([v.mesh for v in volumes if not v.modifier])

    z_top = params.object_print_z_height()
    first = params.first_object_layer_height

    profile = LayerHeightProfile()
    profile.append(0.0, first)
    if params.first_object_layer_height_fixed():
        profile.append(first, first)

    slice_z = first
    height = first
    cursor = FacetCursor()
    # Keep going until a layer starts above the object top; the spanning
    # layer is emitted and the closing anchor below caps the profile.
    while slice_z - height <= z_top:
        # TODO: cap by the distance to the next horizontal surface once the
        # oracle can report it.
        height = oracle.cusp_height(slice_z, cusp_value, cursor)
        assert height > 0, f"cusp oracle returned non-positive height {height} at z={slice_z}"
        profile.append(slice_z, height)
        slice_z += height
        profile.append(slice_z, height)

    last = max(first, profile.points[-1][0])
    profile.append(last, first)
    profile.append(z_top, first)

    logger.debug(
        f"Adaptive profile: {len(profile)} control points, cusp={cusp_value:.3f}, "
        f"{cursor.index} oracle steps"
    )
    return profile
