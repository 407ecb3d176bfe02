"""Layer height profiles.

A layer height profile is a piecewise linear function h(z) over
[0, object_print_z_height()], stored as control points (z, h). Consecutive
points are joined linearly; two points sharing a Z encode a step.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

from layerplan.slicing.params import SlicingParameters
from layerplan.utils import flatten_pairs, get_logger, lerp, pairwise_flat

logger = get_logger("slicing.profile")

# Tolerance for degenerate segments and boundary comparisons, in mm.
EPSILON = 1e-4


@dataclass(frozen=True)
class HeightRange:
    """A user override of the layer height over [lo, hi)."""
    lo: float
    hi: float
    height: float

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"lo": self.lo, "hi": self.hi, "height": self.height}

    @classmethod
    def coerce(cls, value: Union["HeightRange", tuple]) -> "HeightRange":
        """Accept a HeightRange or a ((lo, hi), height) tuple."""
        if isinstance(value, HeightRange):
            return value
        (lo, hi), height = value
        return cls(float(lo), float(hi), float(height))


@dataclass
class LayerHeightProfile:
    """Control points (z, h) of a piecewise linear layer height function."""
    points: List[Tuple[float, float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        return iter(self.points)

    def __getitem__(self, idx):
        return self.points[idx]

    def copy(self) -> "LayerHeightProfile":
        return LayerHeightProfile(list(self.points))

    def append(self, z: float, height: float) -> None:
        self.points.append((z, height))

    def to_list(self) -> List[float]:
        """Flatten into [z0, h0, z1, h1, ...]."""
        return flatten_pairs(self.points)

    @classmethod
    def from_list(cls, values: Sequence[float]) -> "LayerHeightProfile":
        """Build from a flat [z0, h0, z1, h1, ...] sequence."""
        return cls([(float(z), float(h)) for z, h in pairwise_flat(values)])

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"points": [[z, h] for z, h in self.points]}

    def segments(self) -> Iterator[Tuple[Tuple[float, float], Tuple[float, float]]]:
        """Iterate consecutive control point pairs."""
        for i in range(len(self.points) - 1):
            yield self.points[i], self.points[i + 1]

    def height_at(self, z: float) -> float:
        """
        Evaluate h(z).

        Segments are half-open on the right, so at a step the upper value
        wins. Past the last control point the last height is returned.
        """
        assert self.points, "empty layer height profile"
        for p1, p2 in self.segments():
            if z < p2[0]:
                return interpolate(p1, p2, z)
        return self.points[-1][1]

    def check(self, params: SlicingParameters) -> List[str]:
        """List violated well-formedness rules; empty when the profile is valid."""
        problems = []
        if len(self.points) < 1:
            return ["profile has no control points"]
        if self.points[0][0] != 0.0:
            problems.append(f"profile starts at z={self.points[0][0]}, expected 0")
        z_top = params.object_print_z_height()
        if abs(self.points[-1][0] - z_top) > EPSILON:
            problems.append(f"profile ends at z={self.points[-1][0]}, expected {z_top}")
        for i, (z, h) in enumerate(self.points):
            if i > 0 and z < self.points[i - 1][0]:
                problems.append(f"z decreases at point {i}: {self.points[i - 1][0]} > {z}")
            if not (params.min_layer_height - EPSILON < h < params.max_layer_height + EPSILON):
                problems.append(f"height {h} at z={z} outside "
                                f"[{params.min_layer_height}, {params.max_layer_height}]")
        return problems


def interpolate(p1: Tuple[float, float], p2: Tuple[float, float], z: float) -> float:
    """Height at z on the segment p1 -> p2."""
    z1, h1 = p1
    z2, h2 = p2
    if z2 - z1 <= 0:
        return h2
    t = (z - z1) / (z2 - z1)
    assert -EPSILON <= t <= 1.0 + EPSILON, f"z={z} outside segment [{z1}, {z2}]"
    return lerp(h1, h2, t)


def layer_height_profile_from_ranges(
    params: SlicingParameters,
    ranges: Iterable[Union[HeightRange, tuple]],
) -> LayerHeightProfile:
    """
    Build a profile from user layer height ranges.

    Ranges are trimmed against each other so they do not overlap, and the
    gaps between them are filled with the nominal layer height. Like the
    ranges, the profile is referenced to z=0 and does not include the raft.

    Args:
        params: Slicing parameters
        ranges: HeightRange records or ((lo, hi), height) tuples

    Returns:
        Layer height profile covering [0, object_print_z_height()]
    """
    z_top = params.object_print_z_height()
    sorted_ranges = sorted((HeightRange.coerce(r) for r in ranges), key=lambda r: (r.lo, r.hi))

    # 1) Trim overlapping ranges, insert the first layer if fixed.
    disjoint: List[HeightRange] = []
    if params.first_object_layer_height_fixed():
        first = params.first_object_layer_height
        disjoint.append(HeightRange(0.0, first, first))
    for rng in sorted_ranges:
        lo = rng.lo
        hi = min(rng.hi, z_top)
        if disjoint:
            lo = max(lo, disjoint[-1].hi)
        # Skip too narrow ranges.
        if lo + EPSILON < hi:
            disjoint.append(HeightRange(lo, hi, rng.height))

    # 2) Emit the ranges, filling gaps up to the object top with the nominal height.
    profile = LayerHeightProfile()
    for rng in disjoint:
        last_z = profile.points[-1][0] if profile.points else 0.0
        if rng.lo > last_z + EPSILON:
            profile.append(last_z, params.layer_height)
            profile.append(rng.lo, params.layer_height)
        profile.append(rng.lo, rng.height)
        profile.append(rng.hi, rng.height)

    last_z = profile.points[-1][0] if profile.points else 0.0
    if last_z < z_top:
        profile.append(last_z, params.layer_height)
        profile.append(z_top, params.layer_height)

    logger.debug(f"Profile from {len(disjoint)} ranges: {len(profile)} control points")
    return profile
