"""Object layers materialised from a layer height profile."""

from typing import Iterator, List, Sequence, Tuple

from layerplan.slicing.params import SlicingParameters
from layerplan.slicing.profile import EPSILON, LayerHeightProfile, interpolate
from layerplan.utils import get_logger, pairwise_flat

logger = get_logger("slicing.layers")


def generate_object_layers(
    params: SlicingParameters,
    profile: LayerHeightProfile,
) -> List[float]:
    """
    Integrate the profile into object layers.

    Each layer height is sampled from the profile at the middle of the
    layer. The top layer is not stretched to meet the object top, so the
    last layer may end up to one layer height below it. Past the last
    control point the last height is used; an empty profile yields layers
    of the minimum height.

    Args:
        params: Slicing parameters
        profile: Layer height profile

    Returns:
        Flat list of layer boundaries [lo0, hi0, lo1, hi1, ...]
    """
    points = profile.points
    z_top = params.object_print_z_height()
    out: List[float] = []

    print_z = 0.0
    if params.first_object_layer_height_fixed():
        print_z = params.first_object_layer_height
        out.extend((0.0, print_z))

    idx = 0
    slice_z = print_z + 0.5 * params.min_layer_height
    while slice_z < z_top:
        height = params.min_layer_height
        if idx < len(points):
            nxt = idx + 1
            while nxt < len(points) and slice_z >= points[nxt][0]:
                idx = nxt
                nxt += 1
            height = points[idx][1]
            if nxt < len(points):
                height = interpolate(points[idx], points[nxt], slice_z)
        slice_z = print_z + 0.5 * height
        # A layer whose middle reaches the object top is not printed.
        if slice_z >= z_top - EPSILON:
            break
        assert params.min_layer_height - EPSILON < height < params.max_layer_height + EPSILON, (
            f"layer height {height} at z={print_z} out of range"
        )
        out.append(print_z)
        print_z += height
        out.append(print_z)
        slice_z = print_z + 0.5 * params.min_layer_height

    # TODO: optionally stretch the last layer so it ends at the object top.
    logger.debug(f"Generated {len(out) // 2} layers up to z={print_z:.3f} of {z_top:.3f}")
    return out


def layer_intervals(layers: Sequence[float]) -> Iterator[Tuple[float, float]]:
    """Iterate (lo, hi) pairs of a flat layer list."""
    return pairwise_flat(layers)
