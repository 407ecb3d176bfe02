"""Interactive editing of layer height profiles.

An edit raises, lowers or flattens the profile in a band around a picked
Z. The change is weighted by a raised cosine window and the band is
resampled at a fixed Z resolution.
"""

import math
from enum import IntEnum
from typing import List, Optional, Sequence, Tuple

from layerplan.config import get_settings
from layerplan.slicing.params import SlicingParameters
from layerplan.slicing.profile import EPSILON, LayerHeightProfile, interpolate
from layerplan.utils import clamp, get_logger

logger = get_logger("slicing.editor")


class AdjustAction(IntEnum):
    """How an edit changes the profile."""
    DELTA = 0  # Add a smooth bump (or dent) of the given thickness delta
    PULL_TO_NOMINAL = 1  # Move heights toward the nominal layer height


def _last_point_below(points: Sequence[Tuple[float, float]], z: float, start: int = 0) -> int:
    """Index of the last control point below z, scanning forward from start."""
    idx = start
    while idx < len(points) and points[idx][0] < z:
        idx += 1
    return idx - 1


def _current_height(params: SlicingParameters, points: Sequence[Tuple[float, float]], z: float) -> float:
    height = params.layer_height
    for i in range(len(points)):
        if i + 1 == len(points):
            height = points[i][1]
            break
        if points[i + 1][0] > z:
            height = interpolate(points[i], points[i + 1], z)
            break
    return height


def _band_weight(zz: float, z: float, band_width: float) -> float:
    if abs(zz - z) < 0.5 * band_width:
        return 0.5 + 0.5 * math.cos(2.0 * math.pi * (zz - z) / band_width)
    return 0.0


def adjust_layer_height_profile(
    params: SlicingParameters,
    profile: LayerHeightProfile,
    z: float,
    delta: float,
    band_width: float,
    action: AdjustAction = AdjustAction.DELTA,
    z_step: Optional[float] = None,
) -> None:
    """
    Reshape the profile around z, in place.

    Args:
        params: Slicing parameters
        profile: Profile to edit
        z: Picked height in mm
        delta: Requested change of the layer height at z, in mm
        band_width: Width of the edited band centred at z, in mm
        action: AdjustAction.DELTA or AdjustAction.PULL_TO_NOMINAL
        z_step: Resampling resolution, defaults to the configured value
    """
    if z_step is None:
        z_step = get_settings().adjust_z_step
    action = AdjustAction(action)

    # The fixed first layer is not editable.
    span_lo = params.first_object_layer_height if params.first_object_layer_height_fixed() else 0.0
    span_hi = params.object_print_z_height()
    if z < span_lo or z > span_hi:
        logger.debug(f"Edit at z={z:.3f} outside [{span_lo:.3f}, {span_hi:.3f}], ignored")
        return
    if band_width <= 0:
        return

    points = profile.points
    assert len(points) >= 1, "empty layer height profile"

    # 1) Current layer height at z.
    current = _current_height(params, points, z)

    # 2) Limit the delta so the height at z stays in range.
    if action == AdjustAction.DELTA:
        if delta > 0:
            if current >= params.max_layer_height - EPSILON:
                logger.debug(f"Height {current:.3f} already at maximum")
                return
            delta = min(delta, params.max_layer_height - current)
        else:
            if current <= params.min_layer_height + EPSILON:
                logger.debug(f"Height {current:.3f} already at minimum")
                return
            delta = max(delta, params.min_layer_height - current)
    else:
        delta = min(abs(delta), abs(params.layer_height - current))
        if delta < EPSILON:
            logger.debug(f"Height {current:.3f} already nominal")
            return

    # 3) Resample the band, keeping the profile before and after it.
    lo = max(span_lo, z - 0.5 * band_width)
    hi = min(span_hi, z + 0.5 * band_width)
    if hi - lo <= EPSILON:
        logger.debug(f"Band [{lo:.4f}, {hi:.4f}] too narrow, ignored")
        return
    first_in_band = _last_point_below(points, lo) + 1
    new_points: List[Tuple[float, float]] = list(points[:first_in_band])
    idx = max(first_in_band - 1, 0)

    k = 0
    zz = lo
    while zz < hi - EPSILON:
        nxt = idx + 1
        height = points[idx][1]
        if nxt < len(points):
            height = interpolate(points[idx], points[nxt], zz)
        weight = _band_weight(zz, z, band_width)
        if action == AdjustAction.DELTA:
            height += weight * delta
        else:
            gap = height - params.layer_height
            step = weight * delta
            if abs(gap) > step:
                step = -step if gap > 0 else step
            else:
                step = -gap
            height += step
        # Avoid too short segments.
        if not new_points or new_points[-1][0] + EPSILON < zz:
            new_points.append((zz, clamp(params.min_layer_height, params.max_layer_height, height)))
        k += 1
        zz = lo + k * z_step
        idx = _last_point_below(points, zz, nxt)

    tail = _last_point_below(points, hi) + 1
    if tail < len(points):
        if new_points and new_points[-1][0] + z_step < points[tail][0]:
            # Bridge to the preserved part so the join is no longer than z_step.
            bridge_z = new_points[-1][0] + z_step
            new_points.append((bridge_z, profile.height_at(bridge_z)))
        new_points.extend(points[tail:])

    assert len(new_points) >= 2, "edited profile lost its control points"
    assert new_points[0][0] == 0.0, "edited profile does not start at z=0"
    profile.points[:] = new_points
    logger.debug(
        f"Adjusted profile at z={z:.3f} by {delta:+.3f} ({action.name}), "
        f"band [{lo:.3f}, {hi:.3f}], {len(new_points)} control points"
    )
