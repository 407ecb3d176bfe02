"""Slicing parameters derived from print and object configuration.

The parameters fix the first layer, the allowed layer height range, the
raft stack and the Z extents of the printed object. Every other slicing
operation takes a ``SlicingParameters`` instance.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from layerplan.config import get_settings
from layerplan.utils import clamp, get_logger

logger = get_logger("slicing.params")

_PERCENT_RE = re.compile(r"^\s*([-+]?[\d.]+(?:[eE][-+]?\d+)?)\s*%\s*$")


def parse_float_or_percent(value: Union[str, float, int]) -> Tuple[float, bool]:
    """Parse a float-or-percent option into (value, is_percent)."""
    if isinstance(value, (int, float)):
        return float(value), False
    match = _PERCENT_RE.match(value)
    if match:
        return float(match.group(1)), True
    try:
        return float(value), False
    except ValueError:
        raise ValueError(f"Invalid float or percent value: {value!r}") from None


@dataclass
class PrintConfig:
    """Printer-wide configuration used by the slicing parameters."""
    nozzle_diameter: List[float] = field(default_factory=lambda: [0.4])

    def nozzle_diameter_at(self, idx: int) -> float:
        """Nozzle diameter of a 0-based extruder, first entry when out of range."""
        if 0 <= idx < len(self.nozzle_diameter):
            return self.nozzle_diameter[idx]
        return self.nozzle_diameter[0]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"nozzle_diameter": list(self.nozzle_diameter)}

    @classmethod
    def from_dict(cls, data: dict) -> "PrintConfig":
        """Create from dictionary."""
        nozzles = data.get("nozzle_diameter", [0.4])
        if isinstance(nozzles, (int, float)):
            nozzles = [nozzles]
        return cls(nozzle_diameter=[float(d) for d in nozzles])


@dataclass
class PrintObjectConfig:
    """Per-object configuration used by the slicing parameters."""
    layer_height: float = 0.2  # Nominal layer height in mm
    first_layer_height: float = 0.2  # Absolute mm, or percent of layer_height
    first_layer_height_percent: bool = False
    raft_layers: int = 0
    support_material_extruder: int = 1  # 1-based
    support_material_interface_extruder: int = 1  # 1-based
    support_material_contact_distance: float = 0.2  # 0 means soluble interface

    def first_layer_height_abs(self) -> float:
        """First layer height resolved against the nominal layer height."""
        if self.first_layer_height_percent:
            return self.layer_height * self.first_layer_height / 100.0
        return self.first_layer_height

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        first = (
            f"{self.first_layer_height:g}%"
            if self.first_layer_height_percent
            else self.first_layer_height
        )
        return {
            "layer_height": self.layer_height,
            "first_layer_height": first,
            "raft_layers": self.raft_layers,
            "support_material_extruder": self.support_material_extruder,
            "support_material_interface_extruder": self.support_material_interface_extruder,
            "support_material_contact_distance": self.support_material_contact_distance,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PrintObjectConfig":
        """Create from dictionary."""
        first, percent = parse_float_or_percent(data.get("first_layer_height", 0.2))
        return cls(
            layer_height=float(data.get("layer_height", 0.2)),
            first_layer_height=first,
            first_layer_height_percent=percent,
            raft_layers=int(data.get("raft_layers", 0)),
            support_material_extruder=int(data.get("support_material_extruder", 1)),
            support_material_interface_extruder=int(
                data.get("support_material_interface_extruder", 1)
            ),
            support_material_contact_distance=float(
                data.get("support_material_contact_distance", 0.2)
            ),
        )


@dataclass(frozen=True)
class SlicingParameters:
    """
    Layer height limits, raft stack and Z extents of one printed object.

    All values are in millimetres. Instances are immutable; build them with
    ``build_slicing_parameters`` (or ``SlicingParameters.create_from_config``).
    """
    layer_height: float = 0.0
    first_object_layer_height: float = 0.0
    first_object_layer_bridging: bool = False
    min_layer_height: float = 0.0
    max_layer_height: float = 0.0
    object_print_z_min: float = 0.0
    object_print_z_max: float = 0.0

    # Raft
    base_raft_layers: int = 0
    interface_raft_layers: int = 0
    base_raft_layer_height: float = 0.0
    interface_raft_layer_height: float = 0.0
    contact_raft_layer_height: float = 0.0
    contact_raft_layer_height_bridging: bool = False

    def raft_layers(self) -> int:
        return self.base_raft_layers + self.interface_raft_layers

    def has_raft(self) -> bool:
        return self.raft_layers() > 0

    def first_object_layer_height_fixed(self) -> bool:
        """Whether the first object layer is emitted verbatim instead of following the profile."""
        return not self.has_raft() or self.first_object_layer_bridging

    def object_print_z_height(self) -> float:
        return self.object_print_z_max - self.object_print_z_min

    def valid(self) -> bool:
        """Check the ordering of the layer height bounds and Z extents."""
        return (
            0 < self.min_layer_height <= self.layer_height <= self.max_layer_height
            and 0 <= self.object_print_z_min < self.object_print_z_max
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = asdict(self)
        data["object_print_z_height"] = self.object_print_z_height()
        data["first_object_layer_height_fixed"] = self.first_object_layer_height_fixed()
        return data

    @classmethod
    def create_from_config(
        cls,
        print_config: PrintConfig,
        object_config: PrintObjectConfig,
        object_height: float,
        object_extruders: Iterable[int],
        min_layer_height_floor: Optional[float] = None,
    ) -> "SlicingParameters":
        return build_slicing_parameters(
            print_config, object_config, object_height, object_extruders,
            min_layer_height_floor=min_layer_height_floor,
        )


def build_slicing_parameters(
    print_config: PrintConfig,
    object_config: PrintObjectConfig,
    object_height: float,
    object_extruders: Iterable[int],
    min_layer_height_floor: Optional[float] = None,
) -> SlicingParameters:
    """
    Derive slicing parameters from configuration.

    Args:
        print_config: Printer configuration (nozzle table)
        object_config: Object configuration (layer heights, raft, supports)
        object_height: Height of the object in mm, without raft
        object_extruders: 0-based indices of extruders printing the object
        min_layer_height_floor: Override for the minimum layer height

    Returns:
        Slicing parameters
    """
    if min_layer_height_floor is None:
        min_layer_height_floor = get_settings().min_layer_height_floor
    extruders = sorted(set(object_extruders))

    if object_config.first_layer_height <= 0:
        first_layer_height = object_config.layer_height
    else:
        first_layer_height = object_config.first_layer_height_abs()
    support_extruder_dmr = print_config.nozzle_diameter_at(
        object_config.support_material_extruder - 1)
    support_interface_extruder_dmr = print_config.nozzle_diameter_at(
        object_config.support_material_interface_extruder - 1)
    soluble_interface = object_config.support_material_contact_distance == 0.0

    layer_height = object_config.layer_height
    first_object_layer_height = first_layer_height
    first_object_layer_bridging = False
    object_print_z_min = 0.0
    object_print_z_max = object_height
    base_raft_layers = object_config.raft_layers
    interface_raft_layers = 0
    base_raft_layer_height = 0.0
    interface_raft_layer_height = 0.0
    contact_raft_layer_height = 0.0
    contact_raft_layer_height_bridging = False

    if base_raft_layers > 0:
        interface_raft_layers = (base_raft_layers + 1) // 2
        base_raft_layers -= interface_raft_layers
        # Intermediate raft layers as thick as the support nozzles allow.
        base_raft_layer_height = max(layer_height, 0.75 * support_extruder_dmr)
        interface_raft_layer_height = max(layer_height, 0.75 * support_interface_extruder_dmr)
        contact_raft_layer_height = max(layer_height, 0.75 * support_interface_extruder_dmr)
        if not soluble_interface:
            # First object layer bridges over the raft with the mean object nozzle.
            if extruders:
                first_object_layer_height = sum(
                    print_config.nozzle_diameter_at(e) for e in extruders
                ) / len(extruders)
            first_object_layer_bridging = True

    raft_layers = base_raft_layers + interface_raft_layers
    if raft_layers > 0:
        # FIXME: the contact layer should be printed as a bridge for easier separation.
        print_z = first_layer_height + object_config.support_material_contact_distance
        if raft_layers == 1:
            contact_raft_layer_height = first_layer_height
        else:
            print_z += (
                # The first base layer is already accounted for by first_layer_height.
                (base_raft_layers - 1) * base_raft_layer_height
                # The last interface layer is the contact layer.
                + (interface_raft_layers - 1) * interface_raft_layer_height
                + contact_raft_layer_height
            )
        object_print_z_min = print_z
        object_print_z_max += print_z

    min_layer_height = min(layer_height, first_layer_height)
    max_layer_height = max(layer_height, first_layer_height)
    min_layer_height = min_layer_height_floor

    if extruders:
        min_nozzle_dmr = min(print_config.nozzle_diameter_at(e) for e in extruders)
        max_layer_height = max(layer_height, first_layer_height, 0.75 * min_nozzle_dmr)

    first_object_layer_height = clamp(min_layer_height, max_layer_height, first_object_layer_height)

    params = SlicingParameters(
        layer_height=layer_height,
        first_object_layer_height=first_object_layer_height,
        first_object_layer_bridging=first_object_layer_bridging,
        min_layer_height=min_layer_height,
        max_layer_height=max_layer_height,
        object_print_z_min=object_print_z_min,
        object_print_z_max=object_print_z_max,
        base_raft_layers=base_raft_layers,
        interface_raft_layers=interface_raft_layers,
        base_raft_layer_height=base_raft_layer_height,
        interface_raft_layer_height=interface_raft_layer_height,
        contact_raft_layer_height=contact_raft_layer_height,
        contact_raft_layer_height_bridging=contact_raft_layer_height_bridging,
    )
    logger.debug(
        f"Slicing parameters: layer={layer_height:.3f} first={first_object_layer_height:.3f} "
        f"range=[{min_layer_height:.3f}, {max_layer_height:.3f}] raft={raft_layers} "
        f"z=[{object_print_z_min:.3f}, {object_print_z_max:.3f}]"
    )
    return params
