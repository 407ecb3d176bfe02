"""Layer height planning for fused filament slicing.

Derives slicing parameters, builds and edits layer height profiles,
materialises object layers and renders a layer height preview texture.
"""

from layerplan.slicing.params import (
    PrintConfig,
    PrintObjectConfig,
    SlicingParameters,
    build_slicing_parameters,
)
from layerplan.slicing.profile import (
    EPSILON,
    HeightRange,
    LayerHeightProfile,
    layer_height_profile_from_ranges,
)
from layerplan.slicing.adaptive import (
    ConstantCuspOracle,
    CuspOracle,
    FacetCursor,
    FunctionCuspOracle,
    ModelVolume,
    layer_height_profile_adaptive,
)
from layerplan.slicing.editor import AdjustAction, adjust_layer_height_profile
from layerplan.slicing.layers import generate_object_layers, layer_intervals
from layerplan.slicing.texture import (
    PALETTE,
    allocate_texture,
    generate_layer_height_texture,
    texture_buffer_size,
)

__all__ = [
    "PrintConfig",
    "PrintObjectConfig",
    "SlicingParameters",
    "build_slicing_parameters",
    "EPSILON",
    "HeightRange",
    "LayerHeightProfile",
    "layer_height_profile_from_ranges",
    "ConstantCuspOracle",
    "CuspOracle",
    "FacetCursor",
    "FunctionCuspOracle",
    "ModelVolume",
    "layer_height_profile_adaptive",
    "AdjustAction",
    "adjust_layer_height_profile",
    "generate_object_layers",
    "layer_intervals",
    "PALETTE",
    "allocate_texture",
    "generate_layer_height_texture",
    "texture_buffer_size",
]
