"""Layer height texture for previewing a layer list.

The texture maps Z to a colour scale of the layer height, with a cosine
shading inside each layer so the individual layers stay visible. Cells run
row by row; the last column of a row repeats the first pixel of the next
row so the texture wraps seamlessly. A half resolution copy without the
shading follows the main image in the same buffer.
"""

import math
from typing import Sequence

import numpy as np

from layerplan.slicing.layers import layer_intervals
from layerplan.slicing.params import SlicingParameters
from layerplan.utils import clamp, get_logger

logger = get_logger("slicing.texture")

# ColorBrewer RdBu-8, thin layers red, thick layers blue.
# https://github.com/aschn/gnuplot-colorbrewer
PALETTE = np.array([
    [0xB2, 0x18, 0x2B],
    [0xD6, 0x60, 0x4D],
    [0xF4, 0xA5, 0x82],
    [0xFD, 0xDB, 0xC7],
    [0xD1, 0xE5, 0xF0],
    [0x92, 0xC5, 0xDE],
    [0x43, 0x93, 0xC3],
    [0x21, 0x66, 0xAC],
], dtype=np.float64)


def texture_buffer_size(rows: int, cols: int) -> int:
    """Bytes needed for both levels of detail."""
    return rows * cols * 5


def allocate_texture(rows: int, cols: int) -> bytearray:
    """Zeroed buffer for a rows x cols texture plus its second level of detail."""
    return bytearray(texture_buffer_size(rows, cols))


def height_scale(params: SlicingParameters) -> float:
    """Range of layer heights spanned by the palette."""
    hscale = 2.0 * max(
        params.max_layer_height - params.layer_height,
        params.layer_height - params.min_layer_height,
    )
    if hscale == 0:
        # All layers have the same height.
        hscale = params.layer_height
    return hscale


def layer_color(params: SlicingParameters, height: float, hscale: float) -> np.ndarray:
    """Unshaded RGB colour of a layer of the given height."""
    n = len(PALETTE)
    idxf = (0.5 * hscale + (height - params.layer_height)) * n / hscale
    idx1 = int(clamp(0, n - 1, math.floor(idxf)))
    idx2 = min(n - 1, idx1 + 1)
    t = clamp(0.0, 1.0, idxf - idx1)
    return (1.0 - t) * PALETTE[idx1] + t * PALETTE[idx2]


def _render_level(
    params: SlicingParameters,
    layers: Sequence[float],
    pixels: np.ndarray,
    ncells: int,
    cols: int,
    hscale: float,
    shaded: bool,
) -> None:
    z_top = params.object_print_z_height()
    z_to_cell = (ncells - 1) / z_top
    cell_to_z = z_top / (ncells - 1)
    for lo, hi in layer_intervals(layers):
        mid = 0.5 * (lo + hi)
        h = hi - lo
        hi = min(hi, z_top)
        cell_first = int(clamp(0, ncells - 1, math.ceil(lo * z_to_cell)))
        cell_last = int(clamp(0, ncells - 1, math.floor(hi * z_to_cell)))
        if cell_last < cell_first:
            continue
        cells = np.arange(cell_first, cell_last + 1)
        color = layer_color(params, h, hscale)
        if shaded:
            z = cell_to_z * cells
            intensity = np.cos(np.pi * 0.7 * (mid - z) / h)
            rgb = intensity[:, np.newaxis] * color[np.newaxis, :]
        else:
            rgb = np.broadcast_to(color, (len(cells), 3))
        rgb = np.clip(np.floor(rgb + 0.5), 0, 255).astype(np.uint8)

        row = cells // (cols - 1)
        col = cells - row * (cols - 1)
        idx = row * cols + col
        pixels[idx, :3] = rgb
        pixels[idx, 3] = 255
        # Repeat the first pixel of a row as the last pixel of the previous row.
        wrap = idx[(col == 0) & (row > 0)]
        pixels[wrap - 1] = pixels[wrap]


def generate_layer_height_texture(
    params: SlicingParameters,
    layers: Sequence[float],
    buffer,
    rows: int,
    cols: int,
    level_of_detail_2nd_level: bool = True,
) -> int:
    """
    Render the layer list into an RGBA8 texture.

    Args:
        params: Slicing parameters
        layers: Flat layer list [lo0, hi0, lo1, hi1, ...]
        buffer: Writable buffer of at least rows * cols * 5 bytes
        rows: Texture rows, even
        cols: Texture columns, even and at least 2
        level_of_detail_2nd_level: Also render the half resolution level

    Returns:
        Number of cells of the full resolution level
    """
    assert rows % 2 == 0 and cols % 2 == 0 and cols >= 2, f"bad texture size {rows}x{cols}"
    size = texture_buffer_size(rows, cols)
    data = np.frombuffer(buffer, dtype=np.uint8, count=size)
    data[:] = 0

    z_top = params.object_print_z_height()
    ncells = min((cols - 1) * rows, int(math.ceil(16.0 * z_top / params.min_layer_height)))
    hscale = height_scale(params)

    pixels0 = data[:rows * cols * 4].reshape(-1, 4)
    if ncells > 1:
        _render_level(params, layers, pixels0, ncells, cols, hscale, shaded=True)

    if level_of_detail_2nd_level:
        rows1 = rows // 2
        cols1 = cols // 2
        # Never address cells past the end of the half resolution image.
        ncells1 = min(ncells // 2, (cols1 - 1) * rows1)
        pixels1 = data[rows * cols * 4:size].reshape(-1, 4)
        if ncells1 > 1:
            _render_level(params, layers, pixels1, ncells1, cols1, hscale, shaded=False)

    logger.debug(f"Rendered {len(layers) // 2} layers into {rows}x{cols} texture, {ncells} cells")
    return ncells
