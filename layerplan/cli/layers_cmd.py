"""CLI commands for layer height planning."""

import json
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from layerplan.slicing.profile import HeightRange, LayerHeightProfile
from layerplan.utils import format_mm

console = Console()


def _parse_range(ctx, param, values) -> List[HeightRange]:
    ranges = []
    for value in values:
        parts = value.split(":")
        if len(parts) != 3:
            raise click.BadParameter(f"expected lo:hi:height, got {value!r}")
        try:
            lo, hi, height = (float(p) for p in parts)
        except ValueError:
            raise click.BadParameter(f"non-numeric range {value!r}") from None
        if hi <= lo or height <= 0:
            raise click.BadParameter(f"empty range or non-positive height in {value!r}")
        ranges.append(HeightRange(lo, hi, height))
    return ranges


def _parse_points(ctx, param, value) -> Optional[LayerHeightProfile]:
    if value is None:
        return None
    try:
        values = [float(v) for v in value.split(",")]
    except ValueError:
        raise click.BadParameter(f"non-numeric control points {value!r}") from None
    if len(values) < 2 or len(values) % 2:
        raise click.BadParameter("expected z0,h0,z1,h1,... with an even number of values")
    return LayerHeightProfile.from_list(values)


def _parse_adjust(ctx, param, values) -> List[Tuple[float, float, float, int]]:
    edits = []
    for value in values:
        parts = value.split(":")
        pull = len(parts) == 4 and parts[3] == "pull"
        if len(parts) not in (3, 4) or (len(parts) == 4 and not pull):
            raise click.BadParameter(f"expected z:delta:band[:pull], got {value!r}")
        try:
            z, delta, band = (float(p) for p in parts[:3])
        except ValueError:
            raise click.BadParameter(f"non-numeric edit {value!r}") from None
        edits.append((z, delta, band, 1 if pull else 0))
    return edits


def slicing_options(func):
    """Options describing the printer and the object."""
    options = [
        click.option("--layer-height", "-l", default=0.2, show_default=True,
                     type=float, help="Nominal layer height (mm)"),
        click.option("--first-layer-height", "-f", default="0.2", show_default=True,
                     help="First layer height (mm or percent of layer height)"),
        click.option("--height", "-z", "object_height", default=10.0, show_default=True,
                     type=float, help="Object height (mm)"),
        click.option("--raft-layers", default=0, show_default=True, type=int,
                     help="Number of raft layers"),
        click.option("--nozzle", "nozzles", multiple=True, type=float,
                     help="Nozzle diameter per extruder (mm), repeatable"),
        click.option("--contact-distance", default=0.2, show_default=True, type=float,
                     help="Support contact Z distance (mm), 0 for soluble"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_params(layer_height, first_layer_height, object_height, raft_layers,
                  nozzles, contact_distance):
    from layerplan.slicing.params import (
        PrintConfig, PrintObjectConfig, build_slicing_parameters
    )

    try:
        object_config = PrintObjectConfig.from_dict({
            "layer_height": layer_height,
            "first_layer_height": first_layer_height,
            "raft_layers": raft_layers,
            "support_material_contact_distance": contact_distance,
        })
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--first-layer-height") from None
    if object_height <= 0:
        raise click.BadParameter("object height must be positive", param_hint="--height")
    print_config = PrintConfig(nozzle_diameter=list(nozzles) or [0.4])
    extruders = range(len(print_config.nozzle_diameter))
    return build_slicing_parameters(print_config, object_config, object_height, extruders)


def _build_profile(params, ranges, edits, points=None):
    from layerplan.slicing.editor import adjust_layer_height_profile
    from layerplan.slicing.profile import layer_height_profile_from_ranges

    if points is not None:
        problems = points.check(params)
        if problems and edits:
            raise click.BadParameter(f"cannot edit a malformed profile: {problems[0]}",
                                     param_hint="--points")
        profile = points.copy()
    else:
        profile = layer_height_profile_from_ranges(params, ranges)
    for z, delta, band, action in edits:
        adjust_layer_height_profile(params, profile, z, delta, band, action)
    return profile


@click.group()
def layers():
    """Layer height planning commands."""
    pass


@layers.command()
@slicing_options
def params(
    layer_height: float,
    first_layer_height: str,
    object_height: float,
    raft_layers: int,
    nozzles: Tuple[float, ...],
    contact_distance: float,
) -> None:
    """Show slicing parameters derived from the configuration.

    Examples:
        layerplan layers params --height 20
        layerplan layers params --raft-layers 3 --nozzle 0.4 --nozzle 0.6
    """
    p = _build_params(layer_height, first_layer_height, object_height, raft_layers,
                      nozzles, contact_distance)

    table = Table(title="Slicing Parameters")
    table.add_column("Parameter")
    table.add_column("Value", justify="right")
    for key, value in p.to_dict().items():
        if isinstance(value, float):
            value = f"{value:.3f}"
        table.add_row(key, str(value))
    console.print(table)

    if not p.valid():
        console.print("[yellow]Warning: parameters are not consistent[/yellow]")


@layers.command()
@slicing_options
@click.option("--range", "-r", "ranges", multiple=True, callback=_parse_range,
              help="Height override lo:hi:height (mm), repeatable")
@click.option("--adjust", "-a", "edits", multiple=True, callback=_parse_adjust,
              help="Profile edit z:delta:band[:pull] (mm), repeatable")
@click.option("--points", "-p", callback=_parse_points,
              help="Start from control points z0,h0,z1,h1,... instead of ranges")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def profile(
    layer_height: float,
    first_layer_height: str,
    object_height: float,
    raft_layers: int,
    nozzles: Tuple[float, ...],
    contact_distance: float,
    ranges: list,
    edits: list,
    points: Optional[LayerHeightProfile],
    output_json: bool,
) -> None:
    """Show the layer height profile.

    Examples:
        layerplan layers profile -z 5 -r 1:2:0.1
        layerplan layers profile -z 5 -a 2.5:0.05:1
        layerplan layers profile -z 5 -a 2.5:0.05:1 -a 2.5:0.05:1:pull
        layerplan layers profile -z 1 -p 0,0.2,1,0.3 --json
    """
    p = _build_params(layer_height, first_layer_height, object_height, raft_layers,
                      nozzles, contact_distance)
    prof = _build_profile(p, ranges, edits, points)
    problems = prof.check(p)

    if output_json:
        result = {
            "ranges": [r.to_dict() for r in ranges],
            "profile": prof.to_dict(),
            "flat": prof.to_list(),
            "problems": problems,
        }
        console.print(json.dumps(result, indent=2), markup=False, highlight=False, soft_wrap=True)
        return

    table = Table(title=f"Layer Height Profile ({len(prof)} points)")
    table.add_column("Z", justify="right")
    table.add_column("Layer Height", justify="right")
    for z, h in prof:
        color = "green" if abs(h - p.layer_height) < 1e-4 else (
            "yellow" if h < p.layer_height else "cyan"
        )
        table.add_row(f"{z:.3f}", f"[{color}]{h:.3f}[/{color}]")
    console.print(table)

    for problem in problems:
        console.print(f"[red]{problem}[/red]")


@layers.command()
@slicing_options
@click.option("--range", "-r", "ranges", multiple=True, callback=_parse_range,
              help="Height override lo:hi:height (mm), repeatable")
@click.option("--adjust", "-a", "edits", multiple=True, callback=_parse_adjust,
              help="Profile edit z:delta:band[:pull] (mm), repeatable")
@click.option("--limit", default=20, show_default=True, type=int,
              help="Number of layers to list (0 for all)")
def generate(
    layer_height: float,
    first_layer_height: str,
    object_height: float,
    raft_layers: int,
    nozzles: Tuple[float, ...],
    contact_distance: float,
    ranges: list,
    edits: list,
    limit: int,
) -> None:
    """Generate the object layers.

    Examples:
        layerplan layers generate -z 2
        layerplan layers generate -z 5 -r 1:2:0.1 --limit 0
    """
    from layerplan.slicing.layers import generate_object_layers, layer_intervals

    p = _build_params(layer_height, first_layer_height, object_height, raft_layers,
                      nozzles, contact_distance)
    out = generate_object_layers(p, _build_profile(p, ranges, edits))
    intervals = list(layer_intervals(out))
    top = intervals[-1][1] if intervals else 0.0

    console.print(Panel(
        f"[bold green]Layers Generated[/bold green]\n\n"
        f"Layers: {len(intervals)}\n"
        f"Top: {format_mm(top)} of {format_mm(p.object_print_z_height())}",
        title="Object Layers",
    ))

    shown = intervals if limit <= 0 else intervals[:limit]
    table = Table(title="Layers")
    table.add_column("#", justify="right")
    table.add_column("Bottom", justify="right")
    table.add_column("Top", justify="right")
    table.add_column("Height", justify="right")
    for i, (lo, hi) in enumerate(shown):
        table.add_row(str(i + 1), f"{lo:.3f}", f"{hi:.3f}", f"{hi - lo:.3f}")
    console.print(table)
    if len(shown) < len(intervals):
        console.print(f"[dim]... {len(intervals) - len(shown)} more[/dim]")


@layers.command()
@slicing_options
@click.option("--range", "-r", "ranges", multiple=True, callback=_parse_range,
              help="Height override lo:hi:height (mm), repeatable")
@click.option("--rows", default=64, show_default=True, type=int, help="Texture rows (even)")
@click.option("--cols", default=64, show_default=True, type=int, help="Texture columns (even)")
@click.option("--no-lod1", is_flag=True, help="Skip the half resolution level")
def texture(
    layer_height: float,
    first_layer_height: str,
    object_height: float,
    raft_layers: int,
    nozzles: Tuple[float, ...],
    contact_distance: float,
    ranges: list,
    rows: int,
    cols: int,
    no_lod1: bool,
) -> None:
    """Render the layer height texture and summarize it.

    Examples:
        layerplan layers texture -z 5 --rows 32 --cols 32
    """
    from layerplan.slicing.layers import generate_object_layers
    from layerplan.slicing.texture import allocate_texture, generate_layer_height_texture

    if rows <= 0 or rows % 2 or cols < 2 or cols % 2:
        raise click.BadParameter("rows and cols must be even, cols at least 2")

    p = _build_params(layer_height, first_layer_height, object_height, raft_layers,
                      nozzles, contact_distance)
    out = generate_object_layers(p, _build_profile(p, ranges, []))
    buffer = allocate_texture(rows, cols)
    ncells = generate_layer_height_texture(p, out, buffer, rows, cols, not no_lod1)

    lod0 = buffer[:rows * cols * 4]
    lod1 = buffer[rows * cols * 4:]
    console.print(Panel(
        f"[bold green]Texture Rendered[/bold green]\n\n"
        f"Size: {rows}x{cols}\n"
        f"Cells: {ncells}\n"
        f"Pixels written: {_count_pixels(lod0)}\n"
        f"LOD1 pixels written: {_count_pixels(lod1)}",
        title="Layer Height Texture",
    ))


def _count_pixels(data: bytearray) -> int:
    """Count pixels with a non-zero alpha."""
    return sum(1 for i in range(3, len(data), 4) if data[i])
