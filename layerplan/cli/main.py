"""Main CLI entry point for the layer planner."""

import click
from rich.console import Console

from layerplan import __version__

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="layerplan")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Layer height planning for fused filament printing.

    Derives slicing parameters, builds and edits layer height profiles,
    generates object layers and renders preview textures.
    """
    from layerplan.config import get_settings
    from layerplan.utils import setup_logging

    setup_logging("DEBUG" if verbose else get_settings().log_level)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# Import and register command groups
from layerplan.cli.layers_cmd import layers

cli.add_command(layers)


@cli.command()
def status() -> None:
    """Show version and configuration."""
    from layerplan.config import get_settings

    settings = get_settings()

    console.print("[bold]Layer Planner Status[/bold]")
    console.print(f"Version: {__version__}")
    console.print()
    console.print("[bold]Configuration:[/bold]")
    console.print(f"  Cusp Value: {settings.cusp_value}mm")
    console.print(f"  Minimum Layer Height: {settings.min_layer_height_floor}mm")
    console.print(f"  Edit Resolution: {settings.adjust_z_step}mm")
    console.print(f"  Log Level: {settings.log_level}")


def main() -> None:
    """Run the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
