"""Shared utilities for the layer planner."""

import logging
from typing import Iterable, Iterator, Sequence, Tuple

from rich.console import Console
from rich.logging import RichHandler

# Rich console for pretty output
console = Console()


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Set up logging with Rich handler."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    return logging.getLogger("layerplan")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module."""
    return logging.getLogger(f"layerplan.{name}")


def pairwise_flat(values: Sequence[float]) -> Iterator[Tuple[float, float]]:
    """Iterate a flat even-length sequence as consecutive pairs."""
    assert len(values) % 2 == 0, "flat sequence must have even length"
    for i in range(0, len(values), 2):
        yield values[i], values[i + 1]


def flatten_pairs(pairs: Iterable[Tuple[float, float]]) -> list:
    """Flatten (a, b) pairs into [a0, b0, a1, b1, ...]."""
    out = []
    for a, b in pairs:
        out.append(a)
        out.append(b)
    return out


def clamp(low: float, high: float, value: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation between a and b."""
    return (1.0 - t) * a + t * b


def format_mm(value: float, digits: int = 3) -> str:
    """Format a length in millimetres."""
    return f"{value:.{digits}f}mm"
