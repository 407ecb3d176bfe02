"""Layer height planning core of a fused filament slicer."""

__version__ = "0.1.0"
