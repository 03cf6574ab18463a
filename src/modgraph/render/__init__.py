"""Rendering of module graphs as Graphviz descriptions."""

from .graphviz import OUTPUT_FORMATS, DotRenderer, render_dot
from .palette import Palette

__all__ = [
    "OUTPUT_FORMATS",
    "DotRenderer",
    "Palette",
    "render_dot",
]
