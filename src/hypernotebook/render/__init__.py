"""Renderer package. Importing it triggers renderer registration."""

# Register renderers with the global registry on package import
import hypernotebook.render.catalog  # noqa: F401
import hypernotebook.render.chart  # noqa: F401
import hypernotebook.render.mindmap  # noqa: F401
from hypernotebook.render.nodes import RenderNode
from hypernotebook.render.pipeline import render_records, render_to_dicts
from hypernotebook.render.registry import RendererRegistry, renderer_registry

__all__ = [
    "RenderNode",
    "RendererRegistry",
    "render_records",
    "render_to_dicts",
    "renderer_registry",
]
