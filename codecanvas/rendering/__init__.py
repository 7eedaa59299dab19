"""
Result rendering: presentation surface, artifacts and the sandbox renderer.
"""

from .artifacts import ArtifactReference, ArtifactStore, BinaryArtifact
from .page import render_page, write_page
from .renderer import SANDBOX_ALLOW_LIST, PlotExports, SandboxRenderer
from .scaffold import wrap_fragment
from .surface import Element, RenderContainer

__all__ = [
    "ArtifactReference",
    "ArtifactStore",
    "BinaryArtifact",
    "Element",
    "PlotExports",
    "RenderContainer",
    "SANDBOX_ALLOW_LIST",
    "SandboxRenderer",
    "render_page",
    "wrap_fragment",
    "write_page",
]
