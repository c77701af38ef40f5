"""
Rendering Module: resampling, graticule generation and frame rendering.
"""

from rendering.resampler import (
    ImageResampler,
    ResampleConfig,
    equirectangular_indices,
    sample_pixel,
)

from rendering.graticule import (
    Graticule,
    GraticuleGenerator,
    GraticuleStyle,
    StrokeKind,
)

from rendering.pipeline import (
    MapRenderer,
    RenderConfig,
    RenderResult,
)

__all__ = [
    "ImageResampler",
    "ResampleConfig",
    "equirectangular_indices",
    "sample_pixel",
    "Graticule",
    "GraticuleGenerator",
    "GraticuleStyle",
    "StrokeKind",
    "MapRenderer",
    "RenderConfig",
    "RenderResult",
]
