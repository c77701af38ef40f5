"""
End-to-End Frame Rendering.

Builds a projection from caller parameters, resamples the equirectangular
source through it, and generates the graticule to layer on top. The
renderer stops at plain results: compositing (circular clip masks,
outlines, stroke rasterization) is left to the display layer, which uses
`RenderResult.needs_circular_clipping` to decide on the mask.
"""

from dataclasses import dataclass, field
import time
from typing import Any, Mapping, Optional
import uuid

from common.constants import RenderingConstants
from common.logging_config import get_logger, AuditLogger
from common.types import ProjectionParameters, RasterBuffer
from geospatial.factory import ProjectionCache, ProjectionFactory
from geospatial.projections import Projection
from rendering.graticule import Graticule, GraticuleGenerator, GraticuleStyle
from rendering.resampler import ImageResampler, ResampleConfig

logger = get_logger(__name__)


@dataclass
class RenderConfig:
    """Configuration for the renderer.

    Attributes
    ----------
    width, height : int
        Destination canvas size in pixels.
    cache_enabled : bool
        Whether to reuse projections across renders.
    cache_capacity : int
        Maximum number of cached projections.
    segments : int
        Samples per graticule line.
    resample : ResampleConfig
        Resampler configuration.
    graticule : GraticuleStyle
        Graticule lattice and stroke style.
    """
    width: int = 600
    height: int = 600
    cache_enabled: bool = True
    cache_capacity: int = RenderingConstants.DEFAULT_CACHE_CAPACITY
    segments: int = RenderingConstants.GRATICULE_SEGMENTS
    resample: ResampleConfig = field(default_factory=ResampleConfig)
    graticule: GraticuleStyle = field(default_factory=GraticuleStyle)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RenderConfig":
        """Build a config from a plain mapping, ignoring unknown keys.

        Nested 'resample' and 'graticule' mappings are accepted.
        """
        defaults = cls()
        resample = data.get("resample") or {}
        background = resample.get("background", defaults.resample.background)
        return cls(
            width=int(data.get("width", defaults.width)),
            height=int(data.get("height", defaults.height)),
            cache_enabled=bool(data.get("cache_enabled", defaults.cache_enabled)),
            cache_capacity=int(data.get("cache_capacity", defaults.cache_capacity)),
            segments=int(data.get("segments", defaults.segments)),
            resample=ResampleConfig(
                background=tuple(background),
                rows_per_block=int(resample.get("rows_per_block", defaults.resample.rows_per_block)),
                max_workers=resample.get("max_workers", defaults.resample.max_workers),
            ),
            graticule=GraticuleStyle.from_dict(data.get("graticule") or {}),
        )


@dataclass
class RenderResult:
    """Output of one render.

    Attributes
    ----------
    image : RasterBuffer
        The resampled, projected raster.
    graticule : Graticule
        Graticule strokes in canvas coordinates.
    projection : Projection
        The projection used.
    needs_circular_clipping : bool
        Whether the display layer should clip to the inscribed disk.
    run_id : str
        Audit run identifier.
    """
    image: RasterBuffer
    graticule: Graticule
    projection: Projection
    needs_circular_clipping: bool
    run_id: str


class MapRenderer:
    """Renders equirectangular images into projected frames.

    Parameters
    ----------
    config : RenderConfig, optional
        Renderer configuration.

    Examples
    --------
    >>> renderer = MapRenderer(RenderConfig(width=200, height=200))
    >>> source = RasterBuffer.blank(360, 180, (0, 0, 255, 255))
    >>> result = renderer.render(ProjectionParameters(), source)
    >>> result.needs_circular_clipping
    True
    """

    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()
        cache = ProjectionCache(self.config.cache_capacity) if self.config.cache_enabled else None
        self.factory = ProjectionFactory(cache=cache)
        self.resampler = ImageResampler(self.config.resample)
        self.graticule_generator = GraticuleGenerator(
            self.config.graticule, segments=self.config.segments
        )
        self._audit = AuditLogger()
        self._logger = get_logger("MapRenderer")

    def render(
        self,
        parameters: ProjectionParameters,
        source: RasterBuffer,
        run_id: Optional[str] = None
    ) -> RenderResult:
        """Render one frame.

        Parameters
        ----------
        parameters : ProjectionParameters
            Projection type, centre and extent.
        source : RasterBuffer
            Equirectangular source image.
        run_id : str, optional
            Audit run identifier; generated when omitted.

        Returns
        -------
        RenderResult
            Projected raster, graticule strokes and clipping flag.
        """
        run_id = run_id or f"render-{uuid.uuid4().hex[:12]}"
        width, height = self.config.width, self.config.height

        with self._audit.run_context(run_id, config=parameters.to_dict()) as run:
            started = time.perf_counter()

            projection = self.factory.create_from_parameters(parameters)
            image = self.resampler.resample(projection, source, width, height)
            graticule = self.graticule_generator.generate(projection, width, height)

            elapsed = time.perf_counter() - started
            run.output_metadata.update({
                "projection": projection.name,
                "width": width,
                "height": height,
                "graticule_strokes": len(graticule.lines),
                "elapsed_s": elapsed,
            })
            if self.factory.cache is not None:
                run.output_metadata["cache"] = self.factory.cache.stats()

        self._logger.info(
            f"Rendered {width}x{height} {projection.name} frame in {elapsed:.3f}s "
            f"({len(graticule.lines)} graticule strokes)"
        )

        return RenderResult(
            image=image,
            graticule=graticule,
            projection=projection,
            needs_circular_clipping=projection.needs_circular_clipping(),
            run_id=run_id,
        )
