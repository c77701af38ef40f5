"""
Inverse-Mapping Resampler from Equirectangular Sources.

Every destination pixel is mapped back through the inverse projection to a
(latitude, longitude) pair, which indexes the equirectangular source image
linearly:

    srcX = (lon + π) / (2π) · sourceWidth
    srcY = (π/2 − lat) / π · sourceHeight

Both indices are floored (nearest neighbour, no interpolation). Pixels with
no geographic preimage, or whose source index falls outside the image, are
filled with the background colour.

Work Partitioning
-----------------
Pixels are independent, so the destination is processed in blocks of rows.
Blocks can run on a thread pool; each block writes a disjoint slice of the
output. A full resample recomputes every pixel; there is no incremental
update.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from common.constants import RenderingConstants
from common.logging_config import get_logger
from common.types import RGBA, RasterBuffer
from geospatial.projections import Projection

logger = get_logger(__name__)


@dataclass
class ResampleConfig:
    """Configuration for resampling.

    Attributes
    ----------
    background : tuple of int
        RGBA colour for pixels without a source sample.
    rows_per_block : int
        Number of destination rows mapped per vectorized block.
    max_workers : int, optional
        Thread pool size for row blocks. None or 1 runs sequentially.
    """
    background: RGBA = RenderingConstants.BACKGROUND_RGBA
    rows_per_block: int = 64
    max_workers: Optional[int] = None

    def __post_init__(self):
        if self.rows_per_block < 1:
            raise ValueError("rows_per_block must be positive")
        if len(self.background) != 4:
            raise ValueError("background must be an RGBA quadruple")


def equirectangular_indices(
    lat: NDArray[np.float64],
    lon: NDArray[np.float64],
    source_width: int,
    source_height: int
) -> Tuple[NDArray[np.intp], NDArray[np.intp], NDArray[np.bool_]]:
    """Map geographic coordinates to source pixel indices.

    Parameters
    ----------
    lat, lon : ndarray
        Coordinates in radians. NaN entries are reported out of bounds.
    source_width, source_height : int
        Size of the equirectangular source.

    Returns
    -------
    Tuple[ndarray, ndarray, ndarray]
        (column, row, in_bounds). Indices outside the mask are set to 0.
    """
    with np.errstate(invalid='ignore'):
        src_x = np.floor((lon + np.pi) / (2 * np.pi) * source_width)
        src_y = np.floor((np.pi / 2 - lat) / np.pi * source_height)
        in_bounds = (
            (src_x >= 0) & (src_x < source_width)
            & (src_y >= 0) & (src_y < source_height)
        )
    ix = np.where(in_bounds, src_x, 0).astype(np.intp)
    iy = np.where(in_bounds, src_y, 0).astype(np.intp)
    return ix, iy, in_bounds


def sample_pixel(
    projection: Projection,
    source: RasterBuffer,
    x: int,
    y: int,
    width: int,
    height: int,
    background: RGBA = RenderingConstants.BACKGROUND_RGBA
) -> RGBA:
    """Resample a single destination pixel using the scalar inverse."""
    point = projection.inverse(x, y, width, height)
    if not point.visible:
        return tuple(background)
    src_x = int(np.floor((point.longitude + np.pi) / (2 * np.pi) * source.width))
    src_y = int(np.floor((np.pi / 2 - point.latitude) / np.pi * source.height))
    if 0 <= src_x < source.width and 0 <= src_y < source.height:
        return source.pixel(src_x, src_y)
    return tuple(background)


class ImageResampler:
    """Reprojects an equirectangular raster through a projection.

    Parameters
    ----------
    config : ResampleConfig, optional
        Resampling configuration.
    """

    def __init__(self, config: Optional[ResampleConfig] = None):
        self.config = config or ResampleConfig()
        self._logger = get_logger("ImageResampler")

    def resample(
        self,
        projection: Projection,
        source: RasterBuffer,
        width: int,
        height: int
    ) -> RasterBuffer:
        """Produce a projected raster of size `width` x `height`.

        Parameters
        ----------
        projection : Projection
            Projection whose inverse drives the sampling.
        source : RasterBuffer
            Equirectangular source image.
        width, height : int
            Destination canvas size in pixels.

        Returns
        -------
        RasterBuffer
            A new destination raster; the source is not modified.

        Raises
        ------
        ValueError
            If the destination size is not a pair of positive integers.
        """
        width, height = _validate_size(width, height)
        destination = RasterBuffer.blank(width, height, self.config.background)

        blocks = [
            (start, min(start + self.config.rows_per_block, height))
            for start in range(0, height, self.config.rows_per_block)
        ]

        workers = self.config.max_workers
        if workers is not None and workers > 1 and len(blocks) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                sampled = sum(pool.map(
                    lambda block: self._resample_rows(projection, source, destination, *block),
                    blocks
                ))
        else:
            sampled = sum(
                self._resample_rows(projection, source, destination, start, stop)
                for start, stop in blocks
            )

        self._logger.debug(
            f"Resampled {width}x{height} through {projection.name}: "
            f"{sampled} of {width * height} pixels from source"
        )
        return destination

    def _resample_rows(
        self,
        projection: Projection,
        source: RasterBuffer,
        destination: RasterBuffer,
        row_start: int,
        row_stop: int
    ) -> int:
        """Fill rows [row_start, row_stop) of `destination`.

        Returns the number of pixels copied from the source.
        """
        cols = np.arange(destination.width, dtype=np.float64)
        rows = np.arange(row_start, row_stop, dtype=np.float64)
        xx, yy = np.meshgrid(cols, rows)

        geo = projection.inverse_array(xx, yy, destination.width, destination.height)
        ix, iy, in_bounds = equirectangular_indices(
            geo.latitude, geo.longitude, source.width, source.height
        )
        take = geo.visible & in_bounds

        count = int(np.count_nonzero(take))
        if count == 0:
            return 0

        block = destination.pixels[row_start:row_stop]
        block[take] = source.sample(ix[take], iy[take])
        return count


def _validate_size(width, height) -> Tuple[int, int]:
    try:
        w, h = int(width), int(height)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Canvas size must be integers, got {width!r}x{height!r}") from e
    if w != width or h != height or w < 1 or h < 1:
        raise ValueError(f"Canvas size must be positive integers, got {width!r}x{height!r}")
    return w, h
