"""
Graticule Generation by Forward Projection.

The graticule is a lattice of parallels (constant latitude) and meridians
(constant longitude). Each line is sampled at a fixed angular resolution,
projected forward, and split into strokes wherever a sample is not visible,
so a parallel cut by the visible region yields several disjoint arcs. On
horizontally repeating maps (Mercator) strokes are also split where they
cross the longitude seam, so no stroke jumps across the canvas.

Lattice
-------
- Parallels at `-90 + offset + i * lat_spacing` up to and including 90,
  each sampled at `segments + 1` longitudes across [-180, 180].
- Meridians at `-180 + i * lon_spacing` up to and including 180, each
  sampled at `segments + 1` latitudes across [-90, 90].

Strokes are returned as plain polylines annotated with the style; drawing
them (dash patterns, colour, width) is left to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple
import numpy as np

from common.constants import RenderingConstants
from common.logging_config import get_logger
from common.types import Polyline
from geospatial.angles import finite_or
from geospatial.projections import Projection

logger = get_logger(__name__)


class StrokeKind(str, Enum):
    """Line style applied uniformly to the whole graticule."""
    SOLID = "solid"
    DASH = "dash"
    DOT = "dot"
    DASHDOT = "dashdot"

    @property
    def dash_pattern(self) -> Tuple[int, ...]:
        """On/off pixel lengths; empty for a solid line."""
        return RenderingConstants.DASH_PATTERNS[self.value]


@dataclass
class GraticuleStyle:
    """Configuration of the graticule lattice and its strokes.

    Attributes
    ----------
    lon_spacing_deg : float
        Spacing between meridians. Non-positive values fall back to 15°.
    lat_spacing_deg : float
        Spacing between parallels. Non-positive values fall back to 15°.
    offset_deg : float
        Shift of the first parallel away from -90°.
    stroke_kind : StrokeKind
        Solid, dashed, dotted or dash-dot. Unknown kinds become solid.
    color : str
        Stroke colour, e.g. '#ffffff'.
    line_width : float
        Stroke width in pixels. Non-positive values fall back to 1.
    """
    lon_spacing_deg: float = RenderingConstants.DEFAULT_GRATICULE_SPACING_DEG
    lat_spacing_deg: float = RenderingConstants.DEFAULT_GRATICULE_SPACING_DEG
    offset_deg: float = 0.0
    stroke_kind: StrokeKind = StrokeKind.SOLID
    color: str = RenderingConstants.DEFAULT_GRATICULE_COLOR
    line_width: float = RenderingConstants.DEFAULT_LINE_WIDTH

    def __post_init__(self):
        self.lon_spacing_deg = _positive_or(
            self.lon_spacing_deg, RenderingConstants.DEFAULT_GRATICULE_SPACING_DEG
        )
        self.lat_spacing_deg = _positive_or(
            self.lat_spacing_deg, RenderingConstants.DEFAULT_GRATICULE_SPACING_DEG
        )
        self.offset_deg = finite_or(self.offset_deg, 0.0)
        self.line_width = _positive_or(self.line_width, RenderingConstants.DEFAULT_LINE_WIDTH)
        try:
            self.stroke_kind = StrokeKind(self.stroke_kind)
        except ValueError:
            logger.warning(f"Unknown stroke kind {self.stroke_kind!r}, using solid")
            self.stroke_kind = StrokeKind.SOLID
        if not self.color:
            self.color = RenderingConstants.DEFAULT_GRATICULE_COLOR

    @property
    def dash_pattern(self) -> Tuple[int, ...]:
        return self.stroke_kind.dash_pattern

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GraticuleStyle":
        """Build a style from a plain mapping, ignoring unknown keys."""
        known = {
            "lon_spacing_deg", "lat_spacing_deg", "offset_deg",
            "stroke_kind", "color", "line_width",
        }
        return cls(**{k: v for k, v in data.items() if k in known})


def _positive_or(value: Any, default: float) -> float:
    value = finite_or(value, default)
    return value if value > 0 else default


@dataclass
class Graticule:
    """Generated graticule strokes.

    Attributes
    ----------
    parallels : list of Polyline
        Strokes of constant latitude.
    meridians : list of Polyline
        Strokes of constant longitude.
    style : GraticuleStyle
        Style shared by every stroke.
    """
    parallels: List[Polyline] = field(default_factory=list)
    meridians: List[Polyline] = field(default_factory=list)
    style: GraticuleStyle = field(default_factory=GraticuleStyle)

    @property
    def lines(self) -> List[Polyline]:
        """All strokes, parallels first."""
        return self.parallels + self.meridians


class GraticuleGenerator:
    """Generates graticule polylines for a projection.

    Parameters
    ----------
    style : GraticuleStyle, optional
        Lattice spacing and stroke style.
    segments : int
        Number of segments each line is sampled with.
    """

    def __init__(
        self,
        style: Optional[GraticuleStyle] = None,
        segments: int = RenderingConstants.GRATICULE_SEGMENTS
    ):
        if segments < 1:
            raise ValueError("segments must be positive")
        self.style = style or GraticuleStyle()
        self.segments = int(segments)
        self._logger = get_logger("GraticuleGenerator")

    def parallel_latitudes(self) -> List[float]:
        """Latitudes (degrees) of the parallels to draw."""
        start = -90.0 + self.style.offset_deg
        values = []
        i = 0
        while start + i * self.style.lat_spacing_deg <= 90.0:
            values.append(start + i * self.style.lat_spacing_deg)
            i += 1
        return values

    def meridian_longitudes(self) -> List[float]:
        """Longitudes (degrees) of the meridians to draw, 180° included."""
        values = []
        i = 0
        while -180.0 + i * self.style.lon_spacing_deg < RenderingConstants.MERIDIAN_STOP_DEG:
            values.append(-180.0 + i * self.style.lon_spacing_deg)
            i += 1
        return values

    def generate(self, projection: Projection, width: float, height: float) -> Graticule:
        """Project the whole lattice.

        Parameters
        ----------
        projection : Projection
            Projection to draw the lattice in.
        width, height : float
            Canvas size in pixels.

        Returns
        -------
        Graticule
            Parallels and meridians as visible strokes.
        """
        parallels: List[Polyline] = []
        for lat_deg in self.parallel_latitudes():
            parallels.extend(self.parallel(projection, lat_deg, width, height))

        meridians: List[Polyline] = []
        for lon_deg in self.meridian_longitudes():
            meridians.extend(self.meridian(projection, lon_deg, width, height))

        self._logger.debug(
            f"Graticule for {projection.name}: "
            f"{len(parallels)} parallel and {len(meridians)} meridian strokes"
        )
        return Graticule(parallels=parallels, meridians=meridians, style=self.style)

    def parallel(
        self,
        projection: Projection,
        lat_deg: float,
        width: float,
        height: float
    ) -> List[Polyline]:
        """Strokes tracing the parallel at `lat_deg`."""
        lat = np.radians(lat_deg)
        samples = [
            (lat, np.radians(-180.0 + 360.0 * i / self.segments))
            for i in range(self.segments + 1)
        ]
        return self._trace(projection, samples, width, height, "parallel", lat_deg)

    def meridian(
        self,
        projection: Projection,
        lon_deg: float,
        width: float,
        height: float
    ) -> List[Polyline]:
        """Strokes tracing the meridian at `lon_deg`."""
        lon = np.radians(lon_deg)
        samples = [
            (np.radians(-90.0 + 180.0 * i / self.segments), lon)
            for i in range(self.segments + 1)
        ]
        return self._trace(projection, samples, width, height, "meridian", lon_deg)

    def _trace(
        self,
        projection: Projection,
        samples: List[Tuple[float, float]],
        width: float,
        height: float,
        kind: str,
        value_deg: float
    ) -> List[Polyline]:
        """Forward-project samples, breaking the stroke at invisible ones.

        On maps that repeat horizontally the stroke is also broken where
        consecutive samples land more than half a period apart, i.e. where
        the line crosses the longitude seam.
        """
        strokes: List[Polyline] = []
        current: List[Tuple[float, float]] = []
        period = projection.wrap_width(width, height)

        for lat, lon in samples:
            point = projection.forward(lat, lon, width, height)
            if point.visible:
                if current and period is not None and abs(point.x - current[-1][0]) > period / 2:
                    self._flush(strokes, current, kind, value_deg)
                    current = []
                current.append(point.as_tuple())
                continue
            if current:
                self._flush(strokes, current, kind, value_deg)
                current = []
        if current:
            self._flush(strokes, current, kind, value_deg)

        return strokes

    @staticmethod
    def _flush(
        strokes: List[Polyline],
        points: List[Tuple[float, float]],
        kind: str,
        value_deg: float
    ) -> None:
        # A single point draws nothing
        if len(points) >= 2:
            strokes.append(Polyline(points=points, kind=kind, value_deg=value_deg))
