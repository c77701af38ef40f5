"""
Projection Factory and Bounded Projection Cache.

The factory is the boundary between caller-supplied parameters and the
projection engine. It resolves the projection type, converts angle
quantities, replaces non-finite values with safe defaults, and records
every correction it applies (including the clamps the projections perform)
with the audit logger.

Caching
-------
Projections are immutable, so a cache hit can return the exact shared
instance. Keys quantize the parameters to two decimal places and the cached
instance is built from the quantized values, so a key fully describes the
state of the projection it maps to. The cache is bounded; inserting past
capacity evicts the oldest-created entry. Eviction order is not LRU.
"""

from dataclasses import dataclass
import threading
from typing import Dict, Hashable, Optional, Tuple, Type

import numpy as np
import pint

from common.constants import ProjectionConstants, RenderingConstants
from common.logging_config import get_logger, AuditLogger
from common.types import ProjectionParameters, ProjectionType
from common.units import AngleLike, angle_to_degrees
from geospatial.angles import clamp, finite_or
from geospatial.projections import (
    MercatorProjection,
    OrthographicProjection,
    Projection,
    StereographicProjection,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProjectionTypeInfo:
    """Registry entry describing a projection type.

    Attributes
    ----------
    name : str
        Display name.
    projection_class : type
        Concrete `Projection` subclass.
    parameter_label : str
        Label of the extent parameter.
    min_deg, max_deg : float
        Clamp range of the extent parameter.
    """
    name: str
    projection_class: Type[Projection]
    parameter_label: str
    min_deg: float
    max_deg: float


def _info(cls: Type[Projection]) -> ProjectionTypeInfo:
    lo, hi = cls.EDGE_RANGE_DEG
    return ProjectionTypeInfo(
        name=cls.display_name,
        projection_class=cls,
        parameter_label=cls.parameter_label,
        min_deg=lo,
        max_deg=hi,
    )


PROJECTION_TYPES: Dict[ProjectionType, ProjectionTypeInfo] = {
    ProjectionType.ORTHOGRAPHIC: _info(OrthographicProjection),
    ProjectionType.MERCATOR: _info(MercatorProjection),
    ProjectionType.STEREOGRAPHIC: _info(StereographicProjection),
}


CacheKey = Tuple[str, float, float, float, bool]


def make_cache_key(
    projection_type: ProjectionType,
    center_latitude_deg: float,
    center_longitude_deg: float,
    edge_angle_deg: float,
    clamp_latitude: bool = True
) -> CacheKey:
    """Quantize parameters into a cache key."""
    decimals = RenderingConstants.CACHE_KEY_DECIMALS
    return (
        projection_type.value,
        round(center_latitude_deg, decimals),
        round(center_longitude_deg, decimals),
        round(edge_angle_deg, decimals),
        bool(clamp_latitude),
    )


class ProjectionCache:
    """Bounded, thread-safe map from parameter keys to projections.

    Parameters
    ----------
    capacity : int
        Maximum number of entries. Must be positive.

    Notes
    -----
    All reads and writes are guarded by a lock. When full, the entry that
    was inserted first is evicted before the new one is added.
    """

    def __init__(self, capacity: int = RenderingConstants.DEFAULT_CACHE_CAPACITY):
        if capacity < 1:
            raise ValueError("Cache capacity must be positive")
        self._capacity = int(capacity)
        self._entries: Dict[Hashable, Projection] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: Hashable) -> Optional[Projection]:
        with self._lock:
            projection = self._entries.get(key)
            if projection is None:
                self.misses += 1
            else:
                self.hits += 1
            return projection

    def put(self, key: Hashable, projection: Projection) -> Projection:
        """Insert `projection` unless `key` is already present.

        Returns the instance stored under `key`, which is the existing one
        if another caller inserted it first.
        """
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing
            if len(self._entries) >= self._capacity:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self.evictions += 1
                logger.debug(f"Evicted projection cache entry {oldest}")
            self._entries[key] = projection
            return projection

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
            self.evictions = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "capacity": self._capacity,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }


class ProjectionFactory:
    """Builds projections from caller parameters.

    Parameters
    ----------
    cache : ProjectionCache, optional
        When given, projections are looked up and stored by quantized
        parameters.

    Examples
    --------
    >>> factory = ProjectionFactory(cache=ProjectionCache(capacity=20))
    >>> ortho = factory.create("orthographic", 40.71, -74.01, 90)
    >>> ortho is factory.create("ortho", 40.712, -74.008, 90.001)
    True
    """

    def __init__(self, cache: Optional[ProjectionCache] = None):
        self.cache = cache
        self._audit = AuditLogger()
        self._logger = get_logger("ProjectionFactory")

    def create(
        self,
        projection_type,
        center_latitude_deg: AngleLike,
        center_longitude_deg: AngleLike,
        edge_angle_deg: AngleLike,
        clamp_latitude: bool = True
    ) -> Projection:
        """Create (or fetch from cache) a projection.

        Parameters
        ----------
        projection_type : str or ProjectionType
            Type tag; unknown tags default to orthographic.
        center_latitude_deg, center_longitude_deg : float or pint.Quantity
            Projection centre. Non-finite values default to 0.
        edge_angle_deg : float or pint.Quantity
            Edge angle or Mercator maximum latitude. Non-finite values
            default to 90.
        clamp_latitude : bool
            Mercator latitude clamping; ignored by other projections.

        Returns
        -------
        Projection
            The projection instance.

        Raises
        ------
        ValueError
            If a quantity does not have angle dimensionality.
        """
        ptype = self._resolve_type(projection_type)
        lat = self._finite_degrees("center_latitude_deg", center_latitude_deg,
                                   ProjectionConstants.DEFAULT_CENTER_LATITUDE, ptype)
        lon = self._finite_degrees("center_longitude_deg", center_longitude_deg,
                                   ProjectionConstants.DEFAULT_CENTER_LONGITUDE, ptype)
        edge = self._finite_degrees("edge_angle_deg", edge_angle_deg,
                                    ProjectionConstants.DEFAULT_EDGE_ANGLE, ptype)
        self._record_clamps(ptype, lat, edge)
        if ptype is not ProjectionType.MERCATOR:
            clamp_latitude = True

        if self.cache is None:
            return self._build(ptype, lat, lon, edge, clamp_latitude)

        key = make_cache_key(ptype, lat, lon, edge, clamp_latitude)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        _, q_lat, q_lon, q_edge, _ = key
        return self.cache.put(key, self._build(ptype, q_lat, q_lon, q_edge, clamp_latitude))

    def create_from_parameters(self, parameters: ProjectionParameters) -> Projection:
        """Create a projection from a `ProjectionParameters` record."""
        return self.create(
            parameters.projection_type,
            parameters.center_latitude_deg,
            parameters.center_longitude_deg,
            parameters.edge_angle_deg,
            clamp_latitude=parameters.clamp_latitude,
        )

    def _build(
        self,
        ptype: ProjectionType,
        lat: float,
        lon: float,
        edge: float,
        clamp_latitude: bool
    ) -> Projection:
        cls = PROJECTION_TYPES[ptype].projection_class
        if cls is MercatorProjection:
            projection = MercatorProjection(lat, lon, edge, clamp_latitude=clamp_latitude)
        else:
            projection = cls(lat, lon, edge)
        self._logger.debug(f"Built {projection!r}")
        return projection

    def _resolve_type(self, projection_type) -> ProjectionType:
        ptype = ProjectionType.parse(projection_type)
        if not ProjectionType.is_known(projection_type):
            self._audit.log_parameter_correction(
                parameter="projection_type",
                original_value=projection_type,
                corrected_value=ptype.value,
                reason="unknown_type",
            )
        return ptype

    def _finite_degrees(
        self,
        parameter: str,
        value: AngleLike,
        default: float,
        ptype: ProjectionType
    ) -> float:
        if isinstance(value, pint.Quantity):
            degrees = angle_to_degrees(value)
        else:
            degrees = finite_or(value, float("nan"))
        if np.isfinite(degrees):
            return degrees
        self._audit.log_parameter_correction(
            parameter=parameter,
            original_value=value,
            corrected_value=default,
            reason="non_finite",
            context={"projection_type": ptype.value},
        )
        return default

    def _record_clamps(self, ptype: ProjectionType, lat: float, edge: float) -> None:
        info = PROJECTION_TYPES[ptype]
        clamped_edge = clamp(edge, info.min_deg, info.max_deg)
        if clamped_edge != edge:
            self._audit.log_parameter_correction(
                parameter="edge_angle_deg",
                original_value=edge,
                corrected_value=clamped_edge,
                reason="clamped",
                context={"projection_type": ptype.value},
            )
        clamped_lat = clamp(lat, -90.0, 90.0)
        if clamped_lat != lat:
            self._audit.log_parameter_correction(
                parameter="center_latitude_deg",
                original_value=lat,
                corrected_value=clamped_lat,
                reason="clamped",
                context={"projection_type": ptype.value},
            )


def create_projection(
    projection_type,
    center_latitude_deg: AngleLike,
    center_longitude_deg: AngleLike,
    edge_angle_deg: AngleLike,
    clamp_latitude: bool = True
) -> Projection:
    """Create an uncached projection. See `ProjectionFactory.create`."""
    return ProjectionFactory().create(
        projection_type,
        center_latitude_deg,
        center_longitude_deg,
        edge_angle_deg,
        clamp_latitude=clamp_latitude,
    )
