"""GPS infrastructure - geodesy and location sources."""

from .distance import calculate_bearing, calculate_distance, offset_position
from .sources import (
    Disposer,
    GpsdConfig,
    GpsdLocationSource,
    LocationSource,
    SimulatedLocationSource,
    parse_tpv,
)

__all__ = [
    "Disposer",
    "GpsdConfig",
    "GpsdLocationSource",
    "LocationSource",
    "SimulatedLocationSource",
    "calculate_bearing",
    "calculate_distance",
    "offset_position",
    "parse_tpv",
]
