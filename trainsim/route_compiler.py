# trainsim/route_compiler.py
"""
Route 配列（駅IDと生の座標が混在した列）から
ウェイポイント列・ホーム・総距離を構築する。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from trainsim.errors import InvalidReferenceError, MalformedRouteError
from trainsim.geometry import polyline_length
from trainsim.timetable_models import (
    CoordinateScalar,
    RouteEntry,
    Station,
    StationPlatform,
    StationRef,
    Waypoint,
)

logger = logging.getLogger(__name__)


@dataclass
class CompiledRoute:
    waypoints: List[Waypoint]
    platforms: List[StationPlatform]
    total_distance: float


def to_route_entry(raw: Any) -> RouteEntry:
    """
    JSON 由来の値を RouteEntry に変換する。

    - 文字列 → StationRef
    - 数値 → CoordinateScalar（bool は数値として扱わない）
    - それ以外 → MalformedRouteError
    """
    if isinstance(raw, (StationRef, CoordinateScalar)):
        return raw
    if isinstance(raw, str):
        return StationRef(raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return CoordinateScalar(float(raw))
    raise MalformedRouteError(f"Unexpected {type(raw).__name__} in route array: {raw!r}")


def compile_route(
    line_id: str,
    entries: Sequence[Any],
    stations: Mapping[str, Station],
) -> CompiledRoute:
    """
    Route 配列を左から順に走査してポリラインを組み立てる。

    - 駅ID: その駅の座標にウェイポイントを置き、ホームを1つ作る。
      ホームの prev_index は直前に出てきたホーム（最初のホームは None）。
    - 数値: 緯度。直後にもう1つ数値（経度）が必要。

    Raises:
        InvalidReferenceError: 未知の駅ID
        MalformedRouteError: 経度の欠落・想定外の型
    """
    route = [to_route_entry(e) for e in entries]

    waypoints: List[Waypoint] = []
    platforms: List[StationPlatform] = []
    prev_platform_index: Optional[int] = None

    i = 0
    while i < len(route):
        entry = route[i]
        index = len(waypoints)

        if isinstance(entry, StationRef):
            station = stations.get(entry.station_id)
            if station is None:
                raise InvalidReferenceError(
                    f"Invalid station id {entry.station_id} in line {line_id}"
                )
            platform_index = len(platforms)
            platforms.append(
                StationPlatform(
                    station_id=station.id,
                    line_id=line_id,
                    waypoint_index=index,
                    prev_index=prev_platform_index,
                )
            )
            prev_platform_index = platform_index
            waypoints.append(
                Waypoint(
                    lat=station.lat,
                    lon=station.lon,
                    index=index,
                    platform_index=platform_index,
                )
            )
        else:
            i += 1
            if i >= len(route):
                raise MalformedRouteError(
                    f"Expected lon after lat coordinate in line {line_id}"
                )
            lon = route[i]
            if not isinstance(lon, CoordinateScalar):
                raise MalformedRouteError(
                    f"Expected lon after lat coordinate in line {line_id}, "
                    f"got station {lon.station_id}"
                )
            waypoints.append(Waypoint(lat=entry.value, lon=lon.value, index=index))
        i += 1

    total_distance = polyline_length([(w.lat, w.lon) for w in waypoints])

    logger.debug(
        "Compiled route for line %s: %d waypoints, %d platforms, distance %.6f",
        line_id,
        len(waypoints),
        len(platforms),
        total_distance,
    )
    return CompiledRoute(
        waypoints=waypoints,
        platforms=platforms,
        total_distance=total_distance,
    )
