# trainsim/train_position.py
"""
列車の現在位置（緯度・経度）を計算する。

現在の停車ホーム A → 次の停車ホーム B 間のウェイポイント列に沿って、
進捗率 cur_progress に対応する点を距離比で求める。
"""
from __future__ import annotations

import logging
from typing import Sequence

from trainsim.geometry import Coord, euclidean_distance, linear_interpolate
from trainsim.timetable_models import ServiceLine, Train, Waypoint

logger = logging.getLogger(__name__)


def _path_indices(start_idx: int, end_idx: int) -> range:
    step = 1 if end_idx >= start_idx else -1
    return range(start_idx, end_idx + step, step)


def interpolate_along(
    waypoints: Sequence[Waypoint],
    start_idx: int,
    end_idx: int,
    progress: float,
) -> Coord:
    """
    waypoints[start_idx] から waypoints[end_idx] までのパス上で、
    総距離 × progress の地点の座標を返す。

    目標距離に届かないまま走査が終わった場合（本来は起こらない）は
    終点の座標を返す。
    """
    path = [(waypoints[i].lat, waypoints[i].lon) for i in _path_indices(start_idx, end_idx)]

    distances = [euclidean_distance(path[i], path[i + 1]) for i in range(len(path) - 1)]
    target_distance = progress * sum(distances)

    cumulative = 0.0
    for i, d in enumerate(distances):
        if cumulative + d >= target_distance:
            if d == 0:
                return path[i]
            factor = (target_distance - cumulative) / d
            return linear_interpolate(path[i], path[i + 1], factor)
        cumulative += d

    if distances:
        logger.warning(
            "Interpolation walk exhausted path %d->%d (progress=%.4f); snapping to end",
            start_idx,
            end_idx,
            progress,
        )
    return path[-1]


def update_position(train: Train, line: ServiceLine) -> None:
    """走行中の列車の lat/lon を更新する。終着済みの列車は何もしない。"""
    if train.terminated or train.cur_stop is None or train.cur_stop.next is None:
        return

    start = line.platform_waypoint(train.cur_stop.platform_index)
    end = line.platform_waypoint(train.cur_stop.next.platform_index)

    train.lat, train.lon = interpolate_along(
        line.waypoints,
        start.index,
        end.index,
        train.cur_progress,
    )
