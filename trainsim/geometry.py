# trainsim/geometry.py
"""
平面上の座標計算ユーティリティ。

NOTE:
  - (lat, lon) をそのまま平面座標として扱う（地球の曲率は考慮しない）。
    路線が十分小さいので近似で足りる。
"""
from __future__ import annotations

import math
from typing import Sequence, Tuple

Coord = Tuple[float, float]


def euclidean_distance(a: Coord, b: Coord) -> float:
    """2点間のユークリッド距離"""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def linear_interpolate(a: Coord, b: Coord, factor: float) -> Coord:
    lat = a[0] + factor * (b[0] - a[0])
    lon = a[1] + factor * (b[1] - a[1])
    return (lat, lon)


def polyline_length(points: Sequence[Coord]) -> float:
    """隣り合う点同士の距離の合計"""
    total = 0.0
    for i in range(1, len(points)):
        total += euclidean_distance(points[i - 1], points[i])
    return total
