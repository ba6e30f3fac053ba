# trainsim/timetable_models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

MINUTES_PER_DAY = 24 * 60
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY  # 10080


@dataclass(frozen=True)
class Station:
    """駅（例: WTC）。読み込み後は不変。"""

    id: str
    name: str
    lat: float
    lon: float


@dataclass
class Waypoint:
    """路線ポリライン上の1点"""

    lat: float
    lon: float
    # 路線の waypoints 内での位置
    index: int
    # この点が停車位置なら、路線の platforms 内でのインデックス
    platform_index: Optional[int] = None


@dataclass
class StationPlatform:
    """
    ある路線のある駅のホーム（例: Newark-WTC 線の Grove St 駅 WTC 方面ホーム）。

    NOTE:
      - 路線・ウェイポイント・前のホームへは ID / インデックスで参照する
        （相互参照の循環を作らない）。
      - trains は実行時に変化する。先頭が最新、末尾が最古。
    """

    station_id: str
    line_id: str
    waypoint_index: int
    prev_index: Optional[int]
    trains: List["Train"] = field(default_factory=list)


@dataclass(eq=False)
class StationStop:
    """1回分の停車イベント（例: 平日 10:21 の Grove St 駅 WTC 方面）"""

    line_id: str
    platform_index: int
    # 週の通し分（0〜10079）
    week_min: int
    # 同じ運行の次の停車。終着なら None
    next: Optional["StationStop"] = None


@dataclass
class ServiceLine:
    """運行系統（例: Newark-WTC）"""

    id: str
    name: str
    color1: str
    color2: str
    waypoints: List[Waypoint] = field(default_factory=list)
    platforms: List[StationPlatform] = field(default_factory=list)
    total_distance: float = 0.0
    station_stops: List[StationStop] = field(default_factory=list)

    def platform_waypoint(self, platform_index: int) -> Waypoint:
        return self.waypoints[self.platforms[platform_index].waypoint_index]


@dataclass(eq=False)
class Train:
    """
    シミュレーション上の列車。

    終着（terminated=True）した列車は破棄せず、次の運行で再利用する。
    """

    id: int
    cur_stop: Optional[StationStop] = None
    cur_progress: float = 0.0
    terminated: bool = False
    # 最後に停車イベントで更新された週の通し分
    updated: int = -1
    lat: float = 0.0
    lon: float = 0.0


# ============================================================================
# Route 配列の要素（リソース読み込み時に型付けしておく）
# ============================================================================

@dataclass(frozen=True)
class StationRef:
    station_id: str


@dataclass(frozen=True)
class CoordinateScalar:
    """緯度・経度の片方。2つ続けて1点になる。"""

    value: float


RouteEntry = Union[StationRef, CoordinateScalar]
