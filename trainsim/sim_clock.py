# trainsim/sim_clock.py
"""
シミュレーション時計。

「今」が週の何分目か（0 = 日曜 00:00）を返す。
  - AcceleratedClock: 呼ばれるたびに1分進む早送りモード
  - WallClock: 設定タイムゾーンの現在時刻（任意でリプレイ区間つき）
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from zoneinfo import ZoneInfo

from trainsim.timetable_models import MINUTES_PER_DAY, MINUTES_PER_WEEK

if TYPE_CHECKING:
    from trainsim.config import Settings

logger = logging.getLogger(__name__)

# (整数の週内分, 小数を含む週内分)
WeekTime = Tuple[int, float]


# ============================================================================
# 週内分ユーティリティ
# ============================================================================

def week_min_diff(future: float, now: float) -> float:
    """
    2つの週内分の差を返す。土曜 23:59 → 日曜 00:01 のような週の折り返しを考慮する。

    例: week_min_diff(5, 10079) == 6
    """
    if future < now:
        future += MINUTES_PER_WEEK
    return future - now


def week_min_to_str(week_min: int) -> str:
    """ログ用: 10021 → "day=6 23:01" """
    day = week_min // MINUTES_PER_DAY
    day_min = week_min % MINUTES_PER_DAY
    return f"day={day} {day_min // 60}:{day_min % 60:02d}"


def to_week_minutes(dt: datetime) -> float:
    """
    datetime を週内分（小数部に秒を含む）に変換する。

    週は日曜始まり（isoweekday の 7 = 日曜 → 0）。
    """
    weekday = dt.isoweekday() % 7
    seconds = dt.second + dt.microsecond / 1_000_000
    return weekday * MINUTES_PER_DAY + dt.hour * 60 + dt.minute + seconds / 60


# ============================================================================
# 時計
# ============================================================================

class AcceleratedClock:
    """呼ばれるたびに1分進み、10080 で 0 に戻る"""

    accelerated = True

    def __init__(self, start_week_min: int = 0) -> None:
        if not (0 <= start_week_min < MINUTES_PER_WEEK):
            raise ValueError(f"start_week_min must be in [0, {MINUTES_PER_WEEK}), got {start_week_min}")
        self._week_min = start_week_min - 1

    def now(self) -> WeekTime:
        self._week_min += 1
        if self._week_min >= MINUTES_PER_WEEK:
            self._week_min = 0
        return self._week_min, float(self._week_min)


class WallClock:
    """
    実時刻ベースの時計。

    replay_window_min > 0 の場合:
      - 初回呼び出し時に [now - replay_window_min, now] の区間を固定する。
      - 以降は呼ばれるたびにその区間を1分ずつ進める。
      - 区間を使い切ったら実時刻に戻る。
    """

    accelerated = False

    def __init__(
        self,
        tz: ZoneInfo,
        replay_window_min: int = 0,
        now_func: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not (0 <= replay_window_min < MINUTES_PER_WEEK):
            raise ValueError(
                f"replay_window_min must be in [0, {MINUTES_PER_WEEK}), got {replay_window_min}"
            )
        self.tz = tz
        self.replay_window_min = replay_window_min
        self._now_func = now_func or (lambda: datetime.now(self.tz))

        self._replaying = replay_window_min > 0
        self._replay_cursor: Optional[int] = None
        self._replay_remaining = 0

    @property
    def replaying(self) -> bool:
        return self._replaying

    def _wall_time(self) -> WeekTime:
        dt = self._now_func()
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=self.tz)
        else:
            dt = dt.astimezone(self.tz)
        frac = to_week_minutes(dt)
        return int(frac), frac

    def now(self) -> WeekTime:
        if not self._replaying:
            return self._wall_time()

        if self._replay_cursor is None:
            stop_min, _ = self._wall_time()
            self._replay_cursor = (stop_min - self.replay_window_min) % MINUTES_PER_WEEK
            self._replay_remaining = self.replay_window_min
            logger.info(
                "Replaying %d minutes: %s -> %s",
                self.replay_window_min,
                week_min_to_str(self._replay_cursor),
                week_min_to_str(stop_min),
            )
            return self._replay_cursor, float(self._replay_cursor)

        if self._replay_remaining <= 0:
            logger.info("Replay window exhausted, tracking wall-clock time")
            self._replaying = False
            return self._wall_time()

        self._replay_cursor = (self._replay_cursor + 1) % MINUTES_PER_WEEK
        self._replay_remaining -= 1
        return self._replay_cursor, float(self._replay_cursor)


def make_clock(settings: Settings) -> AcceleratedClock | WallClock:
    """設定から時計を作る"""
    if settings.simulation_mode:
        return AcceleratedClock(settings.start_week_min)
    return WallClock(ZoneInfo(settings.timezone), settings.replay_window_min)
