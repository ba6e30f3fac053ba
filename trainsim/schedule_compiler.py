# trainsim/schedule_compiler.py
"""
停車時刻リストと週間運行表から StationStop の連鎖を構築する。
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from trainsim.errors import MalformedScheduleError
from trainsim.timetable_models import MINUTES_PER_DAY, StationStop

logger = logging.getLogger(__name__)

# "h:mm" / "hh:mm"。元データ互換で "10:21a" / "10:21pm" のような午前・午後指定も受け付ける
_STOP_TIME_RE = re.compile(r"^([0-9]+):([0-9]+)(?:\s*([ap])m?)?$", re.IGNORECASE)

INACTIVE_DAY = -1


def parse_stop_time(time_str: str) -> tuple[int, int, Optional[bool]]:
    """
    "hh:mm" 形式の文字列を (hour, minute, is_pm) に分解する。

    is_pm は午前・午後の明示がなければ None。

    Raises:
        MalformedScheduleError: 形式不正・範囲外
    """
    match = _STOP_TIME_RE.match(time_str.strip()) if isinstance(time_str, str) else None
    if match is None:
        raise MalformedScheduleError(f"Expected [h]h:mm format, got {time_str!r}")

    hour = int(match.group(1))
    minute = int(match.group(2))

    if not (1 <= hour <= 12):
        raise MalformedScheduleError(f"Invalid hour {hour} in {time_str!r} (must be 1-12)")
    if not (0 <= minute <= 59):
        raise MalformedScheduleError(f"Invalid minute {minute} in {time_str!r} (must be 0-59)")

    meridiem = match.group(3)
    is_pm = None if meridiem is None else meridiem.lower() == "p"
    return hour, minute, is_pm


def to_day_minute(hour: int, minute: int, is_pm: bool) -> int:
    """12時間制の時刻を 0〜1439 の日内分に変換する"""
    adj_hour = hour
    if not is_pm and hour == 12:
        adj_hour = 0
    elif is_pm and hour != 12:
        adj_hour += 12
    return adj_hour * 60 + minute


def parse_stop_times(stops: Sequence[str]) -> List[int]:
    """
    午前・午後の記載がない時刻列を日内分のリストに変換する。

    ルール:
      - 午前から始める。
      - 直前の時刻の時が 11 で今回が 12 のとき、午前・午後を反転する。
      - 午前・午後が明示されている場合はそれに従い、以降の基準もそれに合わせる。

    例:
      ["11:58", "11:59", "12:00", "12:01"] → [718, 719, 720, 721]
    """
    day_mins: List[int] = []
    is_pm = False
    prev_hour: Optional[int] = None

    for stop in stops:
        hour, minute, explicit_pm = parse_stop_time(stop)
        if explicit_pm is not None:
            is_pm = explicit_pm
        elif prev_hour == 11 and hour == 12:
            is_pm = not is_pm
        prev_hour = hour
        day_mins.append(to_day_minute(hour, minute, is_pm))

    return day_mins


def _in_day_window(day_min: int, start_min: int, end_min: int) -> bool:
    """
    日内分が運行時間帯 [start_min, end_min] に入るか。

    start_min > end_min の場合は日付を跨ぐ時間帯とみなし、
    end_min < day_min < start_min のときだけ除外する。
    """
    if start_min <= end_min:
        return start_min <= day_min <= end_min
    return not (end_min < day_min < start_min)


def compile_schedule(
    line_id: str,
    platform_count: int,
    day_mins: Sequence[int],
    weekly_sched: Sequence[int],
) -> List[StationStop]:
    """
    週間運行表（曜日ごとの [開始分, 終了分] の組、-1 は運休）と
    日内分のリストから StationStop を作る。

    - j 番目の停車は platforms[j % platform_count] で発生する。
    - 同じ曜日内で連続する停車は next で繋ぐ。
      ただし j % platform_count == 0 は新しい運行の始まりなので繋がない。
    - 運休日は連鎖をリセットする。
    """
    if len(weekly_sched) != 2 * 7:
        raise MalformedScheduleError(
            f"Weekly schedule of line {line_id} must contain 7 start/end pairs "
            f"(got {len(weekly_sched)} values)"
        )
    if day_mins and platform_count <= 0:
        raise MalformedScheduleError(f"Line {line_id} has stop times but no platforms")

    station_stops: List[StationStop] = []
    prev_stop: Optional[StationStop] = None

    for i in range(0, len(weekly_sched), 2):
        day = i // 2
        start_min = weekly_sched[i]
        end_min = weekly_sched[i + 1]
        if start_min == INACTIVE_DAY or end_min == INACTIVE_DAY:
            prev_stop = None
            continue

        for j, day_min in enumerate(day_mins):
            if not _in_day_window(day_min, start_min, end_min):
                continue

            platform_index = j % platform_count
            stop = StationStop(
                line_id=line_id,
                platform_index=platform_index,
                week_min=day_min + day * MINUTES_PER_DAY,
            )
            if prev_stop is not None and platform_index != 0:
                prev_stop.next = stop
            station_stops.append(stop)
            prev_stop = stop

    logger.debug("Compiled %d station stops for line %s", len(station_stops), line_id)
    return station_stops
