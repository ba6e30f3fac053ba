# trainsim/train_state.py
"""
列車のライフサイクル制御。

毎ティック:
  1. 週内分が変わっていれば、その分に発生する停車イベントを探し、
     前のホームのキューから列車を移動する（いなければ再利用 or 新規作成）。
  2. 走行中の列車の進捗率と座標を更新する。

列車の状態遷移: 未割り当て → 走行中 → 終着 → （再利用して）走行中
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from trainsim.sim_clock import week_min_diff, week_min_to_str
from trainsim.timetable_models import (
    MINUTES_PER_DAY,
    ServiceLine,
    StationPlatform,
    StationStop,
    Train,
)
from trainsim.train_position import update_position

if TYPE_CHECKING:
    # 型ヒント用。実行時には import されないので循環 import を回避できる
    from trainsim.data_cache import DataCache

logger = logging.getLogger(__name__)


# ============================================================================
# ホームのキュー操作
# ============================================================================

def _updated_before(train: Train, week_min: int) -> bool:
    """
    train が今回より前のティックで更新されたか。

    土曜深夜に更新された列車が日曜未明（週の折り返し後）に次の停車を迎える場合も
    「前」とみなす。
    """
    if train.updated < week_min:
        return True
    return train.updated > week_min and week_min_diff(week_min, train.updated) < MINUTES_PER_DAY


def dequeue_train(platform: Optional[StationPlatform], week_min: int) -> Optional[Train]:
    """
    platform のキューから、今回のティックでまだ動かしていない最も古い列車を取り出す。
    該当なしなら None（新しい列車を出す合図）。
    """
    if platform is None or not platform.trains:
        return None
    for i in range(len(platform.trains) - 1, -1, -1):
        if _updated_before(platform.trains[i], week_min):
            return platform.trains.pop(i)
    return None


def push_train(platform: StationPlatform, train: Train) -> None:
    """platform のキュー先頭に列車を積む（同じ列車は2重に積まない）"""
    if train in platform.trains:
        platform.trains.remove(train)
    platform.trains.insert(0, train)


def _platform_of(cache: DataCache, stop: StationStop) -> StationPlatform:
    return cache.lines[stop.line_id].platforms[stop.platform_index]


def get_or_create_train(cache: DataCache, station_id: str) -> Train:
    """
    終着済みの列車を再利用するか、なければ新しく作る。

    再利用の優先順位:
      1. 最後の停車駅が station_id と一致する終着済み列車
      2. 任意の終着済み列車
    再利用する列車は、置き去りになっていたホームのキューから外す。
    """
    matched: Optional[Train] = None
    fallback: Optional[Train] = None
    for train in cache.trains:
        if not train.terminated or train.cur_stop is None:
            continue
        if _platform_of(cache, train.cur_stop).station_id == station_id:
            matched = train
            break
        if fallback is None:
            fallback = train

    reused = matched or fallback
    if reused is not None:
        platform = _platform_of(cache, reused.cur_stop)
        if reused in platform.trains:
            platform.trains.remove(reused)
        logger.debug("Reusing train #%d at station %s", reused.id, station_id)
        return reused

    train = Train(id=len(cache.trains))
    cache.trains.append(train)
    logger.info("Spawned new train #%d at station %s", train.id, cache.station_name(station_id))
    return train


# ============================================================================
# 停車イベント
# ============================================================================

def get_station_stops(line: ServiceLine, week_min: int) -> List[StationStop]:
    """week_min に発生する停車イベント（線形探索）"""
    # TODO: station_stops を week_min でソートして bisect で引く
    return [stop for stop in line.station_stops if stop.week_min == week_min]


def process_stop_events(cache: DataCache, week_min: int) -> int:
    """
    week_min に発生する全路線の停車イベントを処理し、動かした列車の数を返す。
    """
    moved = 0
    for line in cache.lines.values():
        for stop in get_station_stops(line, week_min):
            platform = line.platforms[stop.platform_index]
            logger.debug(
                "[%s] Line %s stop at %s",
                week_min_to_str(week_min),
                line.name,
                cache.station_name(platform.station_id),
            )

            # 前のホームから外して今のホームに積むまでを一括で行う
            with cache.lock:
                prev_platform = (
                    line.platforms[platform.prev_index]
                    if platform.prev_index is not None
                    else None
                )
                train = dequeue_train(prev_platform, week_min)
                if train is None:
                    train = get_or_create_train(cache, platform.station_id)

                train.cur_stop = stop
                train.cur_progress = 0.0
                train.terminated = stop.next is None
                train.updated = week_min
                push_train(platform, train)

            logger.debug(
                "Train %d now at %s%s",
                train.id,
                cache.station_name(platform.station_id),
                " (terminated)" if train.terminated else "",
            )
            moved += 1
    return moved


# ============================================================================
# 進捗・座標の更新
# ============================================================================

def compute_progress(stop: StationStop, week_min_frac: float) -> float:
    """
    stop から stop.next までの経過割合（0.0〜1.0）。

    所要時間が 0 の区間は 1.0 とする。
    """
    if stop.next is None:
        return 0.0
    duration = week_min_diff(stop.next.week_min, stop.week_min)
    if duration <= 0:
        return 1.0
    progress = week_min_diff(week_min_frac, stop.week_min) / duration
    # ティック落ちなどで次の停車を過ぎた場合に備えてクリップ
    return max(0.0, min(1.0, progress))


def update_trains(cache: DataCache, week_min_frac: float) -> None:
    """走行中の全列車の進捗率と座標を更新する"""
    for train in list(cache.trains):
        with cache.lock:
            if train.terminated or train.cur_stop is None:
                continue
            train.cur_progress = compute_progress(train.cur_stop, week_min_frac)
            update_position(train, cache.lines[train.cur_stop.line_id])


def tick(cache: DataCache, week_min: int, week_min_frac: float, last_week_min: Optional[int]) -> int:
    """
    1ティック分の処理。週内分が前回から変わったときだけ停車イベントを処理する。

    Returns:
        今回の week_min（次回の last_week_min として渡す）
    """
    if week_min != last_week_min:
        process_stop_events(cache, week_min)
    update_trains(cache, week_min_frac)
    return week_min
