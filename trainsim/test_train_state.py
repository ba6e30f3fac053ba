import pytest

from trainsim.sim_clock import AcceleratedClock
from trainsim.testing import INACTIVE, build_cache
from trainsim.timetable_models import MINUTES_PER_WEEK, StationPlatform, StationStop, Train
from trainsim.train_state import (
    compute_progress,
    dequeue_train,
    get_or_create_train,
    get_station_stops,
    push_train,
    tick,
)


def _platform(*trains):
    return StationPlatform(station_id="X", line_id="L", waypoint_index=0, prev_index=None, trains=list(trains))


# ============================================================================
# キュー操作
# ============================================================================

def test_dequeue_takes_oldest_eligible_train():
    newest, moved_now, oldest = Train(id=0, updated=105), Train(id=1, updated=110), Train(id=2, updated=90)
    platform = _platform(newest, moved_now, oldest)

    assert dequeue_train(platform, 110) is oldest
    assert dequeue_train(platform, 110) is newest
    # 今回のティックで動かした列車は対象外
    assert dequeue_train(platform, 110) is None
    assert platform.trains == [moved_now]


def test_dequeue_handles_missing_platform_and_empty_queue():
    assert dequeue_train(None, 10) is None
    assert dequeue_train(_platform(), 10) is None


def test_dequeue_across_week_boundary():
    saturday_night = Train(id=0, updated=MINUTES_PER_WEEK - 1)
    assert dequeue_train(_platform(saturday_night), 0) is saturday_night
    assert dequeue_train(_platform(Train(id=1, updated=120)), 110) is None


def test_push_puts_train_in_front_without_duplicates():
    a, b = Train(id=0), Train(id=1)
    platform = _platform(a)

    push_train(platform, b)
    push_train(platform, a)

    assert platform.trains == [a, b]


# ============================================================================
# 列車の再利用
# ============================================================================

def test_new_train_is_allocated_when_none_terminated(cache):
    first = get_or_create_train(cache, "A")
    second = get_or_create_train(cache, "A")

    assert (first.id, second.id) == (0, 1)
    assert cache.trains == [first, second]


def test_reuse_prefers_train_at_spawning_station(cache):
    line = cache.lines["L1"]
    at_b = Train(id=0, cur_stop=line.station_stops[1], terminated=True)
    at_c = Train(id=1, cur_stop=line.station_stops[2], terminated=True)
    cache.trains.extend([at_b, at_c])
    line.platforms[1].trains.append(at_b)
    line.platforms[2].trains.append(at_c)

    assert get_or_create_train(cache, "C") is at_c
    assert line.platforms[2].trains == []

    # 一致する駅がなければ任意の終着済み列車
    assert get_or_create_train(cache, "A") is at_b
    assert line.platforms[1].trains == []
    assert len(cache.trains) == 2


# ============================================================================
# ティック処理
# ============================================================================

def test_train_moves_to_next_platform(cache):
    line = cache.lines["L1"]

    last = tick(cache, 100, 100.0, None)
    assert len(cache.trains) == 1
    train = cache.trains[0]
    assert line.platforms[0].trains == [train]

    last = tick(cache, 105, 105.0, last)
    assert train.cur_progress == pytest.approx(0.5)
    assert (train.lat, train.lon) == pytest.approx((0.0, 0.5))

    last = tick(cache, 110, 110.0, last)
    assert line.platforms[0].trains == []
    assert line.platforms[1].trains == [train]
    assert train.cur_stop is line.station_stops[1]
    assert train.cur_progress == 0.0
    assert train.terminated is False
    assert train.updated == 110
    assert (train.lat, train.lon) == pytest.approx((0.0, 1.0))

    tick(cache, 120, 120.0, last)
    assert train.terminated is True
    assert line.platforms[2].trains == [train]
    assert len(cache.trains) == 1


def test_same_minute_is_processed_once(cache):
    last = tick(cache, 100, 100.0, None)
    tick(cache, 100, 100.5, last)
    assert len(cache.trains) == 1


def test_terminated_train_is_reused_next_day():
    cache = build_cache(weekly_sched=[0, 1439] * 2 + INACTIVE * 5)
    line = cache.lines["L1"]

    last = None
    for week_min in (100, 110, 120, 1540):
        last = tick(cache, week_min, float(week_min), last)

    assert len(cache.trains) == 1
    train = cache.trains[0]
    assert train.terminated is False
    assert train.cur_stop.week_min == 1540
    assert line.platforms[2].trains == []
    assert line.platforms[0].trains == [train]


def test_vehicle_pool_stays_bounded_over_repeating_weeks():
    cache = build_cache(
        stops=("1:40", "1:50", "2:00", "3:00", "3:10", "3:20"),
        weekly_sched=[0, 1439] * 7,
    )
    clock = AcceleratedClock()
    last = None
    for _ in range(2 * MINUTES_PER_WEEK):
        week_min, frac = clock.now()
        last = tick(cache, week_min, frac, last)

    assert len(cache.trains) == 1
    occupancy = [len(p.trains) for p in cache.lines["L1"].platforms]
    assert sum(occupancy) == 1


def test_get_station_stops(cache):
    line = cache.lines["L1"]
    assert get_station_stops(line, 110) == [line.station_stops[1]]
    assert get_station_stops(line, 111) == []


# ============================================================================
# 進捗率
# ============================================================================

def test_progress_wraps_and_clamps():
    stop = StationStop(line_id="L", platform_index=0, week_min=10075)
    stop.next = StationStop(line_id="L", platform_index=1, week_min=5)

    assert compute_progress(stop, 0.0) == pytest.approx(0.5)
    assert compute_progress(stop, 20.0) == 1.0


def test_zero_length_leg_is_complete():
    stop = StationStop(line_id="L", platform_index=0, week_min=100)
    stop.next = StationStop(line_id="L", platform_index=1, week_min=100)
    assert compute_progress(stop, 100.0) == 1.0
