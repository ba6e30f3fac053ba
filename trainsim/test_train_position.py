import pytest

from trainsim.testing import build_cache
from trainsim.timetable_models import Train
from trainsim.train_position import interpolate_along, update_position


def _start_train(cache, progress):
    line = cache.lines["L1"]
    cache.trains.clear()
    train = Train(id=0, cur_stop=line.station_stops[0], cur_progress=progress)
    cache.trains.append(train)
    return line, train


def test_midpoint_between_two_platforms():
    cache = build_cache(route=("A", "B"), stops=("1:40", "1:50"))
    line, train = _start_train(cache, 0.5)

    update_position(train, line)

    assert (train.lat, train.lon) == pytest.approx((0.0, 0.5))


def test_follows_polyline_between_platforms():
    # A(0,0) → (3,0) → (3,1) → B(0,1)
    cache = build_cache(route=("A", 3.0, 0.0, 3.0, 1.0, "B"), stops=("1:40", "1:50"))
    line, train = _start_train(cache, 0.5)

    # 区間長: 3 + 1 + sqrt(9) = 7、目標 3.5 → 2本目の区間の中間
    update_position(train, line)

    assert (train.lat, train.lon) == pytest.approx((3.0, 0.5))


@pytest.mark.parametrize("progress, expected", [(0.0, (0.0, 0.0)), (1.0, (0.0, 1.0))])
def test_endpoints(progress, expected):
    cache = build_cache(route=("A", "B"), stops=("1:40", "1:50"))
    line, train = _start_train(cache, progress)

    update_position(train, line)

    assert (train.lat, train.lon) == pytest.approx(expected)


def test_only_the_current_leg_is_used():
    cache = build_cache()
    line = cache.lines["L1"]

    # B → C の区間（全体距離ではなく区間距離で補間する）
    train = Train(id=0, cur_stop=line.station_stops[1], cur_progress=0.25)
    update_position(train, line)

    assert (train.lat, train.lon) == pytest.approx((0.0, 1.25))


def test_terminated_train_is_left_alone():
    cache = build_cache()
    line, train = _start_train(cache, 0.5)
    train.terminated = True
    train.lat, train.lon = 9.0, 9.0

    update_position(train, line)

    assert (train.lat, train.lon) == (9.0, 9.0)


def test_overrun_falls_back_to_destination():
    cache = build_cache()
    waypoints = cache.lines["L1"].waypoints
    assert interpolate_along(waypoints, 0, 1, 2.0) == (0.0, 1.0)
    assert interpolate_along(waypoints, 2, 2, 0.5) == (0.0, 2.0)
