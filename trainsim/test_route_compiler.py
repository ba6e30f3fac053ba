import pytest

from trainsim.errors import InvalidReferenceError, MalformedRouteError
from trainsim.geometry import euclidean_distance
from trainsim.route_compiler import compile_route, to_route_entry
from trainsim.timetable_models import CoordinateScalar, Station, StationRef

STATIONS = {
    "A": Station(id="A", name="Alpha", lat=0.0, lon=0.0),
    "B": Station(id="B", name="Bravo", lat=3.0, lon=4.0),
}


def test_station_entries_become_platforms_linked_to_previous():
    route = compile_route("L", ["A", "B"], STATIONS)

    assert [(w.lat, w.lon) for w in route.waypoints] == [(0.0, 0.0), (3.0, 4.0)]
    assert [p.station_id for p in route.platforms] == ["A", "B"]
    assert route.platforms[0].prev_index is None
    assert route.platforms[1].prev_index == 0
    assert route.waypoints[1].platform_index == 1
    assert route.platforms[1].waypoint_index == 1
    assert route.total_distance == pytest.approx(5.0)


def test_coordinate_pairs_become_plain_waypoints():
    route = compile_route("L", ["A", 3.0, 0, "B"], STATIONS)

    assert len(route.waypoints) == 3
    assert [w.index for w in route.waypoints] == [0, 1, 2]
    middle = route.waypoints[1]
    assert (middle.lat, middle.lon) == (3.0, 0.0)
    assert middle.platform_index is None
    assert route.platforms[1].waypoint_index == 2
    assert route.total_distance == pytest.approx(3.0 + 4.0)


def test_total_distance_is_sum_of_segments_and_never_decreases():
    entries = ["A", 1.0, 1.0, 2.0, 5.0, "B", 0.5, 0.5]
    previous = 0.0
    for n in (1, 3, 5, 6, 8):
        route = compile_route("L", entries[:n], STATIONS)
        points = [(w.lat, w.lon) for w in route.waypoints]
        expected = sum(euclidean_distance(points[i], points[i + 1]) for i in range(len(points) - 1))
        assert route.total_distance == pytest.approx(expected)
        assert route.total_distance >= previous
        previous = route.total_distance


def test_unknown_station_is_invalid_reference():
    with pytest.raises(InvalidReferenceError):
        compile_route("L", ["A", "NOPE"], STATIONS)


@pytest.mark.parametrize(
    "entries",
    [
        ["A", 1.0],               # 経度なし
        ["A", 1.0, "B"],          # 経度の位置に駅
        ["A", True, 1.0],         # bool
        ["A", {"lat": 1.0}],      # オブジェクト
        ["A", None],
    ],
)
def test_malformed_routes(entries):
    with pytest.raises(MalformedRouteError):
        compile_route("L", entries, STATIONS)


def test_to_route_entry_tags_values():
    assert to_route_entry("A") == StationRef("A")
    assert to_route_entry(2) == CoordinateScalar(2.0)
    assert to_route_entry(StationRef("B")) == StationRef("B")
