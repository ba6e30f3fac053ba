"""テスト用の小さな路線データ"""
from __future__ import annotations

from typing import Optional, Sequence

from trainsim.data_cache import DataCache, LineRecord, StationRecord

INACTIVE = [-1, -1]


def build_cache(
    stops: Sequence[str] = ("1:40", "1:50", "2:00"),
    weekly_sched: Optional[Sequence[int]] = None,
    route: Sequence = ("A", "B", "C"),
) -> DataCache:
    """A(0,0) - B(0,1) - C(0,2) の1路線だけのキャッシュ"""
    if weekly_sched is None:
        weekly_sched = [0, 1439] + INACTIVE * 6
    cache = DataCache()
    cache.build(
        [
            StationRecord(id="A", name="Alpha", lat=0.0, lon=0.0),
            StationRecord(id="B", name="Bravo", lat=0.0, lon=1.0),
            StationRecord(id="C", name="Charlie", lat=0.0, lon=2.0),
        ],
        [
            LineRecord(
                id="L1",
                name="Test Line",
                color1="ff0000",
                color2="ffffff",
                route=list(route),
                weekly_sched=list(weekly_sched),
                stops=list(stops),
            )
        ],
    )
    return cache
