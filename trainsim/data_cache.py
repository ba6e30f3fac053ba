# trainsim/data_cache.py
"""
シミュレーションの状態一式（駅・路線・列車）とリソース読み込み。

DataCache は起動時に1つだけ作り、バックグラウンドループと API の両方に渡す。
列車の移動・座標更新・API 用スナップショットの作成は lock の中で行う。
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from trainsim.route_compiler import compile_route, to_route_entry
from trainsim.schedule_compiler import compile_schedule, parse_stop_times
from trainsim.timetable_models import RouteEntry, ServiceLine, Station, Train

logger = logging.getLogger(__name__)

LINE_IMAGE_URL = "http://dummyimage.com/20/{color1}/{color2}.gif&text={initial}"


# ============================================================================
# リソースファイルのレコード
# ============================================================================

def _alias(*names: str) -> Any:
    return Field(validation_alias=AliasChoices(*names))


class StationRecord(BaseModel):
    """stations/*.json の1ファイル分"""

    id: str = _alias("id", "Id")
    name: str = _alias("name", "Name")
    lat: float = _alias("lat", "Lat")
    lon: float = _alias("lon", "Lon")


class LineRecord(BaseModel):
    """
    lines/*.json の1ファイル分

    - route: 駅IDと座標（緯度, 経度の2値）が混在した配列
    - weekly_sched: 曜日ごと（日曜始まり）の [開始分, 終了分]。-1 は運休
    - stops: 停車時刻（"h:mm"）を停車順に並べたもの
    """

    id: str = _alias("id", "Id")
    name: str = _alias("name", "Name")
    color1: str = _alias("color1", "Color1")
    color2: str = _alias("color2", "Color2")
    route: List[Any] = _alias("route", "Route")
    weekly_sched: List[int] = _alias("weekly_sched", "weeklySched", "WeeklySched")
    stops: List[str] = _alias("stops", "Stops")

    def route_entries(self) -> List[RouteEntry]:
        """route を型付きの要素に変換する（不正な要素は MalformedRouteError）"""
        return [to_route_entry(raw) for raw in self.route]


# ============================================================================
# DataCache
# ============================================================================

class DataCache:
    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self.data_dir = data_dir
        self.stations: Dict[str, Station] = {}
        self.lines: Dict[str, ServiceLine] = {}
        self.trains: List[Train] = []

        # 最後に停車イベントを処理した週内分（API 表示用）
        self.week_min: Optional[int] = None

        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # 読み込み
    # ------------------------------------------------------------------

    def _load_json(self, path: Path) -> Any:
        if not path.exists():
            raise FileNotFoundError(f"JSON file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _load_dir(self, rel_dir: str) -> List[Any]:
        if self.data_dir is None:
            raise ValueError("DataCache has no data_dir to load from")
        directory = self.data_dir / rel_dir
        if not directory.is_dir():
            raise FileNotFoundError(f"Resource directory not found: {directory}")
        return [self._load_json(path) for path in sorted(directory.glob("*.json"))]

    def load_all(self) -> None:
        """data_dir/stations/*.json と data_dir/lines/*.json を読み込んで構築する"""
        station_records = [StationRecord.model_validate(raw) for raw in self._load_dir("stations")]
        line_records = [LineRecord.model_validate(raw) for raw in self._load_dir("lines")]
        self.build(station_records, line_records)

    def build(
        self,
        station_records: Iterable[StationRecord],
        line_records: Iterable[LineRecord],
    ) -> None:
        """
        レコードから駅・路線を構築する。途中で失敗した場合は例外をそのまま投げる
        （起動を中断する）。
        """
        stations: Dict[str, Station] = {}
        for rec in station_records:
            if rec.id in stations:
                logger.warning("Duplicate station id %s; later record wins", rec.id)
            stations[rec.id] = Station(id=rec.id, name=rec.name, lat=rec.lat, lon=rec.lon)

        lines: Dict[str, ServiceLine] = {}
        for rec in line_records:
            if rec.id in lines:
                logger.warning("Duplicate line id %s; later record wins", rec.id)
            lines[rec.id] = self._build_line(rec, stations)

        with self.lock:
            self.stations = stations
            self.lines = lines
            self.trains = []
            self.week_min = None

        logger.info(
            "Loaded %d stations, %d lines, %d station stops",
            len(self.stations),
            len(self.lines),
            sum(len(line.station_stops) for line in self.lines.values()),
        )

    @staticmethod
    def _build_line(rec: LineRecord, stations: Dict[str, Station]) -> ServiceLine:
        route = compile_route(rec.id, rec.route_entries(), stations)
        day_mins = parse_stop_times(rec.stops)
        station_stops = compile_schedule(rec.id, len(route.platforms), day_mins, rec.weekly_sched)
        return ServiceLine(
            id=rec.id,
            name=rec.name,
            color1=rec.color1,
            color2=rec.color2,
            waypoints=route.waypoints,
            platforms=route.platforms,
            total_distance=route.total_distance,
            station_stops=station_stops,
        )

    # ------------------------------------------------------------------
    # 参照
    # ------------------------------------------------------------------

    def station_name(self, station_id: str) -> str:
        station = self.stations.get(station_id)
        return station.name if station is not None else station_id

    def trains_snapshot(self) -> List[Dict[str, Any]]:
        """全列車の現在状態（API 用のプリミティブな dict）"""
        with self.lock:
            result = []
            for train in self.trains:
                line = self.lines[train.cur_stop.line_id] if train.cur_stop else None
                result.append(
                    {
                        "id": train.id,
                        "line_id": line.id if line else None,
                        "line_name": line.name if line else None,
                        "lat": train.lat,
                        "lon": train.lon,
                        "progress": train.cur_progress,
                        "terminated": train.terminated,
                    }
                )
            return result

    def lines_snapshot(self) -> Dict[str, Dict[str, Any]]:
        """全路線の表示用情報（色・ウェイポイント座標列）"""
        with self.lock:
            return {
                line.id: {
                    "name": line.name,
                    "color1": line.color1,
                    "color2": line.color2,
                    "image_url": LINE_IMAGE_URL.format(
                        color1=line.color1,
                        color2=line.color2,
                        initial=line.id[:1],
                    ),
                    "waypoints": [{"lat": w.lat, "lon": w.lon} for w in line.waypoints],
                }
                for line in self.lines.values()
            }
