# trainsim/main.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from trainsim.config import Settings, load_settings
from trainsim.data_cache import DataCache
from trainsim.sim_clock import make_clock, week_min_to_str
from trainsim.simulation import SimulationLoop

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class TrainResponse(BaseModel):
    id: int
    line_id: Optional[str]
    line_name: Optional[str]
    lat: float
    lon: float
    progress: float
    terminated: bool


class TrainsResponse(BaseModel):
    """
    /api/trains のレスポンスラッパー

    - week_min はまだ1ティックも進んでいなければ None
    """
    trains: List[TrainResponse]
    count: int
    week_min: Optional[int]
    time: Optional[str]


def create_app(
    settings: Optional[Settings] = None,
    data_cache: Optional[DataCache] = None,
    start_loop: bool = True,
) -> FastAPI:
    """
    FastAPI アプリを作る。

    Args:
        settings: None なら環境変数から読む
        data_cache: 構築済みのものを渡すと起動時の読み込みを省略する
        start_loop: False ならシミュレーションループを起動しない（テスト用）
    """
    settings = settings or load_settings()
    preloaded = data_cache is not None
    cache = data_cache or DataCache(settings.data_dir)

    app = FastAPI(title="trainsim")
    app.state.settings = settings
    app.state.data_cache = cache
    app.state.simulation = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_urls,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        if not preloaded:
            # 読み込みに失敗したら例外で起動を中断する
            cache.load_all()
        logger.info("Data loaded: %d lines, %d stations", len(cache.lines), len(cache.stations))

        if start_loop:
            loop = SimulationLoop(cache, make_clock(settings), settings.tick_interval_sec)
            loop.start()
            app.state.simulation = loop

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.simulation is not None:
            app.state.simulation.stop(timeout=5.0)
            app.state.simulation = None

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/trains", response_model=TrainsResponse)
    async def get_trains():
        trains = cache.trains_snapshot()
        week_min = cache.week_min
        return TrainsResponse(
            trains=[TrainResponse(**t) for t in trains],
            count=len(trains),
            week_min=week_min,
            time=week_min_to_str(week_min) if week_min is not None else None,
        )

    @app.get("/api/lines")
    async def get_lines():
        return {"lines": cache.lines_snapshot()}

    @app.get("/api/lines/{line_id}")
    async def get_line(line_id: str):
        line = cache.lines.get(line_id)
        if line is None:
            raise HTTPException(status_code=404, detail=f"Line not found: {line_id}")

        summary: Dict[str, Any] = dict(cache.lines_snapshot()[line_id])
        summary["id"] = line.id
        summary["total_distance"] = line.total_distance
        summary["stations"] = [p.station_id for p in line.platforms]
        summary["stop_count"] = len(line.station_stops)
        return summary

    @app.get("/api/stations")
    async def get_stations():
        return {
            "stations": [
                {"id": s.id, "name": s.name, "coord": {"lat": s.lat, "lon": s.lon}}
                for s in cache.stations.values()
            ]
        }

    return app


def run() -> None:
    """
    `trainsim` コマンドの入口

    uvicorn から直接起動する場合は `uvicorn trainsim.main:create_app --factory`。
    """
    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
