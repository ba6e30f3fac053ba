# trainsim/config.py
"""
実行時設定。

環境変数（.env があればそれも読む）から Settings を組み立てる。
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from trainsim.timetable_models import MINUTES_PER_WEEK

ENV_PREFIX = "TRAINSIM_"


class Settings(BaseModel):
    """シミュレータの設定"""

    simulation_mode: bool = True        # True: 早送り（1ティック1分）
    simulation_sleep_ms: int = Field(default=100, ge=1)
    start_week_min: int = Field(default=0, ge=0, lt=MINUTES_PER_WEEK)
    data_dir: Path = Path("res")
    timezone: str = "America/New_York"
    replay_window_min: int = Field(default=0, ge=0, lt=MINUTES_PER_WEEK)
    host: str = "0.0.0.0"
    port: int = 9000
    frontend_urls: List[str] = ["http://localhost:5173"]

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {value!r}") from e
        return value

    @property
    def tick_interval_sec(self) -> float:
        if self.simulation_mode:
            return self.simulation_sleep_ms / 1000
        return 1.0


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_settings() -> Settings:
    """環境変数から Settings を作る。未設定の項目はデフォルト値。"""
    load_dotenv()

    values = {}
    for name in Settings.model_fields:
        if name == "frontend_urls":
            continue
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip():
            values[name] = raw.strip()

    raw_origins = os.getenv("FRONTEND_URL")
    if raw_origins:
        values["frontend_urls"] = _split_origins(raw_origins)

    return Settings(**values)
