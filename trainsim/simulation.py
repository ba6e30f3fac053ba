# trainsim/simulation.py
"""
シミュレーションのバックグラウンドループ。

路線・列車の状態を書き換えるのはこのスレッドだけ。
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from trainsim.data_cache import DataCache
from trainsim.sim_clock import AcceleratedClock, WallClock, week_min_to_str
from trainsim.train_state import tick

logger = logging.getLogger(__name__)


class SimulationLoop:
    def __init__(
        self,
        cache: DataCache,
        clock: AcceleratedClock | WallClock,
        interval_sec: float,
    ) -> None:
        self.cache = cache
        self.clock = clock
        self.interval_sec = interval_sec
        self.last_week_min: Optional[int] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def step(self) -> int:
        """時計を1回読んで1ティック分進める"""
        week_min, week_min_frac = self.clock.now()
        if week_min != self.last_week_min and week_min % 60 == 0:
            logger.info("Simulation time %s, %d trains", week_min_to_str(week_min), len(self.cache.trains))
        self.last_week_min = tick(self.cache, week_min, week_min_frac, self.last_week_min)
        self.cache.week_min = self.last_week_min
        return self.last_week_min

    def run(self) -> None:
        logger.info(
            "Simulation loop started (accelerated=%s, interval=%.3fs)",
            self.clock.accelerated,
            self.interval_sec,
        )
        while not self._stop_event.is_set():
            self.step()
            self._stop_event.wait(self.interval_sec)
        logger.info("Simulation loop stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="trainsim-loop", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
