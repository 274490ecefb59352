import asyncio
from typing import Optional


def format_elapsed(seconds: int) -> str:
    """125 -> '02:05'"""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes:02d}:{secs:02d}"


class ElapsedTimer:
    """
    Whole-second counter that only advances while running.

    With `interval=None` no background task is started and the owner drives
    it through `tick()`.
    """

    def __init__(self, interval: Optional[float] = 1.0):
        self.interval = interval
        self.elapsed_seconds = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        if self.interval is not None:
            self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    def reset(self) -> None:
        self.stop()
        self.elapsed_seconds = 0

    def tick(self) -> None:
        if self._running:
            self.elapsed_seconds += 1

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()
