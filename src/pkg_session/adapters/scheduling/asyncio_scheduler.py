import asyncio
import time

from ...domain.ports import Scheduler


class AsyncioScheduler(Scheduler):
    """Wall clock from `time.time`, waiting via `asyncio.sleep`."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
