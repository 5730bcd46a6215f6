# 定时抓取
"""
按固定周期在后台运行全部数据源抓取 (默认每 24 小时)
"""

import asyncio
from typing import Awaitable, Callable

from oncodata.models import ScrapingResult
from oncodata.utils import get_logger

from .service import ScrapingService

logger = get_logger(__name__)


class ScrapingScheduler:
    """定时抓取调度器"""
    
    def __init__(
        self,
        service: ScrapingService,
        interval_hours: float = 24.0,
        run_on_start: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.service = service
        self.interval_seconds = interval_hours * 3600
        self.run_on_start = run_on_start
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.cycles = 0
    
    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
    
    async def start(self) -> None:
        """启动调度"""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Scraping scheduler started (every {self.interval_seconds / 3600:g}h)")
    
    async def stop(self) -> None:
        """停止调度"""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Scraping scheduler stopped")
    
    async def run_once(self) -> list[ScrapingResult]:
        """执行一轮抓取"""
        self.cycles += 1
        results = await self.service.run_all_scraping()
        summary = ", ".join(f"{r.source}={r.status.value}" for r in results)
        logger.info(f"Scheduled scraping cycle {self.cycles} finished: {summary}")
        return results
    
    async def _loop(self) -> None:
        if not self.run_on_start:
            await self._sleep(self.interval_seconds)
        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Scheduled scraping cycle failed: {e}", exc_info=True)
            await self._sleep(self.interval_seconds)
