# 数据源适配器基类
"""
适配器负责单个外部数据源的完整流程:
检索词构造 -> 分页抓取 (经重试执行器) -> 逐条提取与写入 (经间隔门控)

容错粒度为检索词: 单个检索词失败只计入 items_failed，不影响其余检索词。
"""

import time
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from oncodata.models import RunStatus, ScrapingResult
from oncodata.utils import get_logger

from ..pacing import DelayGate, RetryExecutor
from ..upsert import UpsertOutcome

logger = get_logger(__name__)


class SourceAdapter(ABC):
    """数据源适配器"""
    
    source: str = ""
    query_label: str = "term"
    
    def __init__(self, retry: RetryExecutor, gate: DelayGate):
        self.retry = retry
        self.gate = gate
    
    @abstractmethod
    def queries(self) -> list[str]:
        """本数据源的检索词列表"""
        ...
    
    @abstractmethod
    def iter_pages(self, query: str) -> AsyncIterator[list[dict[str, Any]]]:
        """逐页抓取原始记录"""
        ...
    
    @abstractmethod
    async def process_item(self, raw: dict[str, Any]) -> UpsertOutcome | None:
        """提取并写入单条记录
        
        Returns:
            UpsertOutcome | None: 缺少自然键被跳过时返回 None
        """
        ...
    
    async def close(self) -> None:
        """释放外部连接"""
    
    async def run(self) -> ScrapingResult:
        """执行一次完整抓取
        
        Returns:
            ScrapingResult: 运行汇总
        """
        start_time = time.monotonic()
        result = ScrapingResult(source=self.source)
        log = logger.bind(source=self.source)
        
        try:
            log.info(f"Starting {self.source} data scraping...")
            queries = self.queries()
            
            for query in queries:
                try:
                    fetched = await self._process_query(query, result)
                    log.info(f"Processed {fetched} {self.source} items for {self.query_label}: {query}")
                except Exception as e:
                    log.error(
                        f"Error processing {self.source} {self.query_label} {query}: {e}",
                        exc_info=True,
                    )
                    result.items_failed += 1
            
            result.status = self._final_status(result, len(queries))
            if result.status == RunStatus.FAILED:
                result.error = f"All {len(queries)} {self.query_label} queries failed"
            
            log.info(
                f"{self.source} scraping completed: {result.items_processed} items processed",
                added=result.items_added,
                updated=result.items_updated,
                failed=result.items_failed,
                skipped=result.items_skipped,
            )
        except Exception as e:
            result.status = RunStatus.FAILED
            result.error = str(e) or type(e).__name__
            log.error(f"{self.source} scraping failed: {result.error}", exc_info=True)
        finally:
            result.duration_ms = int((time.monotonic() - start_time) * 1000)
        
        return result
    
    async def _process_query(self, query: str, result: ScrapingResult) -> int:
        fetched = 0
        async for items in self.iter_pages(query):
            for item in items:
                fetched += 1
                async with self.gate:
                    outcome = await self.process_item(item)
                _count(result, outcome)
        return fetched
    
    @staticmethod
    def _final_status(result: ScrapingResult, query_count: int) -> RunStatus:
        if result.items_failed == 0:
            return RunStatus.SUCCESS
        if result.items_failed >= query_count and result.items_processed == 0:
            return RunStatus.FAILED
        return RunStatus.PARTIAL


def _count(result: ScrapingResult, outcome: UpsertOutcome | None) -> None:
    if outcome is None:
        result.items_skipped += 1
        return
    result.items_processed += 1
    if outcome == UpsertOutcome.ADDED:
        result.items_added += 1
    else:
        result.items_updated += 1
