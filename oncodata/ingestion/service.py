# 抓取编排服务
"""
并发运行所有数据源适配器，汇总结果并写入抓取日志。

- 各适配器互不影响，全部结束后才返回 (不因某个失败而提前返回)
- 每个适配器运行都会写一条抓取日志，包括适配器自身崩溃的情况
- run_all_scraping 永不向外抛异常
"""

import asyncio
import time
from typing import Callable

from oncodata.config import ScraperConfig
from oncodata.models import (
    CLINICAL_TRIALS_SOURCE,
    FDA_SOURCE,
    Collection,
    RunStatus,
    ScrapingResult,
    ScrapingRun,
)
from oncodata.storage import RecordStore
from oncodata.utils import get_logger

from .adapters import ClinicalTrialsAdapter, FDAAdapter, SourceAdapter
from .external import ClinicalTrialsAPI, OpenFDAClient
from .pacing import DelayGate, RetryExecutor
from .upsert import DrugUpserter, StudyUpserter, UpsertLocks

logger = get_logger(__name__)


class UnknownSourceError(KeyError):
    """未配置的数据源"""
    def __init__(self, source: str):
        self.source = source
        super().__init__(source)
    
    def __str__(self) -> str:
        return f"Unknown scraping source: {self.source}"


AdapterFactory = Callable[[RecordStore, ScraperConfig, UpsertLocks], SourceAdapter]


def _retry_for(config: ScraperConfig) -> RetryExecutor:
    return RetryExecutor(max_attempts=config.max_attempts, base_delay=config.retry_base_delay)


def create_fda_adapter(
    store: RecordStore,
    config: ScraperConfig,
    locks: UpsertLocks,
) -> FDAAdapter:
    return FDAAdapter(
        client=OpenFDAClient(config.fda),
        upserter=DrugUpserter(store, locks.drugs),
        config=config.fda,
        retry=_retry_for(config),
        gate=DelayGate(config.rate_limit_delay),
    )


def create_clinical_trials_adapter(
    store: RecordStore,
    config: ScraperConfig,
    locks: UpsertLocks,
) -> ClinicalTrialsAdapter:
    return ClinicalTrialsAdapter(
        client=ClinicalTrialsAPI(config.clinical_trials),
        upserter=StudyUpserter(store, locks.studies),
        config=config.clinical_trials,
        retry=_retry_for(config),
        gate=DelayGate(config.rate_limit_delay),
    )


# 数据源标签 -> 适配器工厂
ADAPTER_FACTORIES: dict[str, AdapterFactory] = {
    FDA_SOURCE: create_fda_adapter,
    CLINICAL_TRIALS_SOURCE: create_clinical_trials_adapter,
}


def create_adapters(
    store: RecordStore,
    config: ScraperConfig,
    factories: dict[str, AdapterFactory] | None = None,
    locks: UpsertLocks | None = None,
) -> list[SourceAdapter]:
    """按 enabled_sources 创建适配器，忽略未知数据源
    
    所有适配器共享同一组按键锁，并发写入同一自然键时串行执行。
    """
    factories = factories or ADAPTER_FACTORIES
    locks = locks or UpsertLocks()
    unknown = sorted(set(config.enabled_sources) - set(factories))
    if unknown:
        logger.warning(f"Ignoring unknown scraping sources: {', '.join(unknown)}")
    return [
        factories[source](store, config, locks)
        for source in config.enabled_sources
        if source in factories
    ]


class ScrapingService:
    """抓取编排服务
    
    显式注入存储与配置，不使用全局实例。
    
    Example:
        ```python
        service = ScrapingService(store, settings.scraper)
        results = await service.run_all_scraping()
        await service.close()
        ```
    """
    
    def __init__(
        self,
        store: RecordStore,
        config: ScraperConfig | None = None,
        adapters: list[SourceAdapter] | None = None,
    ):
        self.store = store
        self.config = config or ScraperConfig()
        
        if adapters is None:
            adapters = create_adapters(store, self.config)
        self._adapters: dict[str, SourceAdapter] = {
            adapter.source: adapter for adapter in adapters
        }
    
    @property
    def sources(self) -> list[str]:
        """已配置的数据源标签"""
        return list(self._adapters)
    
    async def run_all_scraping(self) -> list[ScrapingResult]:
        """并发运行所有数据源
        
        Returns:
            list[ScrapingResult]: 每个数据源一条汇总
        """
        logger.info("Starting all data scraping jobs...")
        
        tasks = [self._run_adapter(adapter) for adapter in self._adapters.values()]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        
        # _run_adapter 已把适配器异常转为失败结果，这里只剩取消等 BaseException
        results: list[ScrapingResult] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        
        logger.info("All scraping jobs completed")
        return results
    
    async def run_source(self, source: str) -> ScrapingResult:
        """运行单个数据源
        
        Raises:
            UnknownSourceError: 数据源未配置
        """
        adapter = self._adapters.get(source)
        if adapter is None:
            raise UnknownSourceError(source)
        return await self._run_adapter(adapter)
    
    async def recent_runs(
        self,
        limit: int = 20,
        source: str | None = None,
    ) -> list[ScrapingRun]:
        """最近的抓取日志，按时间倒序"""
        filters = {"source": source} if source else None
        records = await self.store.find_many(
            Collection.SCRAPING_RUN,
            filters=filters,
            limit=limit,
        )
        return [ScrapingRun.from_store(record) for record in records]
    
    async def close(self) -> None:
        """释放所有适配器的外部连接"""
        for adapter in self._adapters.values():
            try:
                await adapter.close()
            except Exception as e:
                logger.warning(f"Failed to close {adapter.source} adapter: {e}")
    
    async def _run_adapter(self, adapter: SourceAdapter) -> ScrapingResult:
        start_time = time.monotonic()
        try:
            result = await adapter.run()
        except Exception as e:
            logger.error(f"Scraping task failed: {adapter.source}", exc_info=True)
            result = ScrapingResult(
                source=adapter.source,
                status=RunStatus.FAILED,
                error=str(e) or type(e).__name__,
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )
        
        await self._log_run(result)
        return result
    
    async def _log_run(self, result: ScrapingResult) -> None:
        """写入抓取日志，失败只记录错误"""
        run = result.to_run_record()
        try:
            await self.store.create(Collection.SCRAPING_RUN, run.to_store_properties())
            logger.info(f"Scraping run logged: {result.source} ({result.status.value})")
        except Exception as e:
            logger.error(f"Failed to write scraping log for {result.source}: {e}")


def build_scraping_service(
    store: RecordStore,
    config: ScraperConfig,
    factories: dict[str, AdapterFactory] | None = None,
) -> ScrapingService:
    """按配置创建抓取服务"""
    return ScrapingService(store, config, adapters=create_adapters(store, config, factories))
