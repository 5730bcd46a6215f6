# 数据摄入模块
"""
肿瘤药物与临床研究数据的定时抓取:
- 外部 API: openFDA 药品说明书、ClinicalTrials.gov
- 载荷解析与字段提取
- 治疗类别归一化
- 按自然键写入 (upsert)
- 并发编排与抓取日志
"""

from .adapters import ClinicalTrialsAdapter, FDAAdapter, SourceAdapter
from .classifier import classify_category
from .external import ClinicalTrialsAPI, ExternalAPIClient, OpenFDAClient, SourceAPIError
from .pacing import DelayGate, RetryExecutor
from .scheduler import ScrapingScheduler
from .service import ScrapingService, UnknownSourceError, build_scraping_service, create_adapters
from .upsert import DrugUpserter, KeyedLock, StudyUpserter, UpsertLocks, UpsertOutcome

__all__ = [
    "ClinicalTrialsAPI",
    "ClinicalTrialsAdapter",
    "DelayGate",
    "DrugUpserter",
    "ExternalAPIClient",
    "FDAAdapter",
    "KeyedLock",
    "OpenFDAClient",
    "RetryExecutor",
    "ScrapingScheduler",
    "ScrapingService",
    "SourceAPIError",
    "SourceAdapter",
    "StudyUpserter",
    "UnknownSourceError",
    "UpsertLocks",
    "UpsertOutcome",
    "build_scraping_service",
    "classify_category",
    "create_adapters",
]
