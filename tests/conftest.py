# 测试公共夹具
"""
测试用的伪造外部客户端与样例载荷
"""

import asyncio
import copy
from contextlib import asynccontextmanager
from typing import Any

import pytest

from oncodata.config import ClinicalTrialsSourceConfig, FDASourceConfig
from oncodata.ingestion import (
    ClinicalTrialsAdapter,
    DelayGate,
    DrugUpserter,
    FDAAdapter,
    RetryExecutor,
    StudyUpserter,
)
from oncodata.ingestion.external import SourceAPIError, StudyPage
from oncodata.storage import InMemoryStore


def make_label(
    generic_name: str | None = "pembrolizumab",
    brand_name: str | None = "Keytruda",
    mechanism: str = "Programmed Death Receptor-1 (PD-1) Blocking Antibody",
    indications: str = "KEYTRUDA is indicated for the treatment of melanoma.",
    approval_date: str | None = None,
) -> dict[str, Any]:
    """openFDA drug/label 样例记录"""
    openfda: dict[str, Any] = {
        "manufacturer_name": ["Merck Sharp & Dohme LLC"],
        "pharm_class_moa": ["Programmed Death Receptor-1 Blocking Antibody [MoA]"],
        "mechanism_of_action": [mechanism],
    }
    if generic_name:
        openfda["generic_name"] = [generic_name.upper()]
    if brand_name:
        openfda["brand_name"] = [brand_name]
    if approval_date:
        openfda["approval_date"] = [approval_date]
    return {
        "id": f"label-{generic_name or 'unknown'}",
        "openfda": openfda,
        "indications_and_usage": [indications],
        "description": [f"{generic_name} injection"],
    }


def make_study(
    nct_id: str | None = "NCT01234567",
    title: str = "Study of Pembrolizumab in Melanoma",
    status: str = "RECRUITING",
) -> dict[str, Any]:
    """ClinicalTrials.gov v2 样例记录"""
    identification: dict[str, Any] = {
        "briefTitle": title,
        "officialTitle": f"A Phase 3 {title}",
    }
    if nct_id:
        identification["nctId"] = nct_id
    return {
        "protocolSection": {
            "identificationModule": identification,
            "statusModule": {
                "overallStatus": status,
                "startDateStruct": {"date": {"year": 2021, "month": 3, "day": 15}},
                "completionDateStruct": {"date": "2025-12-31"},
            },
            "descriptionModule": {"briefSummary": "Evaluates efficacy."},
            "designModule": {
                "studyType": "INTERVENTIONAL",
                "phases": ["PHASE3"],
                "enrollmentInfo": {"count": 420},
            },
            "sponsorCollaboratorsModule": {
                "leadSponsor": {"name": "Merck Sharp & Dohme LLC"},
                "collaborators": [{"name": "NCI"}, {"name": ""}],
            },
            "conditionsModule": {"conditions": ["Melanoma", "Skin Cancer"]},
            "armsInterventionsModule": {
                "interventions": [{"type": "DRUG", "name": "Pembrolizumab"}],
            },
            "eligibilityModule": {"eligibilityCriteria": "Age >= 18"},
        },
    }


class FakeFDAClient:
    """openFDA 伪客户端

    responses: 检索词 -> 记录列表或异常
    failures: 检索词 -> 前 N 次调用抛出 SourceAPIError
    """
    
    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        failures: dict[str, int] | None = None,
    ):
        self.responses = responses or {}
        self.failures = dict(failures or {})
        self.calls: list[tuple[str, int, int]] = []
        self.closed = False
    
    async def search_labels(self, term: str, limit: int = 100, skip: int = 0):
        self.calls.append((term, limit, skip))
        if self.failures.get(term, 0) > 0:
            self.failures[term] -= 1
            raise SourceAPIError(f"HTTP 503 for {term}", status_code=503)
        response = self.responses.get(term, [])
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response[skip:skip + limit])
    
    async def close(self):
        self.closed = True


class FakeClinicalTrialsClient:
    """ClinicalTrials.gov 伪客户端，pages: 疾病词 -> 多页记录"""
    
    def __init__(self, pages: dict[str, Any] | None = None):
        self.pages = pages or {}
        self.calls: list[tuple[str, str | None]] = []
        self.closed = False
    
    async def search_by_condition(self, condition, page_size=100, page_token=None):
        self.calls.append((condition, page_token))
        pages = self.pages.get(condition, [[]])
        if isinstance(pages, Exception):
            raise pages
        index = int(page_token) if page_token else 0
        next_token = str(index + 1) if index + 1 < len(pages) else None
        return StudyPage(studies=copy.deepcopy(pages[index]), next_page_token=next_token)
    
    async def close(self):
        self.closed = True


class SleepRecorder:
    """记录等待时长而不真正等待"""
    
    def __init__(self):
        self.delays: list[float] = []
    
    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def build_fda_adapter(sleeps):
    """按检索词与伪客户端构造 openFDA 适配器"""
    def _build(store, client, terms=("cancer",), max_attempts=3, page_size=100, max_pages=1):
        config = FDASourceConfig(
            search_terms=list(terms),
            page_size=page_size,
            max_pages=max_pages,
        )
        return FDAAdapter(
            client=client,
            upserter=DrugUpserter(store),
            config=config,
            retry=RetryExecutor(max_attempts=max_attempts, base_delay=0.5, sleep=sleeps),
            gate=DelayGate(1.0, sleep=sleeps),
        )
    return _build


@pytest.fixture
def build_ct_adapter(sleeps):
    """按疾病词与伪客户端构造 ClinicalTrials.gov 适配器"""
    def _build(store, client, conditions=("cancer",), max_pages=1):
        config = ClinicalTrialsSourceConfig(conditions=list(conditions), max_pages=max_pages)
        return ClinicalTrialsAdapter(
            client=client,
            upserter=StudyUpserter(store),
            config=config,
            retry=RetryExecutor(max_attempts=3, base_delay=0.5, sleep=sleeps),
            gate=DelayGate(1.0, sleep=sleeps),
        )
    return _build


class YieldingStore(InMemoryStore):
    """查找与创建前让出事件循环，使并发写入真正交错"""
    
    async def find_one(self, collection, any_of):
        await asyncio.sleep(0)
        return await super().find_one(collection, any_of)
    
    async def create(self, collection, properties):
        await asyncio.sleep(0)
        return await super().create(collection, properties)


class NoLock:
    """不做任何互斥的锁替身"""
    
    @asynccontextmanager
    async def hold(self, key: str):
        yield
