# ClinicalTrials.gov 适配器
from functools import partial
from typing import Any, AsyncIterator

from oncodata.config import ClinicalTrialsSourceConfig
from oncodata.models import CLINICAL_TRIALS_SOURCE
from oncodata.utils import get_logger

from ..external import ClinicalTrialsAPI
from ..extractors import extract_study
from ..pacing import DelayGate, RetryExecutor
from ..payloads import parse_study
from ..upsert import StudyUpserter, UpsertOutcome
from .base import SourceAdapter

logger = get_logger(__name__)


class ClinicalTrialsAdapter(SourceAdapter):
    """ClinicalTrials.gov 适配器
    
    按肿瘤相关疾病关键词检索研究，以 NCT 编号为键写入。
    缺少 NCT 编号的研究被跳过，不计入处理数或失败数。
    """
    
    source = CLINICAL_TRIALS_SOURCE
    query_label = "condition"
    
    def __init__(
        self,
        client: ClinicalTrialsAPI,
        upserter: StudyUpserter,
        config: ClinicalTrialsSourceConfig,
        retry: RetryExecutor,
        gate: DelayGate,
    ):
        super().__init__(retry=retry, gate=gate)
        self.client = client
        self.upserter = upserter
        self.config = config
    
    def queries(self) -> list[str]:
        return list(self.config.conditions)
    
    async def iter_pages(self, query: str) -> AsyncIterator[list[dict[str, Any]]]:
        page_token = None
        for _ in range(max(self.config.max_pages, 1)):
            page = await self.retry.run(
                partial(
                    self.client.search_by_condition,
                    query,
                    page_size=self.config.page_size,
                    page_token=page_token,
                )
            )
            yield page.studies
            page_token = page.next_page_token
            if not page_token:
                break
    
    async def process_item(self, raw: dict[str, Any]) -> UpsertOutcome | None:
        study = extract_study(parse_study(raw))
        if study is None:
            logger.warning("Skipping study without NCT ID")
            return None
        return await self.upserter.upsert(study)
    
    async def close(self) -> None:
        await self.client.close()
