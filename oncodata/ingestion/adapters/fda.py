# openFDA 适配器
from functools import partial
from typing import Any, AsyncIterator

from oncodata.config import FDASourceConfig
from oncodata.models import FDA_SOURCE
from oncodata.utils import get_logger

from ..external import OpenFDAClient
from ..extractors import extract_drug
from ..pacing import DelayGate, RetryExecutor
from ..payloads import parse_drug_label
from ..upsert import DrugUpserter, UpsertOutcome
from .base import SourceAdapter

logger = get_logger(__name__)


class FDAAdapter(SourceAdapter):
    """openFDA 药品说明书适配器
    
    按肿瘤相关检索词逐个检索说明书，提取药物记录后写入。
    """
    
    source = FDA_SOURCE
    query_label = "term"
    
    def __init__(
        self,
        client: OpenFDAClient,
        upserter: DrugUpserter,
        config: FDASourceConfig,
        retry: RetryExecutor,
        gate: DelayGate,
    ):
        super().__init__(retry=retry, gate=gate)
        self.client = client
        self.upserter = upserter
        self.config = config
    
    def queries(self) -> list[str]:
        return list(self.config.search_terms)
    
    async def iter_pages(self, query: str) -> AsyncIterator[list[dict[str, Any]]]:
        page_size = self.config.page_size
        for page in range(max(self.config.max_pages, 1)):
            items = await self.retry.run(
                partial(self.client.search_labels, query, limit=page_size, skip=page * page_size)
            )
            yield items
            if len(items) < page_size:
                break
    
    async def process_item(self, raw: dict[str, Any]) -> UpsertOutcome | None:
        drug = extract_drug(parse_drug_label(raw), self.source)
        if drug is None:
            logger.warning("Skipping drug without generic name")
            return None
        return await self.upserter.upsert(drug, self.source)
    
    async def close(self) -> None:
        await self.client.close()
