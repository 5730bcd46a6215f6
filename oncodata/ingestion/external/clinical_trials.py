# ClinicalTrials.gov API 客户端
"""
对接 ClinicalTrials.gov API v2
获取临床试验数据
"""

from typing import Any

from pydantic import BaseModel, Field

from oncodata.config import ClinicalTrialsSourceConfig
from oncodata.utils import get_logger

from .base import ExternalAPIClient

logger = get_logger(__name__)

STUDIES_ENDPOINT = "/v2/studies"


class StudyPage(BaseModel):
    """一页检索结果"""
    studies: list[dict[str, Any]] = Field(default_factory=list)
    next_page_token: str | None = None
    total_count: int | None = None


class ClinicalTrialsAPI(ExternalAPIClient):
    """ClinicalTrials.gov API 客户端
    
    基于 ClinicalTrials.gov API v2
    文档: https://clinicaltrials.gov/data-api/api
    """
    
    def __init__(self, config: ClinicalTrialsSourceConfig | None = None):
        config = config or ClinicalTrialsSourceConfig()
        super().__init__(base_url=config.base_url, timeout=config.timeout)
        self.fields = list(config.fields)
    
    async def health_check(self) -> bool:
        """健康检查"""
        response = await self.get(STUDIES_ENDPOINT, params={"pageSize": 1})
        return response.success
    
    async def search_by_condition(
        self,
        condition: str,
        page_size: int = 100,
        page_token: str | None = None,
    ) -> StudyPage:
        """按疾病/状况检索临床试验
        
        Args:
            condition: 疾病关键词 (query.cond)
            page_size: 每页数量
            page_token: 分页令牌
            
        Returns:
            StudyPage: 当前页研究及下一页令牌
            
        Raises:
            SourceAPIError: 请求失败
        """
        params: dict[str, Any] = {
            "query.cond": condition,
            "pageSize": page_size,
            "format": "json",
        }
        if self.fields:
            params["fields"] = ",".join(self.fields)
        if page_token:
            params["pageToken"] = page_token
        
        data = await self.get_json(STUDIES_ENDPOINT, params=params)
        studies = [s for s in (data.get("studies") or []) if isinstance(s, dict)]
        logger.debug(f"Fetched {len(studies)} studies for condition: {condition}")
        return StudyPage(
            studies=studies,
            next_page_token=data.get("nextPageToken"),
            total_count=data.get("totalCount"),
        )
