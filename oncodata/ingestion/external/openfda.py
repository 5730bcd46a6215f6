# openFDA API 客户端
"""
对接 openFDA 药品说明书接口 (drug/label)
文档: https://open.fda.gov/apis/drug/label/
"""

from typing import Any

from oncodata.config import FDASourceConfig
from oncodata.utils import get_logger

from .base import ExternalAPIClient

logger = get_logger(__name__)

LABEL_ENDPOINT = "/drug/label.json"


class OpenFDAClient(ExternalAPIClient):
    """openFDA 药品说明书客户端"""
    
    def __init__(self, config: FDASourceConfig | None = None):
        config = config or FDASourceConfig()
        super().__init__(
            base_url=config.base_url,
            api_key=config.api_key or None,
            timeout=config.timeout,
        )
    
    def _get_headers(self) -> dict[str, str]:
        headers = super()._get_headers()
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers
    
    async def health_check(self) -> bool:
        """健康检查"""
        response = await self.get(LABEL_ENDPOINT, params={"limit": 1})
        return response.success
    
    async def search_labels(
        self,
        term: str,
        limit: int = 100,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        """按适应症关键词检索药品说明书
        
        Args:
            term: 检索词，匹配 indications_and_usage 字段
            limit: 每页数量 (openFDA 上限 1000)
            skip: 偏移量
            
        Returns:
            list[dict]: 原始说明书记录
            
        Raises:
            SourceAPIError: 请求失败 (404 无结果除外)
        """
        params: dict[str, Any] = {
            "search": f'indications_and_usage:"{term}"',
            "limit": limit,
        }
        if skip:
            params["skip"] = skip
        
        # openFDA 对无匹配结果返回 404
        data = await self.get_json(LABEL_ENDPOINT, params=params, empty_statuses=(404,))
        results = [r for r in (data.get("results") or []) if isinstance(r, dict)]
        if not results:
            logger.info(f"No FDA labels found for term: {term}")
        return results
