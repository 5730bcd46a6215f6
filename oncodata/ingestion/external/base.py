# 外部数据源客户端基类
"""
公共注册库 (openFDA / ClinicalTrials.gov) 只读 JSON 客户端基类

- get: 单次 GET，网络/超时/非 JSON 等错误折叠为失败的 APIResponse
- get_json: 失败响应转为 SourceAPIError，交给重试执行器
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import aiohttp
from pydantic import BaseModel

from oncodata import __version__
from oncodata.utils import get_logger

logger = get_logger(__name__)

USER_AGENT = f"oncodata/{__version__}"


class SourceAPIError(Exception):
    """外部数据源请求错误 (网络/超时/非 2xx)"""
    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class APIResponse(BaseModel):
    """单次请求结果"""
    success: bool
    data: Any = None
    error: str | None = None
    status_code: int = 0

    def raise_for_error(self) -> None:
        """失败响应转为异常"""
        if not self.success:
            raise SourceAPIError(self.error or f"HTTP {self.status_code}", status_code=self.status_code)


class ExternalAPIClient(ABC):
    """注册库客户端基类

    会话按需创建，close 后再次请求会重新建立。
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: int = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    def _get_headers(self) -> dict[str, str]:
        """请求头，子类可追加认证信息"""
        return {"Accept": "application/json", "User-Agent": USER_AGENT}

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._get_headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        """关闭会话"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> APIResponse:
        """GET 请求，不抛异常

        Args:
            endpoint: 相对 base_url 的路径
            params: 查询参数

        Returns:
            APIResponse: 仅 2xx 视为成功
        """
        session = await self._get_session()
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        log = logger.bind(url=url)

        try:
            async with session.get(url, params=params) as response:
                status = response.status
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            log.error(f"Request failed: {e}")
            return APIResponse(success=False, error=f"{type(e).__name__}: {e}")
        except asyncio.TimeoutError:
            log.error(f"Request timed out after {self.timeout}s")
            return APIResponse(success=False, error=f"Timeout after {self.timeout}s for {url}")
        except ValueError as e:
            # 响应体不是 JSON
            log.error(f"Invalid JSON response: {e}")
            return APIResponse(success=False, error=f"Invalid JSON from {url}")

        ok = 200 <= status < 300
        if not ok:
            log.warning(f"Unexpected status {status}")
        return APIResponse(
            success=ok,
            data=data,
            error=None if ok else f"HTTP {status} for {url}",
            status_code=status,
        )

    async def get_json(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        empty_statuses: tuple[int, ...] = (),
    ) -> dict[str, Any]:
        """GET 并返回 JSON 对象

        Args:
            endpoint: 相对 base_url 的路径
            params: 查询参数
            empty_statuses: 视为空结果的状态码 (如 openFDA 的 404)

        Returns:
            dict: 响应体；非对象响应体或空结果返回 {}

        Raises:
            SourceAPIError: 请求失败
        """
        response = await self.get(endpoint, params=params)
        if response.status_code in empty_statuses:
            return {}
        response.raise_for_error()
        return response.data if isinstance(response.data, dict) else {}

    @abstractmethod
    async def health_check(self) -> bool:
        """健康检查"""
        ...
