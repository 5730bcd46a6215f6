# 请求节奏控制
"""
远程调用的节奏控制:
- RetryExecutor: 有限次重试 + 线性递增等待
- DelayGate: 两次远程调用之间的固定最小间隔
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_incrementing

from oncodata.utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """线性退避重试执行器
    
    第 k 次失败后等待 base_delay * k 秒再重试，用尽 max_attempts 次后
    原样抛出最后一次的异常。无抖动，无熔断。
    """
    
    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep
    
    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"Attempt {retry_state.attempt_number}/{self.max_attempts} failed, "
            f"retrying in {wait:.1f}s: {exc}"
        )
    
    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """执行操作，失败时按线性退避重试
        
        Args:
            operation: 无参异步调用
            
        Returns:
            T: 操作结果
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.base_delay, increment=self.base_delay),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(operation)


class DelayGate:
    """固定间隔门控
    
    每处理完一条记录 (无论成功或失败) 都等待 delay 秒，
    再放行下一次调用。纯顺序的 sleep-after-call，不是令牌桶。
    
    Example:
        ```python
        gate = DelayGate(1.0)
        for item in items:
            async with gate:
                await process(item)
        ```
    """
    
    def __init__(self, delay: float = 1.0, sleep: SleepFunc = asyncio.sleep):
        self.delay = delay
        self._sleep = sleep
        self.passes = 0
    
    async def wait(self) -> None:
        """等待固定间隔"""
        self.passes += 1
        if self.delay > 0:
            await self._sleep(self.delay)
    
    async def __aenter__(self) -> "DelayGate":
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.wait()
        return False
