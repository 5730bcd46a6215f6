# 存储协作方接口
"""
抓取子系统只依赖三类存储操作:
- find_one: 按谓词查找单条记录
- create: 创建记录
- update: 按 ID 局部更新记录

谓词由若干 FieldMatch 组成，任意一个匹配即命中 (OR 语义)。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from oncodata.models import Collection


@dataclass(frozen=True)
class FieldMatch:
    """字段匹配条件"""
    field: str
    value: Any
    case_insensitive: bool = False
    
    def matches(self, properties: dict[str, Any]) -> bool:
        """判断记录是否满足条件"""
        current = properties.get(self.field)
        if self.case_insensitive and isinstance(current, str) and isinstance(self.value, str):
            return current.lower() == self.value.lower()
        return current == self.value


class StorageError(Exception):
    """存储操作错误"""
    pass


class RecordNotFoundError(StorageError):
    """记录不存在"""
    def __init__(self, collection: Collection, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection.value} record not found: {record_id}")


class RecordStore(ABC):
    """记录存储抽象基类"""
    
    async def connect(self) -> None:
        """建立连接"""
    
    async def close(self) -> None:
        """关闭连接"""
    
    @abstractmethod
    async def find_one(
        self,
        collection: Collection,
        any_of: list[FieldMatch],
    ) -> dict[str, Any] | None:
        """查找第一条满足任一条件的记录
        
        Args:
            collection: 集合
            any_of: 匹配条件列表 (OR)
            
        Returns:
            dict | None: 记录属性
        """
        ...
    
    @abstractmethod
    async def create(
        self,
        collection: Collection,
        properties: dict[str, Any],
    ) -> dict[str, Any]:
        """创建记录，properties 必须包含 id
        
        Returns:
            dict: 创建后的记录
        """
        ...
    
    @abstractmethod
    async def update(
        self,
        collection: Collection,
        record_id: str,
        partial: dict[str, Any],
    ) -> dict[str, Any]:
        """按 ID 合并更新字段
        
        Raises:
            RecordNotFoundError: 记录不存在
        """
        ...
    
    @abstractmethod
    async def find_many(
        self,
        collection: Collection,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """按 created_at 倒序列出记录"""
        ...
