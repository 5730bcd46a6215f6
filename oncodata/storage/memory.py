# 内存存储
"""
基于字典的内存存储，用于测试与试运行 (dry-run)
"""

import asyncio
import copy
from typing import Any

from oncodata.models import Collection

from .base import FieldMatch, RecordNotFoundError, RecordStore, StorageError


class InMemoryStore(RecordStore):
    """内存记录存储
    
    按集合保存记录属性的深拷贝，读写均返回副本，避免调用方修改内部状态。
    """
    
    def __init__(self):
        self._collections: dict[Collection, dict[str, dict[str, Any]]] = {
            collection: {} for collection in Collection
        }
        self._lock = asyncio.Lock()
    
    async def find_one(
        self,
        collection: Collection,
        any_of: list[FieldMatch],
    ) -> dict[str, Any] | None:
        async with self._lock:
            for record in self._collections[collection].values():
                if any(match.matches(record) for match in any_of):
                    return copy.deepcopy(record)
            return None
    
    async def create(
        self,
        collection: Collection,
        properties: dict[str, Any],
    ) -> dict[str, Any]:
        record_id = properties.get("id")
        if not record_id:
            raise StorageError("Record properties must include an id")
        
        async with self._lock:
            records = self._collections[collection]
            if record_id in records:
                raise StorageError(f"Duplicate {collection.value} id: {record_id}")
            records[record_id] = copy.deepcopy(properties)
            return copy.deepcopy(records[record_id])
    
    async def update(
        self,
        collection: Collection,
        record_id: str,
        partial: dict[str, Any],
    ) -> dict[str, Any]:
        async with self._lock:
            records = self._collections[collection]
            if record_id not in records:
                raise RecordNotFoundError(collection, record_id)
            records[record_id].update(copy.deepcopy(partial))
            return copy.deepcopy(records[record_id])
    
    async def find_many(
        self,
        collection: Collection,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        async with self._lock:
            records = [
                record for record in self._collections[collection].values()
                if all(record.get(k) == v for k, v in (filters or {}).items())
            ]
            # 插入顺序作为同一时间戳下的次序
            ordered = sorted(
                enumerate(records),
                key=lambda item: (item[1].get("created_at", ""), item[0]),
                reverse=True,
            )
            return [copy.deepcopy(record) for _, record in ordered[:limit]]
    
    def snapshot(self, collection: Collection) -> dict[str, dict[str, Any]]:
        """集合的完整副本"""
        return copy.deepcopy(self._collections[collection])
    
    def count(self, collection: Collection) -> int:
        return len(self._collections[collection])
