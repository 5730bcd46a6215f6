# 记录写入 (upsert)
"""
按自然键查找已有记录，合并或覆盖后写回:

- 药物: 通用名/商品名不区分大小写匹配；标量字段覆盖，approvals 取并集，
  已有的首次获批日期不会被覆盖
- 研究: NCT 编号精确匹配；全部可变字段以最新抓取为准

查找与写入之间持有按自然键的进程内锁，避免并发数据源对同一记录的竞争。
内容无变化时不写存储，重复抓取不会改动已存数据。
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator

from oncodata.models import (
    APPROVAL_DATE_FIELDS,
    CanonicalDrug,
    CanonicalStudy,
    Collection,
)
from oncodata.storage import FieldMatch, RecordStore
from oncodata.utils import get_logger

logger = get_logger(__name__)


class UpsertOutcome(str, Enum):
    """写入结果"""
    ADDED = "added"
    UPDATED = "updated"


class KeyedLock:
    """按键分配的 asyncio 锁，无人等待时自动释放"""
    
    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}
    
    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]
    
    def __len__(self) -> int:
        return len(self._locks)


class UpsertLocks:
    """同一存储上所有写入方共享的按键锁，每个集合一组"""

    def __init__(self):
        self.drugs = KeyedLock()
        self.studies = KeyedLock()


def merge_approvals(existing: list[str] | None, new_approvals: list[str]) -> list[str]:
    """合并获批来源，保持首次出现的顺序且不重复"""
    merged = list(dict.fromkeys(existing or []))
    for approval in new_approvals:
        if approval not in merged:
            merged.append(approval)
    return merged


def _changed_fields(existing: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value
        for key, value in incoming.items()
        if existing.get(key) != value
    }


class DrugUpserter:
    """药物记录写入"""
    
    def __init__(self, store: RecordStore, locks: KeyedLock | None = None):
        self.store = store
        self.locks = locks or KeyedLock()
    
    async def upsert(self, drug: CanonicalDrug, source: str) -> UpsertOutcome:
        """写入药物记录
        
        Args:
            drug: 新提取的药物记录
            source: 数据源标签，并入 approvals
            
        Returns:
            UpsertOutcome: 新增或更新
        """
        any_of = [FieldMatch("generic_name", drug.generic_name, case_insensitive=True)]
        if drug.brand_name:
            any_of.append(FieldMatch("brand_name", drug.brand_name, case_insensitive=True))
        
        async with self.locks.hold(drug.natural_key):
            existing = await self.store.find_one(Collection.DRUG, any_of)
            
            if existing is None:
                record = drug.model_copy(update={"approvals": [source]})
                await self.store.create(Collection.DRUG, record.to_store_properties())
                logger.debug(f"Created drug: {drug.generic_name}")
                return UpsertOutcome.ADDED
            
            incoming = drug.content_properties()
            incoming["approvals"] = merge_approvals(existing.get("approvals"), [source])
            
            # 已有获批日期保留，只在缺失时补充
            for date_field in APPROVAL_DATE_FIELDS.values():
                if existing.get(date_field):
                    incoming[date_field] = existing[date_field]
            
            changes = _changed_fields(existing, incoming)
            if changes:
                changes["updated_at"] = datetime.now().isoformat()
                await self.store.update(Collection.DRUG, existing["id"], changes)
                logger.debug(f"Updated drug: {drug.generic_name} ({', '.join(sorted(changes))})")
            return UpsertOutcome.UPDATED


class StudyUpserter:
    """临床研究记录写入"""
    
    def __init__(self, store: RecordStore, locks: KeyedLock | None = None):
        self.store = store
        self.locks = locks or KeyedLock()
    
    async def upsert(self, study: CanonicalStudy) -> UpsertOutcome:
        """写入研究记录，已存在时整体覆盖可变字段"""
        async with self.locks.hold(study.natural_key):
            existing = await self.store.find_one(
                Collection.STUDY,
                [FieldMatch("nct_id", study.nct_id)],
            )
            
            if existing is None:
                await self.store.create(Collection.STUDY, study.to_store_properties())
                logger.debug(f"Created study: {study.nct_id}")
                return UpsertOutcome.ADDED
            
            changes = _changed_fields(existing, study.content_properties())
            if changes:
                changes["updated_at"] = datetime.now().isoformat()
                await self.store.update(Collection.STUDY, existing["id"], changes)
                logger.debug(f"Updated study: {study.nct_id}")
            return UpsertOutcome.UPDATED
