# 存储模块
"""
记录存储后端:
- RecordStore 抽象接口 (find_one / create / update)
- InMemoryStore 内存实现
- Neo4jStore 图数据库实现
"""

from oncodata.config import Settings

from .base import FieldMatch, RecordNotFoundError, RecordStore, StorageError
from .memory import InMemoryStore
from .neo4j_store import Neo4jStore, init_neo4j_schema


def create_store(settings: Settings) -> RecordStore:
    """根据配置创建存储后端"""
    if settings.storage.backend == "memory":
        return InMemoryStore()
    return Neo4jStore.from_config(settings.neo4j)


__all__ = [
    "FieldMatch",
    "InMemoryStore",
    "Neo4jStore",
    "RecordNotFoundError",
    "RecordStore",
    "StorageError",
    "create_store",
    "init_neo4j_schema",
]
