# Neo4j 存储封装
"""
Neo4j 记录存储，提供:
- 连接管理
- 按集合 (节点标签) 的查找/创建/更新
- 约束与索引初始化
"""

from contextlib import asynccontextmanager
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import Neo4jError

from oncodata.config import Neo4jConfig
from oncodata.models import Collection
from oncodata.utils import get_logger

from .base import FieldMatch, RecordNotFoundError, RecordStore, StorageError

logger = get_logger(__name__)


class Neo4jStore(RecordStore):
    """Neo4j 异步记录存储
    
    每个集合对应一个节点标签，记录属性直接保存为节点属性。
    """
    
    def __init__(
        self,
        uri: str,
        username: str,
        password: str,
        database: str = "neo4j",
    ):
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self._driver: AsyncDriver | None = None
    
    @classmethod
    def from_config(cls, config: Neo4jConfig) -> "Neo4jStore":
        return cls(
            uri=config.uri,
            username=config.username,
            password=config.password,
            database=config.database,
        )
    
    async def connect(self) -> None:
        """建立数据库连接"""
        if self._driver is None:
            logger.info(f"Connecting to Neo4j at {self.uri}")
            self._driver = AsyncGraphDatabase.driver(
                self.uri,
                auth=(self.username, self.password),
            )
            # 验证连接
            await self._driver.verify_connectivity()
            logger.info("Neo4j connection established")
    
    async def close(self) -> None:
        """关闭数据库连接"""
        if self._driver:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")
    
    @asynccontextmanager
    async def session(self):
        """获取数据库会话"""
        if self._driver is None:
            await self.connect()
        
        session = self._driver.session(database=self.database)
        try:
            yield session
        finally:
            await session.close()
    
    async def _run_single(self, query: str, **params: Any) -> dict[str, Any] | None:
        """执行查询并返回第一条记录的节点属性"""
        try:
            async with self.session() as session:
                result = await session.run(query, **params)
                record = await result.single()
        except Neo4jError as e:
            raise StorageError(f"Neo4j query failed: {e}") from e
        
        if record is None:
            return None
        return dict(record["n"])
    
    async def find_one(
        self,
        collection: Collection,
        any_of: list[FieldMatch],
    ) -> dict[str, Any] | None:
        if not any_of:
            return None
        
        conditions = []
        params: dict[str, Any] = {}
        for i, match in enumerate(any_of):
            key = f"v{i}"
            params[key] = match.value
            if match.case_insensitive:
                conditions.append(f"toLower(n.{match.field}) = toLower(${key})")
            else:
                conditions.append(f"n.{match.field} = ${key}")
        
        query = f"""
        MATCH (n:{collection.value})
        WHERE {' OR '.join(conditions)}
        RETURN n
        LIMIT 1
        """
        return await self._run_single(query, **params)
    
    async def create(
        self,
        collection: Collection,
        properties: dict[str, Any],
    ) -> dict[str, Any]:
        query = f"""
        CREATE (n:{collection.value} $props)
        RETURN n
        """
        record = await self._run_single(query, props=properties)
        logger.debug(f"Created node: {collection.value} with id {properties.get('id')}")
        return record or properties
    
    async def update(
        self,
        collection: Collection,
        record_id: str,
        partial: dict[str, Any],
    ) -> dict[str, Any]:
        query = f"""
        MATCH (n:{collection.value} {{id: $id}})
        SET n += $props
        RETURN n
        """
        record = await self._run_single(query, id=record_id, props=partial)
        if record is None:
            raise RecordNotFoundError(collection, record_id)
        return record
    
    async def find_many(
        self,
        collection: Collection,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        where_clause = ""
        if filters:
            conditions = [f"n.{k} = ${k}" for k in filters.keys()]
            where_clause = "WHERE " + " AND ".join(conditions)
        
        query = f"""
        MATCH (n:{collection.value})
        {where_clause}
        RETURN n
        ORDER BY n.created_at DESC
        LIMIT $limit
        """
        
        params: dict[str, Any] = {"limit": limit}
        if filters:
            params.update(filters)
        
        try:
            async with self.session() as session:
                result = await session.run(query, **params)
                records = await result.data()
        except Neo4jError as e:
            raise StorageError(f"Neo4j query failed: {e}") from e
        return [dict(r["n"]) for r in records]


async def init_neo4j_schema(store: Neo4jStore) -> None:
    """初始化 Neo4j 索引和约束
    
    Args:
        store: Neo4j 存储
    """
    async with store.session() as session:
        # 创建唯一约束
        constraints = [
            "CREATE CONSTRAINT IF NOT EXISTS FOR (n:Drug) REQUIRE n.id IS UNIQUE",
            "CREATE CONSTRAINT IF NOT EXISTS FOR (n:Study) REQUIRE n.id IS UNIQUE",
            "CREATE CONSTRAINT IF NOT EXISTS FOR (n:Study) REQUIRE n.nct_id IS UNIQUE",
            "CREATE CONSTRAINT IF NOT EXISTS FOR (n:ScrapingRun) REQUIRE n.id IS UNIQUE",
        ]
        
        # 创建索引
        indexes = [
            "CREATE INDEX IF NOT EXISTS FOR (n:Drug) ON (n.generic_name)",
            "CREATE INDEX IF NOT EXISTS FOR (n:Drug) ON (n.brand_name)",
            "CREATE INDEX IF NOT EXISTS FOR (n:ScrapingRun) ON (n.source)",
            "CREATE INDEX IF NOT EXISTS FOR (n:ScrapingRun) ON (n.created_at)",
        ]
        
        for query in constraints + indexes:
            await session.run(query)
        
        logger.info("Neo4j schema initialized")
