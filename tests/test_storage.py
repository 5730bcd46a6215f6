# 内存存储测试
import asyncio

import pytest

from oncodata.models import Collection
from oncodata.storage import FieldMatch, InMemoryStore, RecordNotFoundError, StorageError


class TestFieldMatch:
    
    def test_exact(self):
        assert FieldMatch("nct_id", "NCT1").matches({"nct_id": "NCT1"})
        assert not FieldMatch("nct_id", "NCT1").matches({"nct_id": "nct1"})
    
    def test_case_insensitive(self):
        match = FieldMatch("generic_name", "Pembrolizumab", case_insensitive=True)
        assert match.matches({"generic_name": "PEMBROLIZUMAB"})
        assert not match.matches({"generic_name": None})
        assert not match.matches({})


class TestInMemoryStore:
    """内存存储测试"""
    
    def test_create_and_find(self):
        async def scenario():
            store = InMemoryStore()
            await store.create(Collection.DRUG, {"id": "1", "generic_name": "a", "brand_name": "X"})
            await store.create(Collection.DRUG, {"id": "2", "generic_name": "b", "brand_name": "Y"})
            return (
                await store.find_one(Collection.DRUG, [FieldMatch("generic_name", "c"),
                                                       FieldMatch("brand_name", "Y")]),
                await store.find_one(Collection.DRUG, [FieldMatch("generic_name", "c")]),
                await store.find_one(Collection.STUDY, [FieldMatch("generic_name", "a")]),
            )
        
        found, missing, other_collection = asyncio.run(scenario())
        
        assert found["id"] == "2"
        assert missing is None
        assert other_collection is None
    
    def test_returned_records_are_copies(self):
        async def scenario():
            store = InMemoryStore()
            created = await store.create(Collection.DRUG, {"id": "1", "approvals": ["fda"]})
            created["approvals"].append("nmpa")
            return await store.find_one(Collection.DRUG, [FieldMatch("id", "1")])
        
        assert asyncio.run(scenario())["approvals"] == ["fda"]
    
    def test_update_merges(self):
        async def scenario():
            store = InMemoryStore()
            await store.create(Collection.STUDY, {"id": "1", "nct_id": "NCT1", "phase": ""})
            return await store.update(Collection.STUDY, "1", {"phase": "PHASE2"})
        
        assert asyncio.run(scenario()) == {"id": "1", "nct_id": "NCT1", "phase": "PHASE2"}
    
    def test_update_missing_record(self):
        with pytest.raises(RecordNotFoundError):
            asyncio.run(InMemoryStore().update(Collection.DRUG, "missing", {}))
    
    def test_create_requires_unique_id(self):
        async def scenario():
            store = InMemoryStore()
            await store.create(Collection.DRUG, {"id": "1"})
            await store.create(Collection.DRUG, {"id": "1"})
        
        with pytest.raises(StorageError):
            asyncio.run(scenario())
        with pytest.raises(StorageError):
            asyncio.run(InMemoryStore().create(Collection.DRUG, {"generic_name": "a"}))
    
    def test_find_many_newest_first(self):
        async def scenario():
            store = InMemoryStore()
            for i, created_at in enumerate(["2024-01-01", "2024-03-01", "2024-02-01"]):
                await store.create(Collection.SCRAPING_RUN, {
                    "id": str(i),
                    "source": "fda" if i < 2 else "clinicaltrials",
                    "created_at": created_at,
                })
            return (
                await store.find_many(Collection.SCRAPING_RUN),
                await store.find_many(Collection.SCRAPING_RUN, filters={"source": "fda"}, limit=1),
            )
        
        everything, filtered = asyncio.run(scenario())
        
        assert [r["id"] for r in everything] == ["1", "2", "0"]
        assert [r["id"] for r in filtered] == ["1"]
