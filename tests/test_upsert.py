# 记录写入测试
"""
测试药物与研究记录的按自然键写入
"""

import asyncio
from datetime import date

from oncodata.ingestion import DrugUpserter, StudyUpserter, UpsertLocks, UpsertOutcome
from oncodata.ingestion.upsert import KeyedLock, merge_approvals
from oncodata.models import CanonicalDrug, CanonicalStudy, Collection
from oncodata.storage import InMemoryStore

from conftest import NoLock, YieldingStore


def make_drug(**overrides) -> CanonicalDrug:
    fields = {
        "generic_name": "Pembrolizumab",
        "brand_name": "Keytruda",
        "mechanism": "PD-1 blocking antibody",
        "approvals": ["fda"],
    }
    fields.update(overrides)
    return CanonicalDrug(**fields)


def only_record(store: InMemoryStore, collection: Collection) -> dict:
    records = list(store.snapshot(collection).values())
    assert len(records) == 1
    return records[0]


class TestMergeApprovals:
    """获批来源合并测试"""
    
    def test_union_without_duplicates(self):
        assert merge_approvals(["fda"], ["nmpa"]) == ["fda", "nmpa"]
        assert merge_approvals(["fda", "nmpa"], ["fda"]) == ["fda", "nmpa"]
    
    def test_existing_missing(self):
        assert merge_approvals(None, ["fda"]) == ["fda"]
    
    def test_existing_duplicates_collapsed(self):
        assert merge_approvals(["fda", "fda"], []) == ["fda"]


class TestDrugUpserter:
    """药物写入测试"""
    
    def test_create_new_drug(self):
        async def scenario():
            store = InMemoryStore()
            outcome = await DrugUpserter(store).upsert(make_drug(approvals=[]), "fda")
            return store, outcome
        
        store, outcome = asyncio.run(scenario())
        
        assert outcome == UpsertOutcome.ADDED
        record = only_record(store, Collection.DRUG)
        assert record["generic_name"] == "Pembrolizumab"
        assert record["approvals"] == ["fda"]
        assert record["category"] == "other"
    
    def test_match_is_case_insensitive(self):
        async def scenario():
            store = InMemoryStore()
            upserter = DrugUpserter(store)
            await upserter.upsert(make_drug(), "fda")
            return store, await upserter.upsert(make_drug(generic_name="PEMBROLIZUMAB"), "fda")
        
        store, outcome = asyncio.run(scenario())
        
        assert outcome == UpsertOutcome.UPDATED
        assert store.count(Collection.DRUG) == 1
        assert only_record(store, Collection.DRUG)["generic_name"] == "PEMBROLIZUMAB"
    
    def test_match_by_brand_name(self):
        async def scenario():
            store = InMemoryStore()
            upserter = DrugUpserter(store)
            await upserter.upsert(make_drug(), "fda")
            renamed = make_drug(generic_name="pembrolizumab injection", brand_name="KEYTRUDA")
            return store, await upserter.upsert(renamed, "fda")
        
        store, outcome = asyncio.run(scenario())
        
        assert outcome == UpsertOutcome.UPDATED
        assert store.count(Collection.DRUG) == 1
    
    def test_approvals_union_is_order_independent(self):
        """两个来源以任意顺序写入，结果都包含两者且不重复"""
        async def scenario(order):
            store = InMemoryStore()
            upserter = DrugUpserter(store)
            for source in order:
                await upserter.upsert(make_drug(approvals=[source]), source)
            await upserter.upsert(make_drug(approvals=[order[0]]), order[0])
            return only_record(store, Collection.DRUG)["approvals"]
        
        first = asyncio.run(scenario(["fda", "nmpa"]))
        second = asyncio.run(scenario(["nmpa", "fda"]))
        
        assert sorted(first) == ["fda", "nmpa"]
        assert sorted(second) == ["fda", "nmpa"]
    
    def test_existing_approval_date_kept(self):
        async def scenario():
            store = InMemoryStore()
            upserter = DrugUpserter(store)
            await upserter.upsert(make_drug(fda_date=date(2014, 9, 4)), "fda")
            await upserter.upsert(make_drug(fda_date=date(2020, 1, 1)), "fda")
            return store
        
        record = only_record(asyncio.run(scenario()), Collection.DRUG)
        assert record["fda_date"] == "2014-09-04"
    
    def test_missing_approval_date_filled(self):
        async def scenario():
            store = InMemoryStore()
            upserter = DrugUpserter(store)
            await upserter.upsert(make_drug(), "fda")
            await upserter.upsert(make_drug(fda_date=date(2014, 9, 4)), "fda")
            return store
        
        record = only_record(asyncio.run(scenario()), Collection.DRUG)
        assert record["fda_date"] == "2014-09-04"
    
    def test_scalar_fields_overwritten(self):
        async def scenario():
            store = InMemoryStore()
            upserter = DrugUpserter(store)
            await upserter.upsert(make_drug(company="Merck"), "fda")
            await upserter.upsert(make_drug(company="Merck Sharp & Dohme LLC"), "fda")
            return store
        
        record = only_record(asyncio.run(scenario()), Collection.DRUG)
        assert record["company"] == "Merck Sharp & Dohme LLC"
    
    def test_unchanged_drug_not_rewritten(self):
        async def scenario():
            store = InMemoryStore()
            upserter = DrugUpserter(store)
            await upserter.upsert(make_drug(), "fda")
            before = store.snapshot(Collection.DRUG)
            outcome = await upserter.upsert(make_drug(), "fda")
            return before, store.snapshot(Collection.DRUG), outcome
        
        before, after, outcome = asyncio.run(scenario())
        
        assert outcome == UpsertOutcome.UPDATED
        assert before == after
    
    def test_concurrent_upserters_share_lock(self):
        """两个写入方共享按键锁时，并发写入同一药物只产生一条记录"""
        async def scenario():
            store = YieldingStore()
            locks = UpsertLocks()
            fda = DrugUpserter(store, locks.drugs)
            nmpa = DrugUpserter(store, locks.drugs)
            outcomes = await asyncio.gather(
                fda.upsert(make_drug(), "fda"),
                nmpa.upsert(make_drug(generic_name="pembrolizumab"), "nmpa"),
            )
            return store, outcomes
        
        store, outcomes = asyncio.run(scenario())
        
        assert sorted(outcomes) == [UpsertOutcome.ADDED, UpsertOutcome.UPDATED]
        assert sorted(only_record(store, Collection.DRUG)["approvals"]) == ["fda", "nmpa"]
    
    def test_store_interleaves_without_lock(self):
        """不加锁时同样的并发写入会重复创建"""
        async def scenario():
            store = YieldingStore()
            upserter = DrugUpserter(store, NoLock())
            await asyncio.gather(
                upserter.upsert(make_drug(), "fda"),
                upserter.upsert(make_drug(generic_name="pembrolizumab"), "nmpa"),
            )
            return store
        
        assert asyncio.run(scenario()).count(Collection.DRUG) == 2


class TestStudyUpserter:
    """研究写入测试"""
    
    def test_create_and_overwrite(self):
        async def scenario():
            store = InMemoryStore()
            upserter = StudyUpserter(store)
            first = await upserter.upsert(CanonicalStudy(
                nct_id="NCT01234567",
                overall_status="RECRUITING",
                conditions=["Melanoma"],
                enrollment=100,
            ))
            second = await upserter.upsert(CanonicalStudy(
                nct_id="NCT01234567",
                overall_status="COMPLETED",
                conditions=[],
            ))
            return store, first, second
        
        store, first, second = asyncio.run(scenario())
        
        assert first == UpsertOutcome.ADDED
        assert second == UpsertOutcome.UPDATED
        record = only_record(store, Collection.STUDY)
        assert record["overall_status"] == "COMPLETED"
        assert record["conditions"] == []
        assert record["enrollment"] is None
    
    def test_id_and_created_at_preserved(self):
        async def scenario():
            store = InMemoryStore()
            upserter = StudyUpserter(store)
            await upserter.upsert(CanonicalStudy(nct_id="NCT1", brief_title="A"))
            before = only_record(store, Collection.STUDY)
            await upserter.upsert(CanonicalStudy(nct_id="NCT1", brief_title="B"))
            return before, only_record(store, Collection.STUDY)
        
        before, after = asyncio.run(scenario())
        
        assert after["id"] == before["id"]
        assert after["created_at"] == before["created_at"]
        assert after["brief_title"] == "B"
        assert after["updated_at"] >= before["updated_at"]
    
    def test_nct_id_match_is_exact(self):
        async def scenario():
            store = InMemoryStore()
            upserter = StudyUpserter(store)
            await upserter.upsert(CanonicalStudy(nct_id="NCT1"))
            await upserter.upsert(CanonicalStudy(nct_id="NCT2"))
            return store
        
        assert asyncio.run(scenario()).count(Collection.STUDY) == 2


class TestKeyedLock:
    """按键锁测试"""
    
    def test_same_key_serialized(self):
        async def scenario():
            locks = KeyedLock()
            events = []
            
            async def worker(name):
                async with locks.hold("drug"):
                    events.append(f"{name}-in")
                    await asyncio.sleep(0)
                    events.append(f"{name}-out")
            
            await asyncio.gather(worker("a"), worker("b"))
            return events, len(locks)
        
        events, remaining = asyncio.run(scenario())
        
        assert events == ["a-in", "a-out", "b-in", "b-out"]
        assert remaining == 0
