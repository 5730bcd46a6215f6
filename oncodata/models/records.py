# 规范化记录模型
"""
定义抓取子系统的规范化记录:

1. CanonicalDrug (药物) - 以通用名/商品名为自然键
2. CanonicalStudy (临床研究) - 以 NCT 编号为自然键
3. ScrapingRun (抓取日志) - 每次数据源运行的审计记录，只追加不更新
4. ScrapingResult (抓取结果) - 数据源运行的汇总，返回给调用方
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def generate_id() -> str:
    """生成唯一ID"""
    return str(uuid4())


# 数据源标签
FDA_SOURCE = "fda"
CLINICAL_TRIALS_SOURCE = "clinicaltrials"
NMPA_SOURCE = "nmpa"


class Collection(str, Enum):
    """存储集合 (Neo4j 标签)"""
    DRUG = "Drug"
    STUDY = "Study"
    SCRAPING_RUN = "ScrapingRun"


class TherapeuticCategory(str, Enum):
    """治疗类别"""
    IMMUNOTHERAPY = "immunotherapy"
    TARGETED = "targeted"
    CHEMOTHERAPY = "chemotherapy"
    OTHER = "other"


class RunStatus(str, Enum):
    """抓取运行状态"""
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


# 每个审批机构对应的首次获批日期字段
APPROVAL_DATE_FIELDS: dict[str, str] = {
    FDA_SOURCE: "fda_date",
    NMPA_SOURCE: "nmpa_date",
}

# 系统维护字段，不参与内容比较
SYSTEM_FIELDS = frozenset({"id", "created_at", "updated_at"})


class BaseRecord(BaseModel):
    """记录基类"""
    collection: ClassVar[Collection]
    
    id: str = Field(default_factory=generate_id)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    
    def to_store_properties(self) -> dict[str, Any]:
        """转换为存储属性字典"""
        data = self.model_dump()
        # 转换日期时间
        for key, value in data.items():
            if isinstance(value, (datetime, date)):
                data[key] = value.isoformat()
            elif isinstance(value, Enum):
                data[key] = value.value
        return data
    
    def content_properties(self) -> dict[str, Any]:
        """业务字段 (去掉 id 与时间戳)"""
        return {
            key: value
            for key, value in self.to_store_properties().items()
            if key not in SYSTEM_FIELDS
        }
    
    @classmethod
    def from_store(cls, properties: dict[str, Any]):
        """从存储属性还原记录"""
        return cls.model_validate(properties)


class CanonicalDrug(BaseRecord):
    """药物记录
    
    自然键: 通用名 (不区分大小写)，商品名作为备选匹配。
    approvals 为集合语义，只会通过合并增长。
    """
    collection: ClassVar[Collection] = Collection.DRUG
    
    generic_name: str = Field(..., description="通用名")
    brand_name: str = Field("", description="商品名")
    drug_class: str = Field("", description="药物类别")
    category: TherapeuticCategory = Field(
        TherapeuticCategory.OTHER, description="治疗类别"
    )
    mechanism: str = Field("", description="作用机制")
    company: str = Field("", description="生产企业")
    description: str = Field("", description="描述")
    molecular_formula: str = Field("", description="分子式")
    atc_code: str = Field("", description="ATC编码")
    indications: list[str] = Field(default_factory=list, description="适应症")
    approvals: list[str] = Field(default_factory=list, description="获批来源")
    fda_date: Optional[date] = Field(None, description="FDA首次获批日期")
    nmpa_date: Optional[date] = Field(None, description="NMPA首次获批日期")
    
    @property
    def natural_key(self) -> str:
        return self.generic_name.lower()


class CanonicalStudy(BaseRecord):
    """临床研究记录
    
    自然键: NCT 编号，全局唯一且分配后不可变。
    """
    collection: ClassVar[Collection] = Collection.STUDY
    
    nct_id: str = Field(..., description="NCT编号")
    brief_title: str = Field("", description="简要标题")
    official_title: str = Field("", description="正式标题")
    brief_summary: str = Field("", description="简要摘要")
    phase: str = Field("", description="临床阶段")
    study_type: str = Field("", description="研究类型")
    overall_status: str = Field("", description="总体状态")
    recruitment_status: str = Field("", description="招募状态")
    sponsor: str = Field("", description="申办方")
    collaborators: list[str] = Field(default_factory=list, description="合作方")
    conditions: list[str] = Field(default_factory=list, description="疾病/状况")
    interventions: list[str] = Field(default_factory=list, description="干预措施")
    eligibility_criteria: str = Field("", description="入排标准")
    start_date: Optional[date] = Field(None, description="开始日期")
    completion_date: Optional[date] = Field(None, description="完成日期")
    enrollment: Optional[int] = Field(None, description="入组人数")
    has_results: bool = Field(False, description="是否已发布结果")
    results_first_posted: Optional[date] = Field(None, description="结果首次发布日期")
    
    @property
    def natural_key(self) -> str:
        return self.nct_id


class ScrapingResult(BaseModel):
    """单个数据源一次运行的汇总"""
    source: str
    status: RunStatus = RunStatus.SUCCESS
    items_processed: int = 0
    items_added: int = 0
    items_updated: int = 0
    items_failed: int = 0
    items_skipped: int = 0
    duration_ms: int = 0
    error: Optional[str] = None
    
    def to_run_record(self) -> "ScrapingRun":
        """生成抓取日志记录"""
        return ScrapingRun(
            source=self.source,
            status=self.status,
            items_processed=self.items_processed,
            items_added=self.items_added,
            items_updated=self.items_updated,
            items_failed=self.items_failed,
            duration_ms=self.duration_ms,
            error_message=self.error,
            log_details=self.model_dump_json(),
        )


class ScrapingRun(BaseRecord):
    """抓取日志，只追加"""
    collection: ClassVar[Collection] = Collection.SCRAPING_RUN
    
    source: str
    status: RunStatus
    items_processed: int = 0
    items_added: int = 0
    items_updated: int = 0
    items_failed: int = 0
    duration_ms: int = 0
    error_message: Optional[str] = None
    log_details: str = "{}"
    
    @property
    def details(self) -> dict[str, Any]:
        """解析后的结构化详情"""
        return json.loads(self.log_details or "{}")
