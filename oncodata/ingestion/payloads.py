# 外部数据源载荷解析
"""
把形态多变的外部 JSON 载荷解析为带显式可选字段的中间结构。

每个数据源的 "字段是否存在/类型是否正确" 判断集中在这里:
- 缺失或 null 的对象 -> 空对象
- 单个字符串 <-> 字符串列表 互相兼容
- 无法识别的值 -> 空默认值

解析永不抛异常，提取函数 (extractors) 只面对规整的结构。
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from oncodata.utils import get_logger

logger = get_logger(__name__)


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item:
                return item
    return ""


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [_as_str(item) for item in value if _as_str(item)]
    return []


def _as_name_list(value: Any) -> list[str]:
    """字符串或 {"name": ...} 对象组成的列表 -> 名称列表"""
    if not isinstance(value, list):
        return []
    names = []
    for item in value:
        name = _as_str(item.get("name")) if isinstance(item, dict) else _as_str(item)
        if name:
            names.append(name)
    return names


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


Text = Annotated[str, BeforeValidator(_as_str)]
TextList = Annotated[list[str], BeforeValidator(_as_str_list)]
NameList = Annotated[list[str], BeforeValidator(_as_name_list)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_as_int)]
OptionalBool = Annotated[Optional[bool], BeforeValidator(_as_bool)]


class LenientModel(BaseModel):
    """宽松解析基类: 非对象输入视为空对象，忽略未知字段"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    
    @model_validator(mode="before")
    @classmethod
    def _coerce_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


# ==================== openFDA 药品说明书 ====================

class OpenFDASection(LenientModel):
    """说明书中的 openfda 标准化字段"""
    generic_name: TextList = Field(default_factory=list)
    brand_name: TextList = Field(default_factory=list)
    substance_name: TextList = Field(default_factory=list)
    pharm_class_moa: TextList = Field(default_factory=list)
    pharm_class_epc: TextList = Field(default_factory=list)
    drug_class: TextList = Field(default_factory=list)
    mechanism_of_action: TextList = Field(default_factory=list)
    manufacturer_name: TextList = Field(default_factory=list)
    molecular_formula: TextList = Field(default_factory=list)
    atc_code: TextList = Field(default_factory=list)
    approval_date: TextList = Field(default_factory=list)


class DrugLabelPayload(LenientModel):
    """openFDA drug/label 单条记录"""
    openfda: OpenFDASection = Field(default_factory=OpenFDASection)
    substance_name: Text = Field("", alias="substanceName")
    active_ingredient: TextList = Field(default_factory=list)
    proprietary_name: Text = Field("", alias="proprietaryName")
    indications_and_usage: TextList = Field(default_factory=list)
    drug_class: Text = ""
    mechanism_of_action: Text = Field("", alias="mechanismOfAction")
    company: Text = ""
    description: TextList = Field(default_factory=list)
    purpose: TextList = Field(default_factory=list)


# ==================== ClinicalTrials.gov v2 ====================

class DateStruct(LenientModel):
    """日期结构，date 可能是 {year, month, day} 或 ISO 字符串"""
    date: Any = None


class NamedEntity(LenientModel):
    name: Text = ""


class IdentificationModule(LenientModel):
    nct_id: Text = Field("", alias="nctId")
    brief_title: Text = Field("", alias="briefTitle")
    official_title: Text = Field("", alias="officialTitle")


class StatusModule(LenientModel):
    overall_status: Text = Field("", alias="overallStatus")
    recruitment_status: Text = Field("", alias="recruitmentStatus")
    start_date_struct: DateStruct = Field(default_factory=DateStruct, alias="startDateStruct")
    completion_date_struct: DateStruct = Field(
        default_factory=DateStruct, alias="completionDateStruct"
    )
    results_first_post_date_struct: DateStruct = Field(
        default_factory=DateStruct, alias="resultsFirstPostDateStruct"
    )


class DescriptionModule(LenientModel):
    brief_summary: Text = Field("", alias="briefSummary")


class EnrollmentInfo(LenientModel):
    count: OptionalInt = None


class DesignModule(LenientModel):
    phase: Text = ""
    phases: TextList = Field(default_factory=list)
    study_type: Text = Field("", alias="studyType")
    enrollment_info: EnrollmentInfo = Field(default_factory=EnrollmentInfo, alias="enrollmentInfo")


class SponsorCollaboratorsModule(LenientModel):
    lead_sponsor: NamedEntity = Field(default_factory=NamedEntity, alias="leadSponsor")
    collaborators: NameList = Field(default_factory=list)


class ConditionsModule(LenientModel):
    conditions: NameList = Field(default_factory=list)


class ArmsInterventionsModule(LenientModel):
    interventions: NameList = Field(default_factory=list)


class EligibilityModule(LenientModel):
    eligibility_criteria: Text = Field("", alias="eligibilityCriteria")


class ResultsModule(LenientModel):
    results_first_posted_date: Any = Field(None, alias="resultsFirstPostedDate")


class ProtocolSection(LenientModel):
    identification: IdentificationModule = Field(
        default_factory=IdentificationModule, alias="identificationModule"
    )
    status: StatusModule = Field(default_factory=StatusModule, alias="statusModule")
    description: DescriptionModule = Field(
        default_factory=DescriptionModule, alias="descriptionModule"
    )
    design: DesignModule = Field(default_factory=DesignModule, alias="designModule")
    sponsors: SponsorCollaboratorsModule = Field(
        default_factory=SponsorCollaboratorsModule, alias="sponsorCollaboratorsModule"
    )
    conditions: ConditionsModule = Field(
        default_factory=ConditionsModule, alias="conditionsModule"
    )
    arms_interventions: ArmsInterventionsModule = Field(
        default_factory=ArmsInterventionsModule, alias="armsInterventionsModule"
    )
    eligibility: EligibilityModule = Field(
        default_factory=EligibilityModule, alias="eligibilityModule"
    )
    # 非 v2 标准模块，不在请求字段中；v2 结果状态由顶层 hasResults 给出
    results: Optional[ResultsModule] = Field(None, alias="resultsModule")
    
    @model_validator(mode="before")
    @classmethod
    def _drop_invalid_results(cls, value: Any) -> Any:
        if isinstance(value, dict) and not isinstance(value.get("resultsModule"), (dict, type(None))):
            value = {k: v for k, v in value.items() if k != "resultsModule"}
        return value


class StudyPayload(LenientModel):
    """ClinicalTrials.gov v2 单条研究"""
    protocol: ProtocolSection = Field(default_factory=ProtocolSection, alias="protocolSection")
    phase: Text = ""
    has_results: OptionalBool = Field(None, alias="hasResults")


# ==================== 解析入口 ====================

def parse_drug_label(raw: Any) -> DrugLabelPayload:
    """解析 openFDA 说明书记录，失败时返回空载荷"""
    try:
        return DrugLabelPayload.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Malformed FDA label payload, using empty defaults: {e}")
        return DrugLabelPayload()


def parse_study(raw: Any) -> StudyPayload:
    """解析 ClinicalTrials.gov 研究记录，失败时返回空载荷"""
    try:
        return StudyPayload.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Malformed study payload, using empty defaults: {e}")
        return StudyPayload()
