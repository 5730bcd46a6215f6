# 字段提取
"""
从解析后的载荷中提取规范化字段。

每个字段有固定的回退链，缺失时给出空字符串/空列表/None，永不抛异常。
"""

from datetime import date, datetime
from typing import Any, Optional

from oncodata.models import (
    APPROVAL_DATE_FIELDS,
    CanonicalDrug,
    CanonicalStudy,
    TherapeuticCategory,
)

from .classifier import classify_category
from .payloads import DrugLabelPayload, StudyPayload


def _first(*candidates: Any) -> str:
    """返回第一个非空字符串"""
    for candidate in candidates:
        if isinstance(candidate, list):
            candidate = candidate[0] if candidate else ""
        if candidate:
            return candidate
    return ""


# ==================== 日期 ====================

def parse_date_struct(value: Any) -> Optional[date]:
    """解析日期
    
    支持 {year, month, day} 结构 (month 从 1 开始) 与 ISO 日期字符串。
    任一分量缺失或为假值、或日期非法时返回 None。
    """
    if isinstance(value, dict):
        try:
            year = int(value.get("year") or 0)
            month = int(value.get("month") or 0)
            day = int(value.get("day") or 0)
        except (TypeError, ValueError):
            return None
        if not (year and month and day):
            return None
        try:
            return date(year, month, day)
        except ValueError:
            return None
    
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    
    return None


def parse_label_date(value: str) -> Optional[date]:
    """解析 openFDA 日期 (YYYYMMDD 或 ISO)"""
    if not value:
        return None
    for fmt in ("%Y%m%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(value[:10], fmt).date()
        except ValueError:
            continue
    return None


# ==================== openFDA 药品说明书 ====================

def extract_generic_name(label: DrugLabelPayload) -> str:
    return _first(
        label.openfda.generic_name,
        label.substance_name,
        label.active_ingredient,
    )


def extract_brand_name(label: DrugLabelPayload) -> str:
    return _first(label.openfda.brand_name, label.proprietary_name)


def extract_indications(label: DrugLabelPayload) -> list[str]:
    return list(label.indications_and_usage)


def extract_drug_class(label: DrugLabelPayload) -> str:
    return _first(label.openfda.pharm_class_moa, label.drug_class)


def extract_mechanism(label: DrugLabelPayload) -> str:
    return _first(label.openfda.mechanism_of_action, label.mechanism_of_action)


def extract_company(label: DrugLabelPayload) -> str:
    return _first(label.openfda.manufacturer_name, label.company)


def extract_description(label: DrugLabelPayload) -> str:
    return _first(label.description, label.purpose)


def extract_molecular_formula(label: DrugLabelPayload) -> str:
    return _first(label.openfda.molecular_formula)


def extract_atc_code(label: DrugLabelPayload) -> str:
    return _first(label.openfda.atc_code)


def extract_approval_date(label: DrugLabelPayload) -> Optional[date]:
    return parse_label_date(_first(label.openfda.approval_date))


def categorize_drug(label: DrugLabelPayload) -> TherapeuticCategory:
    """按机制与适应症全文推导治疗类别"""
    mechanisms = " ".join(label.openfda.mechanism_of_action) or label.mechanism_of_action
    indications = " ".join(label.indications_and_usage)
    drug_class = " ".join(
        label.openfda.drug_class + label.openfda.pharm_class_epc + [label.drug_class]
    )
    return classify_category(mechanisms, indications, drug_class)


def extract_drug(label: DrugLabelPayload, source: str) -> Optional[CanonicalDrug]:
    """说明书 -> 药物记录
    
    Args:
        label: 解析后的说明书
        source: 数据源标签，决定首次获批日期写入哪个字段
        
    Returns:
        CanonicalDrug | None: 缺少通用名时返回 None
    """
    generic_name = extract_generic_name(label)
    if not generic_name:
        return None
    
    fields: dict[str, Any] = {}
    date_field = APPROVAL_DATE_FIELDS.get(source)
    if date_field:
        fields[date_field] = extract_approval_date(label)
    
    return CanonicalDrug(
        generic_name=generic_name,
        brand_name=extract_brand_name(label),
        drug_class=extract_drug_class(label),
        category=categorize_drug(label),
        mechanism=extract_mechanism(label),
        company=extract_company(label),
        indications=extract_indications(label),
        description=extract_description(label),
        molecular_formula=extract_molecular_formula(label),
        atc_code=extract_atc_code(label),
        approvals=[source],
        **fields,
    )


# ==================== ClinicalTrials.gov ====================

def extract_nct_id(study: StudyPayload) -> str:
    return study.protocol.identification.nct_id


def extract_study_phase(study: StudyPayload) -> str:
    design = study.protocol.design
    return design.phase or ", ".join(design.phases) or study.phase


def extract_sponsor(study: StudyPayload) -> str:
    return study.protocol.sponsors.lead_sponsor.name


def extract_collaborators(study: StudyPayload) -> list[str]:
    return list(study.protocol.sponsors.collaborators)


def extract_conditions(study: StudyPayload) -> list[str]:
    return list(study.protocol.conditions.conditions)


def extract_interventions(study: StudyPayload) -> list[str]:
    return list(study.protocol.arms_interventions.interventions)


def check_has_results(study: StudyPayload) -> bool:
    if study.has_results is not None:
        return study.has_results
    return study.protocol.results is not None


def extract_results_first_posted(study: StudyPayload) -> Optional[date]:
    results = study.protocol.results
    if results is not None:
        posted = parse_date_struct(results.results_first_posted_date)
        if posted:
            return posted
    return parse_date_struct(study.protocol.status.results_first_post_date_struct.date)


def extract_study(study: StudyPayload) -> Optional[CanonicalStudy]:
    """研究载荷 -> 研究记录，缺少 NCT 编号时返回 None"""
    nct_id = extract_nct_id(study)
    if not nct_id:
        return None
    
    protocol = study.protocol
    return CanonicalStudy(
        nct_id=nct_id,
        brief_title=protocol.identification.brief_title,
        official_title=protocol.identification.official_title,
        brief_summary=protocol.description.brief_summary,
        phase=extract_study_phase(study),
        study_type=protocol.design.study_type,
        overall_status=protocol.status.overall_status,
        recruitment_status=protocol.status.recruitment_status,
        sponsor=extract_sponsor(study),
        collaborators=extract_collaborators(study),
        conditions=extract_conditions(study),
        interventions=extract_interventions(study),
        eligibility_criteria=protocol.eligibility.eligibility_criteria,
        start_date=parse_date_struct(protocol.status.start_date_struct.date),
        completion_date=parse_date_struct(protocol.status.completion_date_struct.date),
        enrollment=protocol.design.enrollment_info.count,
        has_results=check_has_results(study),
        results_first_posted=extract_results_first_posted(study),
    )
