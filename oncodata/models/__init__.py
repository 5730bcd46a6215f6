# 数据模型
from .records import (
    APPROVAL_DATE_FIELDS,
    CLINICAL_TRIALS_SOURCE,
    FDA_SOURCE,
    NMPA_SOURCE,
    BaseRecord,
    CanonicalDrug,
    CanonicalStudy,
    Collection,
    RunStatus,
    ScrapingResult,
    ScrapingRun,
    TherapeuticCategory,
)

__all__ = [
    "APPROVAL_DATE_FIELDS",
    "CLINICAL_TRIALS_SOURCE",
    "FDA_SOURCE",
    "NMPA_SOURCE",
    "BaseRecord",
    "CanonicalDrug",
    "CanonicalStudy",
    "Collection",
    "RunStatus",
    "ScrapingResult",
    "ScrapingRun",
    "TherapeuticCategory",
]
