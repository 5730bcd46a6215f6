# 数据源适配器
from .base import SourceAdapter
from .clinical_trials import ClinicalTrialsAdapter
from .fda import FDAAdapter

__all__ = ["ClinicalTrialsAdapter", "FDAAdapter", "SourceAdapter"]
