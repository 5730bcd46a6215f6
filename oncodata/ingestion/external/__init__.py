# 外部 API 模块
from .base import APIResponse, ExternalAPIClient, SourceAPIError
from .clinical_trials import ClinicalTrialsAPI, StudyPage
from .openfda import OpenFDAClient

__all__ = [
    "APIResponse",
    "ClinicalTrialsAPI",
    "ExternalAPIClient",
    "OpenFDAClient",
    "SourceAPIError",
    "StudyPage",
]
