# 配置模块
from .settings import (
    APIConfig,
    ClinicalTrialsSourceConfig,
    FDASourceConfig,
    Neo4jConfig,
    SchedulerConfig,
    ScraperConfig,
    Settings,
    StorageConfig,
    get_settings,
    load_yaml_config,
)

__all__ = [
    "APIConfig",
    "ClinicalTrialsSourceConfig",
    "FDASourceConfig",
    "Neo4jConfig",
    "SchedulerConfig",
    "ScraperConfig",
    "Settings",
    "StorageConfig",
    "get_settings",
    "load_yaml_config",
]
