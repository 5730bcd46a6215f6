# oncodata 配置管理
"""
统一配置管理模块，支持:
- YAML 配置文件
- 环境变量覆盖
- 多环境配置 (development / production)
"""

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_yaml_config(config_path: str | Path) -> dict[str, Any]:
    """加载 YAML 配置文件，支持环境变量替换"""
    config_path = Path(config_path)
    if not config_path.exists():
        return {}
    
    with open(config_path, "r", encoding="utf-8") as f:
        content = f.read()
    
    # 替换环境变量 ${VAR_NAME}
    def replace_env_var(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    
    content = re.sub(r'\$\{(\w+)\}', replace_env_var, content)
    return yaml.safe_load(content) or {}


class FDASourceConfig(BaseSettings):
    """openFDA 药品说明书数据源配置"""
    model_config = SettingsConfigDict(env_prefix="FDA_")

    base_url: str = "https://api.fda.gov"
    api_key: str = ""
    timeout: int = 30
    page_size: int = 100
    max_pages: int = 1
    search_terms: list[str] = [
        "cancer",
        "tumor",
        "oncology",
        "malignant",
        "chemotherapy",
        "immunotherapy",
        "targeted",
    ]


class ClinicalTrialsSourceConfig(BaseSettings):
    """ClinicalTrials.gov 数据源配置"""
    model_config = SettingsConfigDict(env_prefix="CLINICAL_TRIALS_")

    base_url: str = "https://clinicaltrials.gov/api"
    timeout: int = 30
    page_size: int = 100
    max_pages: int = 1
    conditions: list[str] = [
        "cancer",
        "tumor",
        "oncology",
        "malignant",
        "carcinoma",
        "sarcoma",
        "leukemia",
        "lymphoma",
    ]
    # v2 返回字段，需覆盖研究提取读取的全部模块
    fields: list[str] = [
        "protocolSection.identificationModule",
        "protocolSection.statusModule",
        "protocolSection.descriptionModule",
        "protocolSection.designModule",
        "protocolSection.sponsorCollaboratorsModule",
        "protocolSection.conditionsModule",
        "protocolSection.armsInterventionsModule",
        "protocolSection.eligibilityModule",
        "hasResults",
    ]


class ScraperConfig(BaseSettings):
    """数据抓取配置"""
    rate_limit_delay: float = 1.0  # 秒
    max_attempts: int = 3
    retry_base_delay: float = 1.0  # 秒
    enabled_sources: list[str] = ["fda", "clinicaltrials"]
    fda: FDASourceConfig = Field(default_factory=FDASourceConfig)
    clinical_trials: ClinicalTrialsSourceConfig = Field(
        default_factory=ClinicalTrialsSourceConfig
    )


class Neo4jConfig(BaseSettings):
    """Neo4j 数据库配置"""
    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: str = ""
    database: str = "oncodata"


class StorageConfig(BaseSettings):
    """存储后端配置"""
    backend: Literal["neo4j", "memory"] = "neo4j"


class SchedulerConfig(BaseSettings):
    """定时抓取配置

    enabled 为空时按运行环境决定: 仅 production 启用。
    """
    enabled: bool | None = None
    interval_hours: float = 24.0
    run_on_start: bool = False


class APIConfig(BaseSettings):
    """API 服务配置"""
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]


class Settings(BaseSettings):
    """全局配置"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    environment: Literal["development", "production", "test"] = "development"
    
    # 抓取配置
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    
    # 存储配置
    storage: StorageConfig = Field(default_factory=StorageConfig)
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig)
    
    # 服务配置
    api: APIConfig = Field(default_factory=APIConfig)
    
    # 日志
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    
    @property
    def scheduler_enabled(self) -> bool:
        """定时任务是否启用"""
        if self.scheduler.enabled is not None:
            return self.scheduler.enabled
        return self.environment == "production"
    
    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """从 YAML 配置文件加载设置"""
        config = load_yaml_config(config_path)
        
        # 构建设置对象
        settings_dict: dict[str, Any] = {}
        
        for key in ("ENVIRONMENT", "LOG_LEVEL", "LOG_FORMAT"):
            if key in config:
                settings_dict[key.lower()] = config[key]
        
        if "SCRAPER" in config:
            scraper_config = dict(config["SCRAPER"])
            fda_config = scraper_config.pop("fda", None) or {}
            ct_config = scraper_config.pop("clinical_trials", None) or {}
            settings_dict["scraper"] = ScraperConfig(
                fda=FDASourceConfig(**fda_config),
                clinical_trials=ClinicalTrialsSourceConfig(**ct_config),
                **scraper_config,
            )
        if "SCHEDULER" in config:
            settings_dict["scheduler"] = SchedulerConfig(**config["SCHEDULER"])
        if "STORAGE" in config:
            settings_dict["storage"] = StorageConfig(**config["STORAGE"])
        if "NEO4J" in config:
            settings_dict["neo4j"] = Neo4jConfig(**config["NEO4J"])
        if "API" in config:
            settings_dict["api"] = APIConfig(**config["API"])
        
        return cls(**settings_dict)


def default_config_path() -> Path:
    """默认配置文件路径，可通过 ONCODATA_CONFIG 覆盖"""
    env_path = os.environ.get("ONCODATA_CONFIG")
    if env_path:
        return Path(env_path)
    return Path(__file__).parent.parent.parent / "conf.yaml"


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置"""
    config_path = default_config_path()
    if config_path.exists():
        return Settings.from_yaml(config_path)
    return Settings()
