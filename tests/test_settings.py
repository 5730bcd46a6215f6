# 配置加载测试
from oncodata.config import Settings


CONFIG_YAML = """
ENVIRONMENT: production
LOG_LEVEL: WARNING
LOG_FORMAT: json

SCRAPER:
  rate_limit_delay: 0.5
  max_attempts: 5
  enabled_sources: [fda]
  fda:
    api_key: ${ONCODATA_TEST_FDA_KEY}
    search_terms: [leukemia]
  clinical_trials:
    page_size: 50

STORAGE:
  backend: memory

SCHEDULER:
  interval_hours: 12
"""


class TestSettings:
    """配置测试"""
    
    def test_from_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ONCODATA_TEST_FDA_KEY", "fda-secret")
        config_path = tmp_path / "conf.yaml"
        config_path.write_text(CONFIG_YAML, encoding="utf-8")
        
        settings = Settings.from_yaml(config_path)
        
        assert settings.environment == "production"
        assert settings.log_level == "WARNING"
        assert settings.log_format == "json"
        assert settings.scraper.rate_limit_delay == 0.5
        assert settings.scraper.max_attempts == 5
        assert settings.scraper.enabled_sources == ["fda"]
        assert settings.scraper.fda.api_key == "fda-secret"
        assert settings.scraper.fda.search_terms == ["leukemia"]
        assert settings.scraper.clinical_trials.page_size == 50
        assert "carcinoma" in settings.scraper.clinical_trials.conditions
        assert settings.storage.backend == "memory"
        assert settings.scheduler.interval_hours == 12
    
    def test_missing_file_uses_defaults(self, tmp_path):
        settings = Settings.from_yaml(tmp_path / "missing.yaml")
        
        assert settings.environment == "development"
        assert settings.scraper.rate_limit_delay == 1.0
        assert settings.scraper.max_attempts == 3
        assert settings.scraper.enabled_sources == ["fda", "clinicaltrials"]
        assert settings.scraper.fda.base_url == "https://api.fda.gov"
    
    def test_scheduler_enabled_by_environment(self):
        assert Settings(environment="production").scheduler_enabled
        assert not Settings(environment="development").scheduler_enabled
    
    def test_scheduler_explicit_override(self):
        settings = Settings(environment="development", scheduler={"enabled": True})
        assert settings.scheduler_enabled
        
        settings = Settings(environment="production", scheduler={"enabled": False})
        assert not settings.scheduler_enabled
