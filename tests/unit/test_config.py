"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from lodecore.config import Config, LazyConfig, RateLimitConfig
from lodecore.protocols import BackoffKind


@pytest.mark.unit
class TestConfigDefaults:
    def test_engine_defaults(self):
        config = Config()
        assert config.engine.headless is True
        assert config.engine.navigation_timeout_ms == 30_000
        assert config.engine.max_retries == 3
        assert config.engine.rate_limit.requests == 10
        assert config.engine.rate_limit.interval_seconds == 60.0
        assert config.engine.cache.ttl_seconds == 3600.0
        assert len(config.engine.user_agents) >= 5
        assert config.engine.proxies == []

    def test_retry_policy_defaults(self):
        policy = Config().retry.to_policy()
        assert policy.max_attempts == 3
        assert policy.base_delay == 1.0
        assert policy.backoff is BackoffKind.EXPONENTIAL


@pytest.mark.unit
class TestConfigValidation:
    def test_numeric_interval(self):
        assert RateLimitConfig(requests=5, per_interval=2.5).interval_seconds == 2.5

    @pytest.mark.parametrize("interval", ["fortnight", 0, -1])
    def test_invalid_interval(self, interval):
        with pytest.raises(ValidationError):
            RateLimitConfig(per_interval=interval)

    def test_empty_user_agents_rejected(self):
        with pytest.raises(ValidationError):
            Config.model_validate({"engine": {"user_agents": []}})

    def test_proxy_strings_are_coerced(self):
        config = Config.model_validate({"engine": {"proxies": ["http://proxy:3128"]}})
        assert config.engine.proxies[0].server == "http://proxy:3128"

    def test_log_file_parent_is_created(self, tmp_path):
        config = Config.model_validate({"monitoring": {"log_file": str(tmp_path / "logs" / "lode.log")}})
        assert (tmp_path / "logs").is_dir()
        assert config.monitoring.log_file.endswith("lode.log")


@pytest.mark.unit
class TestConfigSources:
    def test_from_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "engine:\n"
            "  headless: false\n"
            "  rate_limit:\n"
            "    requests: 30\n"
            "    per_interval: second\n"
            "retry:\n"
            "  backoff: linear\n"
        )
        config = Config.from_yaml(path)
        assert config.engine.headless is False
        assert config.engine.rate_limit.interval_seconds == 1.0
        assert config.retry.backoff is BackoffKind.LINEAR

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert Config.from_yaml(path).engine.max_retries == 3

    def test_missing_yaml(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "absent.yaml")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LODE_ENGINE__MAX_RETRIES", "7")
        monkeypatch.setenv("LODE_BATCH__DEFAULT_CONCURRENCY", "9")
        config = Config()
        assert config.engine.max_retries == 7
        assert config.batch.default_concurrency == 9

    def test_lazy_config_loads_from_working_directory(self, tmp_path, monkeypatch):
        (tmp_path / "config.yaml").write_text("batch:\n  default_concurrency: 4\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(LazyConfig, "_config", None)

        assert LazyConfig().batch.default_concurrency == 4
