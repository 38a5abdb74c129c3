"""
Configuration management for LodeCore using Pydantic.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, ClassVar, List, Literal, Optional, Union, cast

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lodecore.protocols import BackoffKind, RetryPolicy

# --- Setup Logging ---
log = logging.getLogger(__name__)

INTERVAL_SECONDS = {"second": 1.0, "minute": 60.0, "hour": 3600.0}

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
]

# --- Nested Configuration Models ---


class ProxySettings(BaseModel):
    server: str
    username: Optional[str] = None
    password: Optional[str] = None

    def to_playwright(self) -> dict[str, str]:
        proxy = {"server": self.server}
        if self.username:
            proxy["username"] = self.username
        if self.password:
            proxy["password"] = self.password
        return proxy


class RateLimitConfig(BaseModel):
    """Token bucket sizing: ``requests`` tokens per ``per_interval``."""

    requests: int = Field(default=10, ge=1, description="Bucket capacity and refill amount per interval.")
    per_interval: Union[Literal["second", "minute", "hour"], float] = Field(
        default="minute", description="Refill interval as a unit name or a number of seconds."
    )

    @field_validator("per_interval")
    @classmethod
    def validate_interval(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and v <= 0:
            raise ValueError("per_interval must be positive")
        return v

    @property
    def interval_seconds(self) -> float:
        if isinstance(self.per_interval, str):
            return INTERVAL_SECONDS[self.per_interval]
        return float(self.per_interval)


class CacheConfig(BaseModel):
    ttl_ms: int = Field(default=60 * 60 * 1000, ge=0, description="Cache entry time-to-live in milliseconds.")
    directory: Optional[Path] = Field(default=None, description="Persist entries as JSON files here. None = memory.")

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_ms / 1000.0


class EngineConfig(BaseModel):
    """Primary configuration surface of the acquisition engine."""

    headless: bool = Field(default=True, description="Run the browser without a visible window.")
    navigation_timeout_ms: int = Field(default=30_000, ge=1, description="Per-navigation timeout.")
    max_retries: int = Field(default=3, ge=1, description="Navigation attempts before giving up.")
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    user_agents: List[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    proxies: List[ProxySettings] = Field(default_factory=list)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("user_agents")
    @classmethod
    def validate_user_agents(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("user_agents must contain at least one entry")
        return v

    @field_validator("proxies", mode="before")
    @classmethod
    def coerce_proxies(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [{"server": item} if isinstance(item, str) else item for item in v]
        return v


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    backoff: BackoffKind = BackoffKind.EXPONENTIAL

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay_ms / 1000.0,
            backoff=self.backoff,
        )


class BrowserConfig(BaseModel):
    """Browser session fingerprint and wait tuning."""

    launch_args: List[str] = Field(
        default_factory=lambda: [
            "--disable-blink-features=AutomationControlled",
            "--disable-dev-shm-usage",
            "--disable-accelerated-2d-canvas",
            "--no-first-run",
            "--disable-gpu",
        ]
    )
    viewport_width: int = 1920
    viewport_height: int = 1080
    viewport_jitter: int = Field(default=100, ge=0)
    locale: str = "en-US"
    timezone_id: str = "America/New_York"
    challenge_timeout_ms: int = 30_000
    challenge_settle_ms: int = 2_000
    strict_challenge: bool = Field(
        default=False, description="Treat a challenge that never clears as an access denial instead of extracting anyway."
    )
    content_wait_ms: int = 5_000
    network_idle_ms: int = 5_000
    post_wait_ms: int = 1_000
    content_selectors: List[str] = Field(
        default_factory=lambda: ["main", "article", "#content", ".content", '[role="main"]']
    )
    challenge_title_markers: List[str] = Field(
        default_factory=lambda: ["just a moment", "attention required", "checking your browser", "cloudflare"]
    )
    challenge_selectors: List[str] = Field(
        default_factory=lambda: [".cf-browser-verification", "#challenge-form", "#cf-challenge-running"]
    )
    not_found_markers: List[str] = Field(default_factory=lambda: ["404", "not found"])


class StrategyConfig(BaseModel):
    """Which strategies run and how the lightweight probes behave."""

    enable_feed: bool = True
    enable_api: bool = True
    enable_fetch: bool = True
    enable_browser: bool = True
    discover_feeds: bool = Field(default=True, description="Probe conventional feed paths when no feed is known.")
    feed_paths: List[str] = Field(default_factory=lambda: ["/rss", "/feed", "/rss.xml", "/feed.xml", "/atom.xml"])
    api_paths: List[str] = Field(default_factory=lambda: ["/api", "/v1", "/v2", "/graphql", "/.well-known"])
    http_timeout_ms: int = Field(default=15_000, ge=1)
    max_feed_items: int = Field(default=50, ge=1)
    max_html_chars: int = Field(default=50_000, ge=1)

    @property
    def http_timeout_seconds(self) -> float:
        return self.http_timeout_ms / 1000.0


class BatchConfig(BaseModel):
    default_concurrency: int = Field(default=3, ge=1)


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: Optional[str] = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: Optional[int] = Field(default=None, description="Port for Prometheus exporter. None to disable.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: Optional[Union[str, Path]]) -> Optional[str]:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


class DebugConfig(BaseModel):
    test_mode: bool = False


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "LodeCore"
    version: str = "0.1.0"
    engine: EngineConfig = Field(default_factory=EngineConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    strategies: StrategyConfig = Field(default_factory=StrategyConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    debug: DebugConfig = Field(default_factory=DebugConfig)

    model_config = SettingsConfigDict(env_prefix="LODE_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "config.yaml", current_dir / "config.yml"):
        if path.exists():
            return path
    return None


# --- Lazy Configuration Loader ---


class LazyConfig:
    """
    A proxy for the Config object that delays its loading and validation
    until an attribute is first accessed.
    """

    _config: ClassVar[Config | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __getattr__(self, name: str) -> Any:
        if self.__class__._config is None:
            with self.__class__._lock:
                if self.__class__._config is None:
                    self.__class__._config = self._load_config_with_fallback()
        return getattr(self.__class__._config, name)

    def _load_config_with_fallback(self) -> Config:
        config_path = find_config_file()
        if config_path:
            try:
                log.info("Lazy loading configuration from: %s", config_path)
                return Config.from_yaml(config_path)
            except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
                log.error(
                    "Failed to load or validate configuration from '%s': %s. Falling back to default settings.",
                    config_path,
                    e,
                )
        else:
            log.info("No config file found. Using default settings for lazy load.")

        try:
            return Config()
        except ValidationError as e:
            log.critical("FATAL: Default configuration is invalid: %s", e, exc_info=True)
            raise RuntimeError(f"Default configuration is invalid, cannot start: {e}") from e


# --- Global Settings Instance ---
settings: "Config" = cast("Config", LazyConfig())
