"""Configuration models and loaders."""

from .config import (
    BatchConfig,
    BrowserConfig,
    CacheConfig,
    Config,
    DebugConfig,
    EngineConfig,
    LazyConfig,
    MonitoringConfig,
    ProxySettings,
    RateLimitConfig,
    RetryConfig,
    StrategyConfig,
    find_config_file,
    settings,
)

__all__ = [
    "BatchConfig",
    "BrowserConfig",
    "CacheConfig",
    "Config",
    "DebugConfig",
    "EngineConfig",
    "LazyConfig",
    "MonitoringConfig",
    "ProxySettings",
    "RateLimitConfig",
    "RetryConfig",
    "StrategyConfig",
    "find_config_file",
    "settings",
]
