"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from actwright.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.executor.type_delay_min_ms)
    25
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserSettings(BaseModel):
    """
    Browser launch settings (used by the CLI).
    
    Attributes:
        headless: Run browser in headless mode
        browser_type: Playwright browser engine
        timeout_ms: Default timeout for navigation
        viewport_width: Browser viewport width in pixels
        viewport_height: Browser viewport height in pixels
    """
    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)


class LLMSettings(BaseModel):
    """
    LLM provider settings for the interpreter collaborator.
    
    Attributes:
        provider: LLM provider to use
        model: Model name/identifier
        api_key: API key (loaded from environment if not set)
        base_url: Custom API endpoint URL
        temperature: Sampling temperature
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds
    """
    provider: Literal["openai"] = "openai"
    model: str = "gpt-4o"
    api_key: Optional[SecretStr] = None
    base_url: str = "https://api.openai.com/v1"
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1, le=128000)
    timeout: int = Field(default=60, ge=5, le=300)


class ExecutorSettings(BaseModel):
    """
    Action executor behaviour.
    
    Attributes:
        type_delay_min_ms: Lower bound of the randomized inter-keystroke delay
        type_delay_max_ms: Upper bound of the randomized inter-keystroke delay
        actionable_timeout_ms: Bounded wait for an element to become actionable
        actionable_poll_ms: Interval between actionability checks
        resolve_retry_delay_ms: Wait before the single resolution retry
        default_timeout_ms: Deadline applied when the caller supplies none
    """
    type_delay_min_ms: int = Field(default=25, ge=0, le=5000)
    type_delay_max_ms: int = Field(default=75, ge=0, le=5000)
    actionable_timeout_ms: int = Field(default=5000, ge=0, le=120000)
    actionable_poll_ms: int = Field(default=50, ge=1, le=5000)
    resolve_retry_delay_ms: int = Field(default=250, ge=0, le=10000)
    default_timeout_ms: int = Field(default=30000, ge=100, le=600000)
    
    @model_validator(mode="after")
    def _check_delay_range(self) -> "ExecutorSettings":
        if self.type_delay_min_ms > self.type_delay_max_ms:
            raise ValueError("type_delay_min_ms must not exceed type_delay_max_ms")
        return self


class CacheSettings(BaseModel):
    """
    Observation cache settings.
    
    Attributes:
        enabled: Consult and populate the cache in act()
        depth_bound: Tree depth included in the structural fingerprint
        path: JSON file the cache is persisted to (None keeps it in memory)
        ttl_seconds: Entries older than this are evicted on lookup
    """
    enabled: bool = True
    depth_bound: int = Field(default=3, ge=0, le=64)
    path: Optional[str] = None
    ttl_seconds: Optional[int] = Field(default=None, ge=1)


class LoggingSettings(BaseModel):
    """
    Logging configuration.
    
    Attributes:
        level: Log level
        file: Log file path (None for console only)
        json_format: Use JSON format for the file handler
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.
    
    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with ACTWRIGHT__)
    3. Config file (YAML)
    4. Default values
    
    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(cache=CacheSettings(depth_bound=5))  # Override
    """
    
    model_config = SettingsConfigDict(
        env_prefix="ACTWRIGHT__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    debug: bool = False
    
    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.
        
        Args:
            overrides: Dictionary of values to override
            
        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()
        
        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base
        
        merged = deep_merge(current, overrides)
        return Settings(**merged)
