"""Session configuration: timeouts, retry policy, rate limits and tool flags.

Values default to the service's observed tolerances and can be overridden
through DUCKCHAT_* environment variables via SessionConfig.from_env().
"""

import os
from dataclasses import asdict, dataclass, field

from duckchat.core.rate_limiter import RateLimitPolicy

_TOOL_FIELDS = ("web_search", "news_search", "videos_search", "local_search", "weather_forecast")


@dataclass
class ToolCapabilities:
    """Server-side tools requested on each chat exchange."""
    web_search: bool = False
    news_search: bool = False
    videos_search: bool = False
    local_search: bool = False
    weather_forecast: bool = False

    def set_all(self, enabled: bool) -> None:
        for name in _TOOL_FIELDS:
            setattr(self, name, enabled)

    def update(self, **flags: bool) -> None:
        """Flip individual tool flags, e.g. update(news_search=True)."""
        unknown = set(flags) - set(_TOOL_FIELDS)
        if unknown:
            raise ValueError(f"Unknown tool flags: {sorted(unknown)}")
        for name, value in flags.items():
            setattr(self, name, bool(value))

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SessionConfig:
    """Per-session settings.

    Attributes:
        timeout: HTTP timeout in seconds for both the probe and chat calls.
        max_retries: Re-issues allowed after a 418/429 answer.
        retry_delay_ms: Pause before each re-issue.
        rate_limit: Admission policy; its windows belong to this config only.
        tools: Tool flags, mutable through ToolCapabilities methods.
        logging_enabled: Emit session events; when False they are dropped.
    """
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay_ms: int = 2000
    rate_limit: RateLimitPolicy = field(default_factory=RateLimitPolicy)
    tools: ToolCapabilities = field(default_factory=ToolCapabilities)
    logging_enabled: bool = False

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Build a config from DUCKCHAT_* environment variables."""
        rate_limit = RateLimitPolicy(
            enabled=_env_bool("DUCKCHAT_RATE_LIMIT_ENABLED", True),
            max_per_minute=int(os.environ.get("DUCKCHAT_MAX_PER_MINUTE", "10")),
            max_per_hour=int(os.environ.get("DUCKCHAT_MAX_PER_HOUR", "100")),
        )
        tools = ToolCapabilities(**{
            name: _env_bool(f"DUCKCHAT_TOOL_{name.upper()}", False) for name in _TOOL_FIELDS
        })
        return cls(
            timeout=float(os.environ.get("DUCKCHAT_TIMEOUT", "30")),
            max_retries=int(os.environ.get("DUCKCHAT_MAX_RETRIES", "3")),
            retry_delay_ms=int(os.environ.get("DUCKCHAT_RETRY_DELAY_MS", "2000")),
            rate_limit=rate_limit,
            tools=tools,
            logging_enabled=_env_bool("DUCKCHAT_LOGGING", False),
        )

    # Presets

    @classmethod
    def web_search_mode(cls) -> "SessionConfig":
        """Web search only (honored by gpt-4o-mini)."""
        return cls(tools=ToolCapabilities(web_search=True))

    @classmethod
    def news_mode(cls) -> "SessionConfig":
        return cls(tools=ToolCapabilities(news_search=True))

    @classmethod
    def local_mode(cls) -> "SessionConfig":
        """Local search plus weather forecast."""
        return cls(tools=ToolCapabilities(local_search=True, weather_forecast=True))

    @classmethod
    def high_volume_mode(cls) -> "SessionConfig":
        return cls(
            rate_limit=RateLimitPolicy(enabled=True, max_per_minute=20, max_per_hour=500),
            max_retries=5,
            retry_delay_ms=1000,
        )
