"""
Configuration management using Pydantic Settings.
Validates all environment variables at startup for fail-fast behavior.
"""

from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PROBE_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings with validation."""

    # Quick scan probes
    PROBE_TIMEOUT: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Timeout in seconds for robots.txt / sitemap.xml / llms.txt probes"
    )
    HOMEPAGE_TIMEOUT: float = Field(
        default=8.0,
        gt=0,
        le=60,
        description="Timeout in seconds for the homepage fetch"
    )
    PROBE_USER_AGENT: str = Field(
        default=DEFAULT_PROBE_USER_AGENT,
        description="Browser-like User-Agent sent with probes to avoid naive bot filters"
    )
    BULK_SCAN_BATCH_SIZE: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Domains scanned concurrently per batch in bulk scans (1-50)"
    )

    # AI answer engines (all optional; unconfigured engines report an error result)
    OPENAI_API_KEY: Optional[str] = Field(default=None, description="Key for the ChatGPT engine")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="OpenAI model to query")

    ANTHROPIC_API_KEY: Optional[str] = Field(default=None, description="Key for the Claude engine")
    ANTHROPIC_MODEL: str = Field(default="claude-3-5-haiku-latest", description="Anthropic model to query")

    GEMINI_API_KEY: Optional[str] = Field(default=None, description="Key for the Gemini engine")
    GEMINI_MODEL: str = Field(default="gemini-2.0-flash", description="Gemini model to query")

    PERPLEXITY_API_KEY: Optional[str] = Field(default=None, description="Key for the Perplexity engine")
    PERPLEXITY_MODEL: str = Field(default="sonar-pro", description="Perplexity model to query")

    ENGINE_TIMEOUT: int = Field(
        default=60,
        ge=10,
        le=300,
        description="Per-engine API timeout in seconds (10-300, default: 60)"
    )
    MAX_ENGINE_WORKERS: int = Field(
        default=4,
        ge=1,
        le=10,
        description="Maximum parallel engine calls per query (1-10)"
    )

    # Frontend settings
    FRONTEND_ORIGIN: str = Field(
        default="http://localhost:3000",
        description="Frontend origin for CORS (no wildcard allowed)"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v_upper

    @field_validator("HOMEPAGE_TIMEOUT")
    @classmethod
    def validate_homepage_gte_probe(cls, v: float, info) -> float:
        """Homepage fetch is heavier than the file probes; never give it less time."""
        if "PROBE_TIMEOUT" in info.data and v < info.data["PROBE_TIMEOUT"]:
            raise ValueError("HOMEPAGE_TIMEOUT must be >= PROBE_TIMEOUT")
        return v

    @field_validator("FRONTEND_ORIGIN")
    @classmethod
    def validate_no_wildcard_origin(cls, v: str) -> str:
        """Prevent wildcard CORS origin."""
        if v == "*":
            raise ValueError(
                "FRONTEND_ORIGIN cannot be '*' (wildcard). "
                "Set explicit origin or leave unset for localhost:3000 default."
            )
        return v

    @property
    def engine_credentials(self) -> Dict[str, Optional[str]]:
        return {
            "ChatGPT": self.OPENAI_API_KEY,
            "Claude": self.ANTHROPIC_API_KEY,
            "Gemini": self.GEMINI_API_KEY,
            "Perplexity": self.PERPLEXITY_API_KEY,
        }

    @property
    def engine_models(self) -> Dict[str, str]:
        return {
            "ChatGPT": self.OPENAI_MODEL,
            "Claude": self.ANTHROPIC_MODEL,
            "Gemini": self.GEMINI_MODEL,
            "Perplexity": self.PERPLEXITY_MODEL,
        }

    @property
    def configured_engines(self) -> List[str]:
        """Engines that have an API key set."""
        return [name for name, key in self.engine_credentials.items() if key]


# Global settings instance
settings = Settings()
