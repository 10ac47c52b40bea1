"""
Centralized configuration for the Intent Router.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    # Service
    service_name: str = Field(default="Agentic Ally Intent Router", env="SERVICE_NAME")

    # AWS / Bedrock
    aws_region: str = Field(default="us-east-1", env="AWS_REGION")
    bedrock_llm_model_id: str = Field(
        default="us.anthropic.claude-sonnet-4-20250514-v1:0", env="BEDROCK_LLM_MODEL_ID"
    )

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_llm_model: str = Field(default="gpt-4o-mini", env="OPENAI_LLM_MODEL")

    # LLM provider selection
    llm_provider: str = Field(default="openai", env="LLM_PROVIDER")  # bedrock | openai
    classifier_max_tokens: int = Field(default=512, env="CLASSIFIER_MAX_TOKENS")
    classifier_temperature: float = Field(default=0.1, env="CLASSIFIER_TEMPERATURE")
    handler_max_tokens: int = Field(default=1024, env="HANDLER_MAX_TOKENS")
    handler_temperature: float = Field(default=0.3, env="HANDLER_TEMPERATURE")

    # Resilience
    classifier_timeout_seconds: float = Field(default=15.0, env="CLASSIFIER_TIMEOUT_SECONDS")
    retry_max_attempts: int = Field(default=3, env="RETRY_MAX_ATTEMPTS")
    retry_base_delay_seconds: float = Field(default=1.0, env="RETRY_BASE_DELAY_SECONDS")
    retry_max_delay_seconds: float = Field(default=10.0, env="RETRY_MAX_DELAY_SECONDS")
    retry_jitter_enabled: bool = Field(default=True, env="RETRY_JITTER_ENABLED")

    # Routing
    default_handler: str = Field(default="microlearningAgent", env="DEFAULT_HANDLER")
    history_window: int = Field(default=10, env="HISTORY_WINDOW")
    resource_id: str = Field(default="agentic-ally-user", env="RESOURCE_ID")

    # PII masking (comma-separated additions to the built-in word lists)
    pii_extra_deny_terms: str = Field(default="", env="PII_EXTRA_DENY_TERMS")
    pii_extra_introducers: str = Field(default="", env="PII_EXTRA_INTRODUCERS")

    # API
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    api_version: str = Field(default="1.0.0", env="API_VERSION")
    cors_origins: str = Field(default="*", env="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_bedrock(self) -> bool:
        return self.llm_provider.lower() == "bedrock"

    @property
    def is_openai(self) -> bool:
        return self.llm_provider.lower() == "openai"

    @property
    def cors_origins_list(self) -> List[str]:
        return _split_csv(self.cors_origins) or ["*"]

    @property
    def pii_extra_deny_terms_list(self) -> List[str]:
        return _split_csv(self.pii_extra_deny_terms)

    @property
    def pii_extra_introducers_list(self) -> List[str]:
        return _split_csv(self.pii_extra_introducers)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
