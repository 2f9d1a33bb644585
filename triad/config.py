"""
Triad Configuration System

Hierarchical configuration with environment variable overrides.
Uses Pydantic Settings for type validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, Literal
import os

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class LLMModelsConfig(BaseSettings):
    """Default backend model per role."""
    
    planner: str = "claude-3-5-haiku-latest"
    researcher: str = "claude-3-5-haiku-latest"
    synthesizer: str = "claude-3-5-sonnet-latest"
    
    model_config = SettingsConfigDict(env_prefix="TRIAD_LLM_MODEL_")


class LLMConfig(BaseSettings):
    """Language-model backend configuration."""
    
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("TRIAD_LLM_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
    )
    anthropic_version: str = "2023-06-01"
    ollama_base_url: str = "http://localhost:11434"
    temperature: float = 0.0
    timeout: float = 60.0
    max_retries: int = 3  # Transport retries for transient failures
    verify_ssl: bool = True
    models: LLMModelsConfig = Field(default_factory=LLMModelsConfig)
    
    model_config = SettingsConfigDict(env_prefix="TRIAD_LLM_", populate_by_name=True)


class KnowledgeConfig(BaseSettings):
    """External knowledge source configuration."""
    
    provider: Literal["wikipedia"] = "wikipedia"
    base_url: str = "https://en.wikipedia.org"
    timeout: float = 15.0
    max_results: int = 5
    user_agent: str = "TriadResearchBot/1.0"
    
    model_config = SettingsConfigDict(env_prefix="TRIAD_KNOWLEDGE_")


class AgentConfig(BaseSettings):
    """Pipeline behavior configuration."""
    
    max_research_iterations: int = Field(10, ge=0)  # Model calls per research phase, 0 for no cap
    preview_chars: int = 120  # Display cap for tool-result previews
    planner_max_tokens: int = 512
    researcher_max_tokens: int = 2048
    synthesizer_max_tokens: int = 1500
    default_response_format: str = "A clear, structured explanation"
    
    model_config = SettingsConfigDict(env_prefix="TRIAD_AGENT_")


class APIConfig(BaseSettings):
    """API server configuration."""
    
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    debug: bool = False
    require_api_key: bool = False  # Enable to require X-API-Key header
    api_key: str = ""
    max_concurrent_runs: int = 4  # Simultaneous pipeline runs per process
    workers: int = 1
    
    model_config = SettingsConfigDict(env_prefix="TRIAD_API_")


class LoggingConfig(BaseSettings):
    """Logging configuration."""
    
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(run_id)s | %(name)s | %(message)s"
    json_format: bool = False
    file: Optional[str] = None
    
    model_config = SettingsConfigDict(env_prefix="TRIAD_LOG_")


class Settings(BaseSettings):
    """
    Main application settings.
    
    Configuration priority (highest to lowest):
    1. Environment variables (TRIAD_*)
    2. .env file
    3. Config YAML file
    4. Default values
    """
    
    app_name: str = "Triad"
    version: str = "1.0.0"
    environment: Literal["development", "production", "test"] = "development"
    
    llm: LLMConfig = Field(default_factory=LLMConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    
    model_config = SettingsConfigDict(
        env_prefix="TRIAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )
    
    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        if not path.exists():
            return cls()
        
        with open(path, "r") as f:
            config_data = yaml.safe_load(f) or {}
        
        return cls(**config_data)


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration with proper precedence.
    
    Args:
        config_path: Optional path to YAML config file.
                    If not provided, checks TRIAD_CONFIG_PATH env var,
                    then falls back to config/<env>.yaml and config/default.yaml
    """
    if config_path is None:
        config_path = os.environ.get("TRIAD_CONFIG_PATH")
    
    if config_path is None:
        env = os.environ.get("TRIAD_ENVIRONMENT", "development")
        for p in (Path(f"config/{env}.yaml"), Path("config/default.yaml")):
            if p.exists():
                config_path = str(p)
                break
    
    if config_path and Path(config_path).exists():
        return Settings.from_yaml(Path(config_path))
    
    return Settings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    Use this as the primary way to access settings throughout the app.
    """
    return load_config()


def clear_settings_cache():
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
