"""
Configuration module for the restaurant workflows.

Settings come from YAML files under ``config/`` and are overridden by
environment variables (a local ``.env`` file is loaded first).
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


# Load environment variables
load_dotenv()


class LLMConfig(BaseModel):
    """LLM configuration for primary and fallback models."""

    primary_model: str = Field(default="gemini/gemini-2.0-flash-exp")
    fallback_model: str = Field(default="ollama/qwen2.5:14b")
    ollama_base_url: str = Field(default="http://localhost:11434")
    temperature: float = Field(default=0.1)
    max_tokens: int = Field(default=1000)
    timeout: int = Field(default=30)
    retry_attempts: int = Field(default=2)
    retry_min_wait: float = Field(default=1.0)
    retry_max_wait: float = Field(default=4.0)


class QualityConfig(BaseModel):
    """Quality gate for the retry loops."""

    quality_threshold: float = Field(default=0.7)
    max_attempts: int = Field(default=3)
    fallback_score: float = Field(default=0.6)
    best_effort: bool = Field(default=False)


class RetrievalConfig(BaseModel):
    """Document search limits."""

    default_max_results: int = Field(default=10)
    improve_max_results: int = Field(default=5)
    min_relevance_score: float = Field(default=0.1)
    relevant_top_k: int = Field(default=5)
    data_dir: Optional[str] = Field(default=None)


class ReActConfig(BaseModel):
    """Reason/act loop limits."""

    max_iterations: int = Field(default=5)


class ToolCallingConfig(BaseModel):
    """Tool-calling agent limits."""

    max_rounds: int = Field(default=3)
    history_lines: int = Field(default=10)


class MemoryConfig(BaseModel):
    """Session retention."""

    retention_hours: int = Field(default=24)


class ToolsConfig(BaseModel):
    """External search tool settings."""

    tavily_api_key: Optional[str] = Field(default=None)
    tavily_url: str = Field(default="https://api.tavily.com/search")
    wikipedia_url: str = Field(default="https://ko.wikipedia.org/w/api.php")
    max_web_results: int = Field(default=2)
    http_timeout: float = Field(default=10.0)


class AppConfig(BaseModel):
    """Main application configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    react: ReActConfig = Field(default_factory=ReActConfig)
    tool_calling: ToolCallingConfig = Field(default_factory=ToolCallingConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    recursion_limit: int = Field(default=100)
    log_level: str = Field(default="INFO")


def load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Dictionary containing the configuration, empty if the file is missing.
    """
    if config_path.exists():
        with open(config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    return {}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_config(config_dir: Optional[Path] = None) -> AppConfig:
    """
    Load and return the application configuration.

    Environment variables take precedence over YAML config.

    Args:
        config_dir: Directory holding the YAML files. Defaults to the
            repository's ``config/`` directory.

    Returns:
        AppConfig instance with all configuration values.
    """
    if config_dir is None:
        config_dir = Path(
            os.getenv("RESTAURANT_CONFIG_DIR", Path(__file__).parent.parent.parent.parent / "config")
        )

    llm_yaml = load_yaml_config(config_dir / "llm_config.yaml")
    workflow_yaml = load_yaml_config(config_dir / "workflow_config.yaml")

    primary = llm_yaml.get("primary", {})
    fallback = llm_yaml.get("fallback", {})
    retry = llm_yaml.get("retry", {})

    llm_config = LLMConfig(
        primary_model=os.getenv("PRIMARY_MODEL", primary.get("model", "gemini/gemini-2.0-flash-exp")),
        fallback_model=os.getenv("FALLBACK_MODEL", fallback.get("model", "ollama/qwen2.5:14b")),
        ollama_base_url=os.getenv(
            "OLLAMA_BASE_URL",
            fallback.get("base_url", "http://localhost:11434")
        ),
        temperature=primary.get("parameters", {}).get("temperature", 0.1),
        max_tokens=primary.get("parameters", {}).get("max_tokens", 1000),
        timeout=int(os.getenv("LLM_TIMEOUT", primary.get("timeout", 30))),
        retry_attempts=retry.get("attempts", 2),
        retry_min_wait=retry.get("min_wait", 1.0),
        retry_max_wait=retry.get("max_wait", 4.0),
    )

    quality_yaml = workflow_yaml.get("quality", {})
    quality_config = QualityConfig(
        quality_threshold=float(os.getenv("QUALITY_THRESHOLD", quality_yaml.get("threshold", 0.7))),
        max_attempts=int(os.getenv("MAX_ATTEMPTS", quality_yaml.get("max_attempts", 3))),
        fallback_score=quality_yaml.get("fallback_score", 0.6),
        best_effort=_env_bool("BEST_EFFORT", quality_yaml.get("best_effort", False)),
    )

    retrieval_yaml = workflow_yaml.get("retrieval", {})
    retrieval_config = RetrievalConfig(
        default_max_results=retrieval_yaml.get("default_max_results", 10),
        improve_max_results=retrieval_yaml.get("improve_max_results", 5),
        min_relevance_score=retrieval_yaml.get("min_relevance_score", 0.1),
        relevant_top_k=retrieval_yaml.get("relevant_top_k", 5),
        data_dir=os.getenv("RESTAURANT_DATA_DIR", retrieval_yaml.get("data_dir")),
    )

    react_config = ReActConfig(
        max_iterations=int(os.getenv(
            "REACT_MAX_ITERATIONS",
            workflow_yaml.get("react", {}).get("max_iterations", 5)
        ))
    )

    tool_calling_yaml = workflow_yaml.get("tool_calling", {})
    tool_calling_config = ToolCallingConfig(
        max_rounds=tool_calling_yaml.get("max_rounds", 3),
        history_lines=tool_calling_yaml.get("history_lines", 10),
    )

    memory_config = MemoryConfig(
        retention_hours=int(os.getenv(
            "MEMORY_RETENTION_HOURS",
            workflow_yaml.get("memory", {}).get("retention_hours", 24)
        ))
    )

    tools_yaml = workflow_yaml.get("tools", {})
    tools_config = ToolsConfig(
        tavily_api_key=os.getenv("TAVILY_API_KEY"),
        tavily_url=tools_yaml.get("tavily_url", "https://api.tavily.com/search"),
        wikipedia_url=tools_yaml.get("wikipedia_url", "https://ko.wikipedia.org/w/api.php"),
        max_web_results=tools_yaml.get("max_web_results", 2),
        http_timeout=tools_yaml.get("http_timeout", 10.0),
    )

    return AppConfig(
        llm=llm_config,
        quality=quality_config,
        retrieval=retrieval_config,
        react=react_config,
        tool_calling=tool_calling_config,
        memory=memory_config,
        tools=tools_config,
        recursion_limit=workflow_yaml.get("engine", {}).get("recursion_limit", 100),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


# Global configuration instance
config = get_config()


def get_gemini_api_key() -> Optional[str]:
    """Get the Gemini API key from environment variables."""
    return os.getenv("GEMINI_API_KEY")
