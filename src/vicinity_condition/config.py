"""
Vicinity Condition Configuration
================================

This module handles configuration loading for the vicinity condition.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

All configuration models are frozen: settings are read once at
construction time and never change afterwards.

Environment Variable Mapping:
    VICINITY_FRAME_SOURCE          -> condition.frame_source
    VICINITY_RESPONSE_TIMEOUT_MS   -> condition.response_timeout_ms
    VICINITY_RECONNECT_BACKOFF_MS  -> stream.reconnect_backoff_ms
    VICINITY_CLASSIFIER_BACKEND    -> classifier.backend
    VICINITY_LLM_URL               -> classifier.llm.url
    VICINITY_LLM_MODEL             -> classifier.llm.model
    VICINITY_VISION_CREDENTIALS    -> classifier.vision.credentials_path
    VICINITY_PORT                  -> server.port
    VICINITY_LOG_LEVEL             -> logging.level
    PORT                           -> server.port (Cloud Run)

Example:
    from vicinity_condition.config import settings

    print(settings.condition.frame_source)
    print(settings.condition.response_timeout_ms)
    print(settings.classifier.backend)
"""

import os
import logging
from pathlib import Path
from typing import Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ConditionConfig(BaseModel):
    """The two construction options of the vicinity condition."""

    model_config = ConfigDict(frozen=True)

    frame_source: str = Field(
        default="ws://localhost:8000/ws/frames",
        min_length=1,
        description="WebSocket URL of the frame stream to subscribe to",
    )
    response_timeout_ms: int = Field(
        default=2000,
        ge=1,
        description="Maximum wait for the classifier response (milliseconds)",
    )

    @property
    def response_timeout(self) -> float:
        """Response timeout in seconds."""
        return self.response_timeout_ms / 1000.0


class StreamConfig(BaseModel):
    """Frame stream transport configuration."""

    model_config = ConfigDict(frozen=True)

    reconnect_backoff_ms: int = Field(
        default=500,
        ge=100,
        description="Backoff in milliseconds between reconnect attempts",
    )
    recv_timeout_sec: float = Field(
        default=1.0,
        gt=0,
        description="Receive poll interval; bounds unsubscribe latency",
    )
    max_message_bytes: int = Field(
        default=16 * 1024 * 1024,
        ge=1024,
        description="Largest accepted frame message",
    )


class MockClassifierConfig(BaseModel):
    """Mock classifier backend configuration."""

    model_config = ConfigDict(frozen=True)

    clear: bool = Field(default=True, description="Fixed verdict")
    latency_ms: int = Field(default=0, ge=0, description="Simulated latency")


class LLMClassifierConfig(BaseModel):
    """Vision LLM backend configuration."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(
        default="http://localhost:11434",
        description="Base URL of the Ollama-compatible model server",
    )
    model: str = Field(default="llava:7b", description="Vision model name")


class VisionClassifierConfig(BaseModel):
    """Google Cloud Vision backend configuration."""

    model_config = ConfigDict(frozen=True)

    credentials_path: Optional[str] = Field(
        default=None,
        description="Service account JSON (default credentials if unset)",
    )
    blocking_labels: Tuple[str, ...] = Field(
        default=("person", "dog", "cat", "bicycle", "car", "chair", "box"),
        description="Object names that make the vicinity blocked",
    )
    confidence_threshold: float = Field(
        default=0.6,
        ge=0,
        le=1.0,
        description="Minimum detection confidence",
    )


class ClassifierConfig(BaseModel):
    """Classifier backend configuration."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["mock", "llm", "google_vision"] = Field(
        default="mock",
        description="Classifier backend: 'mock', 'llm' or 'google_vision'",
    )
    prompt: Optional[str] = Field(
        default=None,
        description="Override for the vicinity question (built-in prompt if unset)",
    )
    max_workers: int = Field(
        default=2,
        ge=1,
        le=16,
        description="Worker threads for classifier calls",
    )
    mock: MockClassifierConfig = Field(default_factory=MockClassifierConfig)
    llm: LLMClassifierConfig = Field(default_factory=LLMClassifierConfig)
    vision: VisionClassifierConfig = Field(default_factory=VisionClassifierConfig)


class ServerConfig(BaseModel):
    """Server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO", description="Log level")
    format: Literal["json", "text"] = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the vicinity condition.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="vicinity-condition", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")
    condition: ConditionConfig = Field(default_factory=ConditionConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        if env_path := os.environ.get("VICINITY_CONFIG"):
            config_path = env_path
        else:
            search_paths = [
                Path("config.yaml"),
                Path("config.yml"),
                Path("/app/config.yaml"),
                Path(__file__).parent.parent.parent / "config.yaml",
            ]
            for path in search_paths:
                if path.exists():
                    config_path = str(path)
                    break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Condition options
    if env_source := os.environ.get("VICINITY_FRAME_SOURCE"):
        config_data.setdefault("condition", {})["frame_source"] = env_source
    if env_timeout := os.environ.get("VICINITY_RESPONSE_TIMEOUT_MS"):
        config_data.setdefault("condition", {})["response_timeout_ms"] = int(env_timeout)

    # Stream settings
    if env_backoff := os.environ.get("VICINITY_RECONNECT_BACKOFF_MS"):
        config_data.setdefault("stream", {})["reconnect_backoff_ms"] = int(env_backoff)

    # Classifier settings
    if env_backend := os.environ.get("VICINITY_CLASSIFIER_BACKEND"):
        config_data.setdefault("classifier", {})["backend"] = env_backend
    if env_llm_url := os.environ.get("VICINITY_LLM_URL"):
        config_data.setdefault("classifier", {}).setdefault("llm", {})["url"] = env_llm_url
    if env_llm_model := os.environ.get("VICINITY_LLM_MODEL"):
        config_data.setdefault("classifier", {}).setdefault("llm", {})["model"] = env_llm_model
    if env_creds := os.environ.get("VICINITY_VISION_CREDENTIALS"):
        config_data.setdefault("classifier", {}).setdefault("vision", {})["credentials_path"] = env_creds

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("VICINITY_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("VICINITY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "thread": "%(threadName)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
