"""
Application settings using Pydantic.

Provides environment-based configuration loading with STACKYARD_ prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STACKYARD_",
    )

    # Home directory holding state and generated kubeconfigs
    home: Path = Path.home() / ".stackyard"
    state_file: str = "state.json"

    # External tools
    docker_binary: str = "docker"
    helm_binary: str = "helm"
    command_timeout: float = 300.0

    # Health checks (seconds)
    health_check_interval: float = 1.0
    cluster_timeout: float = 120.0
    nomad_leader_timeout: float = 60.0
    nomad_nodes_timeout: float = 60.0

    # Engine
    max_workers: int = 1

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Image used for ephemeral tools containers (exec)
    tools_image: str = "shipyardrun/tools:latest"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
