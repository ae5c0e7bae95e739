"""
Stackyard configuration.

Pydantic-based settings (environment variables, .env files) and the
filesystem layout derived from them.
"""

from stackyard.config.paths import (
    DOCKER_KUBECONFIG_FILENAME,
    KUBECONFIG_FILENAME,
    ensure_dir,
    home_path,
    kube_config_path,
    state_path,
)
from stackyard.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "home_path",
    "state_path",
    "kube_config_path",
    "ensure_dir",
    "KUBECONFIG_FILENAME",
    "DOCKER_KUBECONFIG_FILENAME",
]
