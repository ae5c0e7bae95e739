"""
Filesystem locations used by Stackyard.

Layout under the home directory (``~/.stackyard`` by default)::

    state.json                  persisted resource graph
    config/<cluster>/           per-cluster directory mounted into the server
    config/<cluster>/kubeconfig.yaml
    config/<cluster>/kubeconfig-docker.yaml
"""

from __future__ import annotations

from pathlib import Path

from stackyard.config.settings import Settings, get_settings

KUBECONFIG_FILENAME = "kubeconfig.yaml"
# Variant addressing the server by container name, for tools on the cluster network
DOCKER_KUBECONFIG_FILENAME = "kubeconfig-docker.yaml"


def home_path(settings: Settings | None = None) -> Path:
    """Return the Stackyard home directory."""
    settings = settings or get_settings()
    return Path(settings.home).expanduser()


def state_path(settings: Settings | None = None) -> Path:
    """Return the path of the persisted state file."""
    settings = settings or get_settings()
    return home_path(settings) / settings.state_file


def kube_config_path(cluster: str, settings: Settings | None = None) -> tuple[Path, Path]:
    """Return the (directory, file) pair holding a cluster's generated kubeconfig."""
    directory = home_path(settings) / "config" / cluster
    return directory, directory / KUBECONFIG_FILENAME


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing."""
    path.mkdir(parents=True, exist_ok=True)
    return path
