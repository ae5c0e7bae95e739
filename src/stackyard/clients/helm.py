"""
Helm client driving the ``helm`` CLI.

The helm CLI is not safe to run concurrently for unrelated releases, callers
must serialize invocations (see :class:`stackyard.providers.helm.HelmProvider`).
"""

from __future__ import annotations

from pathlib import Path

import structlog

from stackyard.clients.base import BaseCommandClient, CommandError

logger = structlog.get_logger()


class ReleaseNotFoundError(CommandError):
    """The release does not exist in the cluster."""


def _release_missing(error: CommandError) -> bool:
    return "not found" in error.stderr.lower()


class HelmCLI(BaseCommandClient):
    """Install, remove and inspect chart releases with the helm CLI."""

    def __init__(self, binary: str = "helm", *, timeout: float = 300.0) -> None:
        super().__init__(binary, timeout=timeout)

    def create(
        self,
        kubeconfig: Path,
        release: str,
        chart: str,
        values: str | None = None,
        namespace: str = "default",
    ) -> None:
        args = [
            "install", release, chart,
            "--kubeconfig", str(kubeconfig),
            "--namespace", namespace,
            "--create-namespace",
        ]
        if values:
            args += ["--values", values]
        self._run(*args)
        logger.info("helm_release_installed", release=release, chart=chart)

    def destroy(self, kubeconfig: Path, release: str, namespace: str = "default") -> None:
        try:
            self._run(
                "uninstall", release,
                "--kubeconfig", str(kubeconfig),
                "--namespace", namespace,
            )
        except CommandError as e:
            if _release_missing(e):
                raise ReleaseNotFoundError(e.command, e.returncode, e.stderr) from e
            raise
        logger.info("helm_release_uninstalled", release=release)

    def status(self, kubeconfig: Path, release: str, namespace: str = "default") -> bool:
        """Return True if the release is installed."""
        try:
            self._run(
                "status", release,
                "--kubeconfig", str(kubeconfig),
                "--namespace", namespace,
            )
        except CommandError as e:
            if _release_missing(e):
                return False
            raise
        return True
