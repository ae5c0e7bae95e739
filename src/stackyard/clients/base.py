"""
Interfaces of the external systems providers drive, and the base class for
clients wrapping a command line tool.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import IO, Any, Protocol, runtime_checkable

import structlog

from stackyard.resources.models import Container, Image, Network

logger = structlog.get_logger()


class CommandError(RuntimeError):
    """An external tool exited unsuccessfully."""

    def __init__(self, command: Sequence[str], returncode: int | None, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        status = "timed out" if returncode is None else f"exited with {returncode}"
        message = f"{' '.join(self.command[:3])} {status}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


class ToolNotInstalledError(CommandError):
    """The external tool binary is not on PATH."""

    def __init__(self, binary: str):
        super().__init__([binary], 127, f"{binary} not found in PATH")


class BaseCommandClient:
    """Runs an external CLI tool and turns failures into :class:`CommandError`."""

    def __init__(self, binary: str, *, timeout: float = 300.0) -> None:
        self._binary = binary
        self._path = shutil.which(binary)
        self._timeout = timeout

    @property
    def is_available(self) -> bool:
        return self._path is not None

    def _command(self, *args: str) -> list[str]:
        if self._path is None:
            raise ToolNotInstalledError(self._binary)
        return [self._path, *args]

    def _run(self, *args: str, input: str | None = None) -> subprocess.CompletedProcess:
        cmd = self._command(*args)
        logger.debug("command_run", command=" ".join(cmd[:4]))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                input=input,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(cmd, None, f"no result after {self._timeout:g}s") from e
        if result.returncode != 0:
            raise CommandError(cmd, result.returncode, result.stderr)
        return result


@runtime_checkable
class ContainerTasks(Protocol):
    """Container engine operations used by providers."""

    def create_network(self, network: Network) -> str:
        ...

    def find_network_ids(self, name: str) -> list[str]:
        ...

    def remove_network(self, network_id: str) -> None:
        ...

    def create_container(self, container: Container) -> str:
        ...

    def find_container_ids(self, name: str, network: str | None) -> list[str]:
        ...

    def remove_container(self, container_id: str) -> None:
        ...

    def create_volume(self, name: str) -> str:
        ...

    def remove_volume(self, name: str) -> None:
        ...

    def pull_image(self, image: Image, force: bool = False) -> None:
        ...

    def import_images(
        self, container_id: str, images: Sequence[Image], load_command: Sequence[str]
    ) -> None:
        ...

    def create_shell(
        self,
        container_id: str,
        command: Sequence[str],
        stdin: IO[Any] | None = None,
        stdout: IO[Any] | None = None,
        stderr: IO[Any] | None = None,
    ) -> int:
        ...


@runtime_checkable
class KubernetesAPI(Protocol):
    """Kubernetes operations used by providers."""

    def set_config(self, kubeconfig: Path) -> None:
        ...

    def health_check_pods(self, selectors: Sequence[str], timeout: float) -> None:
        ...


@runtime_checkable
class HelmAPI(Protocol):
    """Helm chart operations used by providers."""

    def create(
        self,
        kubeconfig: Path,
        release: str,
        chart: str,
        values: str | None = None,
        namespace: str = "default",
    ) -> None:
        ...

    def destroy(self, kubeconfig: Path, release: str, namespace: str = "default") -> None:
        ...

    def status(self, kubeconfig: Path, release: str, namespace: str = "default") -> bool:
        ...
