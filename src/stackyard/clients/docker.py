"""
Container engine client driving the ``docker`` CLI.

Containers are named ``<name>.<network>.stackyard`` so that two blueprints
can reuse a resource name on different networks, and every object created
here carries the ``dev.stackyard.managed`` label.
"""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Sequence
from typing import IO, Any

import structlog

from stackyard.clients.base import BaseCommandClient, CommandError
from stackyard.resources.models import Container, Image, Network

logger = structlog.get_logger()

MANAGED_LABEL = "dev.stackyard.managed=true"
NAME_SUFFIX = "stackyard"


def container_fqdn(name: str, network: str | None) -> str:
    """Return the engine-level name of a container."""
    if network:
        return f"{name}.{network}.{NAME_SUFFIX}"
    return f"{name}.{NAME_SUFFIX}"


def _is_missing(error: CommandError) -> bool:
    return "no such" in error.stderr.lower() or "not found" in error.stderr.lower()


def _registry(image: str) -> str | None:
    first, sep, _ = image.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        return first
    return None


class DockerTasks(BaseCommandClient):
    """Container engine operations implemented with the docker CLI."""

    def __init__(self, binary: str = "docker", *, timeout: float = 300.0) -> None:
        super().__init__(binary, timeout=timeout)

    # === Networks ===

    def create_network(self, network: Network) -> str:
        result = self._run(
            "network", "create",
            "--driver", "bridge",
            "--subnet", network.subnet,
            "--label", MANAGED_LABEL,
            network.name,
        )
        network_id = result.stdout.strip()
        logger.debug("network_created", name=network.name, id=network_id)
        return network_id

    def find_network_ids(self, name: str) -> list[str]:
        result = self._run(
            "network", "ls", "--filter", f"name={name}", "--format", "{{.ID}} {{.Name}}"
        )
        return _exact_matches(result.stdout, name)

    def remove_network(self, network_id: str) -> None:
        try:
            self._run("network", "rm", network_id)
        except CommandError as e:
            if not _is_missing(e):
                raise
            logger.debug("network_already_removed", id=network_id)

    # === Containers ===

    def create_container(self, container: Container) -> str:
        self.pull_image(container.image)

        network = container.network_name
        args = [
            "run", "--detach",
            "--name", container_fqdn(container.name, network),
            "--hostname", container.name,
            "--label", MANAGED_LABEL,
        ]
        if network:
            args += ["--network", network]
            if container.network and container.network.ip_address:
                args += ["--ip", container.network.ip_address]
        if container.privileged:
            args.append("--privileged")
        for key, value in container.environment.items():
            args += ["--env", f"{key}={value}"]
        for port in container.ports:
            local = f"{port.local}/{port.protocol}"
            args += ["--publish", f"{port.host}:{local}" if port.host else local]
        for volume in container.volumes:
            args += [
                "--mount",
                f"type={volume.type},source={volume.source},target={volume.destination}",
            ]
        args.append(container.image.name)
        args += container.command

        result = self._run(*args)
        container_id = result.stdout.strip()
        logger.debug("container_created", name=container.name, id=container_id)
        return container_id

    def find_container_ids(self, name: str, network: str | None) -> list[str]:
        fqdn = container_fqdn(name, network)
        result = self._run(
            "ps", "--all", "--filter", f"name={fqdn}", "--format", "{{.ID}} {{.Names}}"
        )
        return _exact_matches(result.stdout, fqdn)

    def remove_container(self, container_id: str) -> None:
        try:
            self._run("rm", "--force", "--volumes", container_id)
        except CommandError as e:
            if not _is_missing(e):
                raise
            logger.debug("container_already_removed", id=container_id)

    # === Volumes ===

    def create_volume(self, name: str) -> str:
        result = self._run("volume", "create", "--label", MANAGED_LABEL, name)
        return result.stdout.strip() or name

    def remove_volume(self, name: str) -> None:
        try:
            self._run("volume", "rm", "--force", name)
        except CommandError as e:
            if not _is_missing(e):
                raise

    # === Images ===

    def pull_image(self, image: Image, force: bool = False) -> None:
        if not force:
            try:
                self._run("image", "inspect", "--format", "{{.Id}}", image.name)
                return
            except CommandError as e:
                if not _is_missing(e):
                    raise

        if image.username and image.password:
            registry = _registry(image.name)
            login = ["login", "--username", image.username, "--password-stdin"]
            if registry:
                login.append(registry)
            self._run(*login, input=image.password)

        logger.info("image_pull", image=image.name)
        self._run("pull", image.name)

    def import_images(
        self, container_id: str, images: Sequence[Image], load_command: Sequence[str]
    ) -> None:
        """Stream images from the host engine into an engine running in a container."""
        names = [image.name for image in images]
        for image in images:
            self.pull_image(image)

        save_cmd = self._command("save", *names)
        load_cmd = self._command("exec", "--interactive", container_id, *load_command)
        with subprocess.Popen(save_cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE) as save:
            try:
                load = subprocess.run(
                    load_cmd,
                    stdin=save.stdout,
                    capture_output=True,
                    timeout=self._timeout,
                )
            except subprocess.TimeoutExpired as e:
                save.kill()
                raise CommandError(load_cmd, None, "image import timed out") from e
            finally:
                if save.stdout is not None:
                    save.stdout.close()
            save_err = save.stderr.read().decode() if save.stderr else ""
            save.wait()
        if save.returncode != 0:
            raise CommandError(save_cmd, save.returncode, save_err)
        if load.returncode != 0:
            raise CommandError(load_cmd, load.returncode, load.stderr.decode())
        logger.info("images_imported", container=container_id, images=names)

    # === Interactive shells ===

    def create_shell(
        self,
        container_id: str,
        command: Sequence[str],
        stdin: IO[Any] | None = None,
        stdout: IO[Any] | None = None,
        stderr: IO[Any] | None = None,
    ) -> int:
        """Attach the given streams to a command run inside a container."""
        stdin = stdin if stdin is not None else sys.stdin
        flags = ["--interactive"]
        if stdin.isatty():
            flags.append("--tty")
        cmd = self._command("exec", *flags, container_id, *command)
        return subprocess.run(cmd, stdin=stdin, stdout=stdout, stderr=stderr).returncode


def _exact_matches(output: str, name: str) -> list[str]:
    ids = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) == 2 and parts[1] == name:
            ids.append(parts[0])
    return ids
