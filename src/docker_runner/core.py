from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import docker
import docker.errors
import requests
from docker.models.containers import Container as DockerContainer
from docker.types import Mount
from docker.utils import parse_repository_tag

from .helpers import get_docker_client, make_absolute

__all__ = ["BindMount", "Container", "ContainerConfig"]

logger = logging.getLogger(__name__)

DEFAULT_IMAGE = "alpine:latest"
DEFAULT_PLATFORM = "linux/amd64"
DEFAULT_COMMAND = ["uname", "-a"]

# Conventional shell status for a process ended by SIGINT
INTERRUPTED_EXIT_CODE = 130


@dataclass
class BindMount:
    """A host directory bind-mounted into the container."""

    source: Path
    target: str
    read_only: bool = False

    @classmethod
    def parse(cls, spec: str, read_only: bool = False) -> BindMount:
        """Parse ``HOST[:CONTAINER[:ro|rw]]``.

        Without a container path the directory lands at ``/<basename>``.
        """
        parts = spec.split(":")
        if len(parts) == 3 and parts[2] in ("ro", "rw"):
            read_only = parts[2] == "ro"
            parts = parts[:2]
        if len(parts) > 2 or not parts[0]:
            raise ValueError(f"Invalid mount {spec!r}, expected HOST[:CONTAINER[:ro|rw]]")

        source = Path(parts[0])
        target = parts[1] if len(parts) == 2 else f"/{make_absolute(source).name}"
        if not target.startswith("/"):
            raise ValueError(f"Container path must be absolute: {target!r}")
        return cls(source=source, target=target, read_only=read_only)

    def to_mount(self) -> Mount:
        """Return the engine API mount, with the source made absolute."""
        return Mount(
            target=self.target,
            source=str(make_absolute(self.source)),
            type="bind",
            read_only=self.read_only,
        )


def _default_mounts() -> list[BindMount]:
    return [
        BindMount(Path("dir1"), "/dir1", read_only=True),
        BindMount(Path("dir2"), "/dir2", read_only=False),
    ]


@dataclass
class ContainerConfig:
    """Throwaway container configuration.

    Key features:
    - ``command`` → falls back to ``uname -a`` when empty
    - ``mounts`` → ``dir1`` read-only at ``/dir1``, ``dir2`` writable at ``/dir2``
    - ``platform`` → pulled and created for this ``os/arch``; ``None`` uses the daemon's
    - ``remove_image`` → force-remove the image once the container is gone
    """

    image: str = DEFAULT_IMAGE
    command: list[str] = field(default_factory=lambda: list(DEFAULT_COMMAND))
    platform: str | None = DEFAULT_PLATFORM
    mounts: list[BindMount] = field(default_factory=_default_mounts)
    name: str | None = None
    environment: dict[str, str] | None = None
    remove_image: bool = True
    docker_host: str | None = None

    def __post_init__(self) -> None:
        if not self.command:
            self.command = list(DEFAULT_COMMAND)


def _normalize_reference(ref: str) -> str:
    """``alpine`` and ``docker.io/library/alpine`` both become ``alpine:latest``."""
    repo, tag = parse_repository_tag(ref)
    for prefix in ("docker.io/", "index.docker.io/"):
        if repo.startswith(prefix):
            repo = repo[len(prefix) :]
    if repo.startswith("library/"):
        repo = repo[len("library/") :]
    if tag and tag.startswith("sha256:"):
        return f"{repo}@{tag}"
    return f"{repo}:{tag or 'latest'}"


def _iter_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    """Reassemble streamed log chunks into lines."""
    buffer = bytearray()
    for chunk in chunks:
        # Bytes already in the buffer hold no newline
        end = chunk.find(b"\n")
        if end == -1:
            buffer += chunk
            continue
        buffer += chunk[:end]
        yield buffer.decode("utf-8", errors="replace").rstrip("\r")
        *lines, rest = chunk[end + 1 :].split(b"\n")
        for line in lines:
            yield line.decode("utf-8", errors="replace").rstrip("\r")
        buffer = bytearray(rest)
    if buffer:
        yield buffer.decode("utf-8", errors="replace").rstrip("\r")


class Container:
    """Lifecycle-managed throwaway container with context manager support."""

    def __init__(self, config: ContainerConfig, client: docker.DockerClient | None = None):
        """Initialize a container."""
        self.config = config
        self.container: DockerContainer | None = None
        self._client = client

    @property
    def container_id(self) -> str | None:
        return self.container.id if self.container is not None else None

    # --------------------------------------------------------------------- #
    # Docker client
    # --------------------------------------------------------------------- #
    def _get_client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = get_docker_client(self.config.docker_host)
        return self._client

    # --------------------------------------------------------------------- #
    # Image
    # --------------------------------------------------------------------- #
    def pull_image(self) -> None:
        """Pull the image, draining the progress stream."""
        image = self.config.image
        logger.info(f"Pulling {image} ({self.config.platform or 'daemon platform'})")
        try:
            stream = self._get_client().api.pull(
                image,
                stream=True,
                decode=True,
                platform=self.config.platform,
            )
            for event in stream:
                if "error" in event:
                    raise RuntimeError(f"Failed to pull image {image!r}: {event['error']}")
                logger.debug(f"{event.get('id', image)}: {event.get('status', '')}")
        except (docker.errors.APIError, requests.exceptions.RequestException) as e:
            raise RuntimeError(f"Failed to pull image {image!r}: {e}") from e

    def identify_image(self) -> str | None:
        """Return the ID of the local image tagged as the configured image."""
        wanted = _normalize_reference(self.config.image)
        client = self._get_client()

        for image in client.images.list():
            for tag in image.tags:
                if _normalize_reference(tag) == wanted:
                    return str(image.id)

        # Digest references never show up in the repo tags
        try:
            return str(client.images.get(self.config.image).id)
        except docker.errors.ImageNotFound:
            return None

    def remove_image(self) -> None:
        """Force-remove the configured image."""
        image_id = self.identify_image()
        if image_id is None:
            logger.warning(f"Image {self.config.image!r} not found locally, nothing to remove")
            return
        try:
            self._get_client().images.remove(image=image_id, force=True)
        except docker.errors.APIError as e:
            raise RuntimeError(f"Failed to remove image {self.config.image!r}: {e}") from e
        logger.info(f"Removed image {self.config.image} ({image_id})")

    # --------------------------------------------------------------------- #
    # Build create arguments
    # --------------------------------------------------------------------- #
    def _build_create_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "image": self.config.image,
            "command": list(self.config.command),
        }

        mounts = []
        for bind in self.config.mounts:
            source = make_absolute(bind.source)
            if not source.is_dir():
                raise FileNotFoundError(f"Bind mount source directory not found: {source}")
            mounts.append(bind.to_mount())
        if mounts:
            kwargs["mounts"] = mounts

        if self.config.platform:
            kwargs["platform"] = self.config.platform
        if self.config.name:
            kwargs["name"] = self.config.name
        if self.config.environment:
            kwargs["environment"] = dict(self.config.environment)

        return kwargs

    # --------------------------------------------------------------------- #
    # Lifecycle
    # --------------------------------------------------------------------- #
    def start(self) -> Container:
        """Create and start the container."""
        self.remove()
        kwargs = self._build_create_kwargs()
        client = self._get_client()

        try:
            self.container = client.containers.create(**kwargs)
        except docker.errors.APIError as e:
            raise RuntimeError(
                f"Failed to create container from {self.config.image!r}:\n"
                f"Command: {' '.join(self.config.command)}\n"
                f"Error: {e}"
            ) from e

        logger.debug(f"Created container {self.container_id}")

        try:
            self.container.start()
        except docker.errors.APIError as e:
            self.remove()
            raise RuntimeError(f"Failed to start container from {self.config.image!r}: {e}") from e

        return self

    def wait(self) -> int | None:
        """Block until the container stops running or the user interrupts.

        Returns the container's exit code, ``130`` after SIGINT, or ``None``
        when the daemon failed while waiting.
        """
        if self.container is None:
            raise RuntimeError("Container not started")

        try:
            result = self.container.wait(condition="not-running")
        except KeyboardInterrupt:
            print("(caught SIGINT)")  # noqa: T201
            return INTERRUPTED_EXIT_CODE
        except (docker.errors.APIError, requests.exceptions.RequestException) as e:
            logger.debug(f"Wait failed: {e}")
            print("An error occurred with the docker daemon")  # noqa: T201
            return None

        if result.get("Error"):
            logger.warning(f"Container reported an error: {result['Error']}")

        status_code = int(result["StatusCode"])
        print(f"(exited with {status_code})")  # noqa: T201
        return status_code

    def check_status(self) -> str:
        """Check container status."""
        if self.container is None:
            return "Not running"

        try:
            self.container.reload()
        except docker.errors.NotFound:
            return "Not running"
        return str(self.container.status)

    def remove(self) -> None:
        """Force-remove the container."""
        if self.container is None:
            return
        container_id = self.container_id
        try:
            self.container.remove(force=True)
            logger.debug(f"Removed container {container_id}")
        except docker.errors.NotFound:
            logger.debug(f"Container {container_id} already gone")
        except (docker.errors.APIError, requests.exceptions.RequestException) as e:
            logger.warning(f"Failed to remove container {container_id}: {e}")
        self.container = None

    # --------------------------------------------------------------------- #
    # Logs
    # --------------------------------------------------------------------- #
    def logs(self, tail: int | None = None, stderr: bool = False) -> str:
        """Get the container logs."""
        if self.container is None:
            raise RuntimeError("Container not started")
        output = self.container.logs(stdout=True, stderr=stderr, tail=tail or "all")
        return bytes(output).decode("utf-8", errors="replace")

    def dump_logs(self) -> None:
        """Print the container's stdout, line by line."""
        if self.container is None:
            raise RuntimeError("Container not started")
        try:
            chunks = self.container.logs(stdout=True, stderr=False, stream=True, follow=False)
            for line in _iter_lines(chunks):
                print(line)  # noqa: T201
        except (docker.errors.APIError, requests.exceptions.RequestException) as e:
            raise RuntimeError(f"Failed to read logs of container {self.container_id}: {e}") from e

    # --------------------------------------------------------------------- #
    # One-shot run
    # --------------------------------------------------------------------- #
    def run(self) -> int | None:
        """Pull, run to completion, print logs, then remove container and image."""
        self.pull_image()

        with self:
            status = self.wait()
            self.dump_logs()

        if self.config.remove_image:
            self.remove_image()

        return status

    # --------------------------------------------------------------------- #
    # Context manager
    # --------------------------------------------------------------------- #
    def __enter__(self) -> Container:
        """Enter the runtime context for the container.

        Called when entering a ``with`` block.
        """
        return self.start()

    def __exit__(self, *args: Any) -> None:
        """Exit the runtime context and remove the container."""
        self.remove()

    def __del__(self) -> None:
        """Make sure to remove the container on cleanup."""
        if getattr(self, "container", None) is not None:
            self.remove()

    def __repr__(self) -> str:
        """Return a string representation of the container."""
        status = "running" if self.container is not None else "stopped"
        return f"<Container {self.config.image} [{status}] id={self.container_id}>"
