from __future__ import annotations

import logging
import sys
from pathlib import Path

import docker
import docker.errors

logger = logging.getLogger(__name__)

# Common socket locations across platforms, tried after DOCKER_HOST
SOCKET_PATHS = [
    Path.home() / ".docker" / "run" / "docker.sock",  # Docker Desktop (macOS/Windows)
    Path("/var/run/docker.sock"),  # Linux default
    Path("/run/docker.sock"),  # Some Linux distros
]


def get_docker_client(base_url: str | None = None) -> docker.DockerClient:
    """Connect to the Docker daemon.

    Args:
        base_url: Explicit daemon URL (e.g. ``unix:///var/run/docker.sock``).
            When omitted, ``DOCKER_HOST`` and the usual socket paths are tried.

    Returns:
        A client that has answered a ping.

    Raises:
        RuntimeError: If no daemon could be reached.
    """
    if base_url:
        try:
            client = docker.DockerClient(base_url=base_url)
            client.ping()
            return client
        except docker.errors.DockerException as e:
            raise RuntimeError(f"Could not connect to Docker at {base_url}: {e}") from e

    last_error: Exception | None = None

    try:
        client = docker.from_env()
        client.ping()
        return client
    except docker.errors.DockerException as e:
        logger.debug(f"docker.from_env() failed: {e}")
        last_error = e

    for socket_path in SOCKET_PATHS:
        if not socket_path.exists():
            continue
        try:
            client = docker.DockerClient(base_url=f"unix://{socket_path}")
            client.ping()
            return client
        except docker.errors.DockerException as e:
            logger.debug(f"Failed to connect via {socket_path}: {e}")
            last_error = e

    error_msg = (
        "Could not connect to Docker. Make sure Docker is running.\n"
        "Tried DOCKER_HOST env var and common socket locations."
    )
    if last_error:
        error_msg += f"\nLast error: {last_error}"
    raise RuntimeError(error_msg)


def make_absolute(path: str | Path) -> Path:
    """Bind mounts require absolute paths for the source directory."""
    return Path(path).expanduser().absolute()


def print_failure(msg: str) -> None:
    """Print a framed error banner to stderr."""
    header = "=" * 70
    print(f"\n{header}\n[ERROR] {msg}\n{header}\n", file=sys.stderr)  # noqa: T201
