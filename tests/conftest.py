from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import docker
import docker.errors
import pytest

from docker_runner import BindMount, ContainerConfig

# TEST CONSTANTS
TEST_CONTAINER_PREFIX = "docker-runner-test"
TEST_IMAGE = "alpine:latest"


@pytest.fixture(scope="session")
def container_prefix() -> str:
    """Expose the test container prefix for advanced use."""
    return TEST_CONTAINER_PREFIX


@pytest.fixture
def mount_dirs(tmp_path: Path) -> tuple[Path, Path]:
    """Create the read-only and writable host directories."""
    ro_dir = tmp_path / "dir1"
    rw_dir = tmp_path / "dir2"
    ro_dir.mkdir()
    rw_dir.mkdir()
    (ro_dir / "input.txt").write_text("hello from host\n")
    return ro_dir, rw_dir


@pytest.fixture
def config(mount_dirs: tuple[Path, Path]) -> ContainerConfig:
    """Generate a container configuration mounting the temp directories."""
    ro_dir, rw_dir = mount_dirs
    return ContainerConfig(
        image=TEST_IMAGE,
        command=["echo", "hello"],
        mounts=[
            BindMount(ro_dir, "/dir1", read_only=True),
            BindMount(rw_dir, "/dir2"),
        ],
    )


@pytest.fixture
def client() -> MagicMock:
    """A stand-in Docker client."""
    return MagicMock()


# --------------------------------------------------------------------------- #
# Real daemon, for integration tests only
# --------------------------------------------------------------------------- #
@pytest.fixture(scope="session")
def docker_client() -> Generator[docker.DockerClient, None, None]:
    try:
        client = docker.from_env()
        client.ping()
    except docker.errors.DockerException as e:
        pytest.skip(f"Docker daemon not reachable: {e}")
    yield client
    # After all tests
    for container in client.containers.list(all=True, filters={"name": TEST_CONTAINER_PREFIX}):
        container.remove(force=True)
    client.close()
