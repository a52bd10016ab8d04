from __future__ import annotations

import logging
import sys
from collections.abc import Callable

import docker

from .core import ContainerConfig
from .helpers import make_absolute, print_failure

logger = logging.getLogger(__name__)

# Per-container platform on create needs API 1.41 (Docker 20.10)
MIN_API_VERSION = (1, 41)

Check = Callable[[docker.DockerClient, ContainerConfig], None]


# --------------------------------------------------------------------------- #
# Pretty failure printer
# --------------------------------------------------------------------------- #
def _fail(msg: str) -> None:
    print_failure(msg)
    sys.exit(1)


# --------------------------------------------------------------------------- #
# Individual checks
# --------------------------------------------------------------------------- #
def _check_daemon_os(client: docker.DockerClient, config: ContainerConfig) -> None:
    os_type = client.info().get("OSType", "")
    if os_type and os_type != "linux":
        _fail(
            f"Docker daemon runs {os_type} containers, Linux containers required\n"
            "Docker Desktop on Windows: right-click the tray icon and choose\n"
            "'Switch to Linux containers...'"
        )


def _check_api_version(client: docker.DockerClient, config: ContainerConfig) -> None:
    if not config.platform:
        return  # Only needed to pin the platform
    api_version = client.version().get("ApiVersion", "")
    try:
        version = tuple(int(part) for part in api_version.split(".")[:2])
    except ValueError:
        return
    if version < MIN_API_VERSION:
        _fail(
            f"Docker API >= {'.'.join(map(str, MIN_API_VERSION))} required "
            f"to set a platform, found {api_version}\n"
            "Upgrade Docker or run with --platform none"
        )


def _check_mount_sources(client: docker.DockerClient, config: ContainerConfig) -> None:
    missing = [
        str(make_absolute(bind.source))
        for bind in config.mounts
        if not make_absolute(bind.source).is_dir()
    ]
    if missing:
        _fail(
            "Bind mount source directories missing:\n"
            + "\n".join(f"  - {path}" for path in missing)
            + "\nFix: mkdir -p " + " ".join(missing)
        )


def _check_platform(client: docker.DockerClient, config: ContainerConfig) -> None:
    if not config.platform:
        return
    info = client.version()
    daemon_platform = f"{info.get('Os', '')}/{info.get('Arch', '')}"
    if daemon_platform != config.platform:
        # Emulation (binfmt/qemu) may still make this work
        logger.warning(
            f"Requested platform {config.platform} differs from daemon platform {daemon_platform}"
        )


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #
CHECKS: list[Check] = [
    _check_daemon_os,
    _check_api_version,
    _check_mount_sources,
    _check_platform,
]


def run_preflight_checks(
    client: docker.DockerClient,
    config: ContainerConfig,
    custom_checks: list[Check] | None = None,
) -> None:
    """Runtime environment checks before running a throwaway container."""
    all_checks = CHECKS + (custom_checks or [])
    for check in all_checks:
        try:
            check(client, config)
        except Exception as e:
            _fail(str(e))
