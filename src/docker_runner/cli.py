"""Run a shell command in a throwaway container.

Usage:
    docker-runner                              # uname -a in alpine:latest
    docker-runner ls -l /dir1 /dir2
    docker-runner --image debian:bookworm -- sh -c 'echo hi > /dir2/out'
    docker-runner --ro-dir ./data:/data --rw-dir ./out:/out cat /data/input.txt

By default ``./dir1`` is mounted read-only at ``/dir1`` and ``./dir2`` writable at
``/dir2``. The image is pulled before the run and removed afterwards.
"""

from __future__ import annotations

import argparse
import logging
import os

import docker.errors
import requests

from .core import (
    DEFAULT_COMMAND,
    DEFAULT_IMAGE,
    DEFAULT_PLATFORM,
    INTERRUPTED_EXIT_CODE,
    BindMount,
    Container,
    ContainerConfig,
)
from .helpers import get_docker_client, print_failure
from .preflight import run_preflight_checks

logger = logging.getLogger(__name__)


def _parse_env(value: str) -> tuple[str, str]:
    key, sep, val = value.partition("=")
    if not key or not sep:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, val


def _parse_platform(value: str) -> str | None:
    return None if value.lower() in ("", "none") else value


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docker-runner",
        description="Run a shell command in a throwaway Linux container.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--image",
        default=os.environ.get("DOCKER_RUNNER_IMAGE", DEFAULT_IMAGE),
        help="Image to pull and run (default: %(default)s, env: DOCKER_RUNNER_IMAGE)",
    )
    parser.add_argument(
        "--platform",
        type=_parse_platform,
        default=_parse_platform(os.environ.get("DOCKER_RUNNER_PLATFORM", DEFAULT_PLATFORM)),
        help="os/arch to pull and run, or 'none' for the daemon's own "
        "(default: %(default)s, env: DOCKER_RUNNER_PLATFORM)",
    )
    parser.add_argument(
        "--ro-dir",
        action="append",
        metavar="HOST[:CONTAINER]",
        help="Bind-mount a host directory read-only (repeatable)",
    )
    parser.add_argument(
        "--rw-dir",
        action="append",
        metavar="HOST[:CONTAINER]",
        help="Bind-mount a host directory writable (repeatable)",
    )
    parser.add_argument("--name", help="Container name (default: daemon-assigned)")
    parser.add_argument(
        "-e",
        "--env",
        action="append",
        type=_parse_env,
        metavar="KEY=VALUE",
        help="Set an environment variable in the container (repeatable)",
    )
    parser.add_argument(
        "--keep-image",
        action="store_true",
        help="Do not remove the image after the run",
    )
    parser.add_argument(
        "-H",
        "--host",
        help="Docker daemon URL (default: DOCKER_HOST or the local socket)",
    )
    parser.add_argument(
        "--skip-preflight",
        action="store_true",
        help="Skip environment checks before running",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help=f"Command to run (default: {' '.join(DEFAULT_COMMAND)})",
    )
    return parser


def build_config(args: argparse.Namespace) -> ContainerConfig:
    """Turn parsed arguments into a container configuration."""
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]

    config = ContainerConfig(
        image=args.image,
        command=command,
        platform=args.platform,
        name=args.name,
        environment=dict(args.env) if args.env else None,
        remove_image=not args.keep_image,
        docker_host=args.host,
    )

    if args.ro_dir or args.rw_dir:
        config.mounts = [BindMount.parse(spec, read_only=True) for spec in args.ro_dir or []] + [
            BindMount.parse(spec, read_only=False) for spec in args.rw_dir or []
        ]

    return config


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    print(" ".join(config.command))  # noqa: T201

    try:
        client = get_docker_client(config.docker_host)
        if not args.skip_preflight:
            run_preflight_checks(client, config)
        status = Container(config, client=client).run()
    except KeyboardInterrupt:
        print("(caught SIGINT)")  # noqa: T201
        return INTERRUPTED_EXIT_CODE
    except (
        RuntimeError,
        FileNotFoundError,
        docker.errors.DockerException,
        requests.exceptions.RequestException,
    ) as e:
        logger.debug("Run failed", exc_info=True)
        print_failure(str(e))
        return 1

    return 1 if status is None else status


if __name__ == "__main__":
    raise SystemExit(main())
