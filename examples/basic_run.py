"""Basic usage: run ``uname -a`` in a throwaway alpine container and print its logs."""

import tempfile
from pathlib import Path

from docker_runner import BindMount, Container, ContainerConfig

with tempfile.TemporaryDirectory(prefix="docker-runner-") as root:
    host_root = Path(root)
    (host_root / "dir1").mkdir()
    (host_root / "dir2").mkdir()

    config = ContainerConfig(
        platform=None,
        mounts=[
            BindMount(host_root / "dir1", "/dir1", read_only=True),
            BindMount(host_root / "dir2", "/dir2"),
        ],
        remove_image=False,
    )

    status = Container(config).run()
    print(f"Exit status: {status}")
    raise SystemExit(status or 0)
