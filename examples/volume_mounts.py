"""Read from a read-only host directory and write results into a writable one."""

import tempfile
from pathlib import Path

from docker_runner import BindMount, Container, ContainerConfig

with tempfile.TemporaryDirectory(prefix="docker-runner-") as root:
    host_root = Path(root)
    data = host_root / "data"
    results = host_root / "results"
    data.mkdir()
    results.mkdir()
    (data / "input.txt").write_text("Hello from host directory!\n")

    config = ContainerConfig(
        image="alpine:latest",
        command=["sh", "-c", "wc -c /data/input.txt | tee /results/size.txt"],
        platform=None,
        mounts=[
            BindMount(data, "/data", read_only=True),
            BindMount(results, "/results"),
        ],
        remove_image=False,
    )

    container = Container(config)
    container.pull_image()

    with container as c:
        c.wait()
        print("Logs:")
        print(c.logs())

    print("Written by the container:")
    print((results / "size.txt").read_text())
