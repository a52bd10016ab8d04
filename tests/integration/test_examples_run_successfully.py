# tests/integration/test_examples_run_successfully.py
from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import docker
import pytest

pytestmark = pytest.mark.integration

REPO_ROOT = Path(__file__).resolve().parents[2]
EXAMPLES_DIR = REPO_ROOT / "examples"


# ------------------------------------------------------------------ #
# Discover examples
# ------------------------------------------------------------------ #
def _example_files() -> list[Path]:
    if not EXAMPLES_DIR.is_dir():
        return []
    return sorted(
        p
        for p in EXAMPLES_DIR.iterdir()
        if p.is_file() and p.suffix == ".py" and not p.name.startswith("_")
    )


# ------------------------------------------------------------------ #
# Test each example
# ------------------------------------------------------------------ #
@pytest.mark.parametrize("example_file", _example_files(), ids=lambda p: p.name)
def test_example_runs_successfully(
    example_file: Path, docker_client: docker.DockerClient, tmp_path: Path
) -> None:
    result = subprocess.run(  # noqa: S603
        [sys.executable, str(example_file)],
        cwd=tmp_path,
        capture_output=True,
        text=True,
        timeout=180,
    )

    assert result.returncode == 0, (
        f"Example {example_file.name} failed (exit {result.returncode})\n"
        f"STDERR:\n{result.stderr.rstrip() or '(empty)'}\n"
        f"STDOUT:\n{result.stdout.rstrip() or '(empty)'}"
    )
