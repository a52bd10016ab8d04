from importlib.metadata import PackageNotFoundError, version

from .core import BindMount, Container, ContainerConfig

try:
    __version__ = version("docker-runner")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = ["BindMount", "Container", "ContainerConfig", "__version__"]
