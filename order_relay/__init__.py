"""Order relay: single-use order keys in front of Pinata JSON pinning."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("order-relay")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
