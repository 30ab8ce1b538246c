"""ccs-navigator: definition lookup and label+offset jumps for ObjectScript sources."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ccs-navigator")
except PackageNotFoundError:
    __version__ = "dev"
