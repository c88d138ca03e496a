"""anycall - invoke any method of a schema-described RPC service from the command line."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("anycall")
except PackageNotFoundError:
    __version__ = "(local)"
