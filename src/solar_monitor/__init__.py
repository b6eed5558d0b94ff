"""Solar Monitor: solar/battery telemetry poller and statistics service."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("solar-monitor")
except PackageNotFoundError:
    __version__ = "dev"
