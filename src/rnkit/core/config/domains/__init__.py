"""Typed accessors for configuration sections."""
from .attach import AttachConfig
from .logging import LoggingConfig
from .paths import PathsConfig
from .project import ProjectConfig
from .timeouts import TimeoutsConfig
from .wiring import MarkerDefinition, WiringConfig

__all__ = [
    "AttachConfig",
    "LoggingConfig",
    "MarkerDefinition",
    "PathsConfig",
    "ProjectConfig",
    "TimeoutsConfig",
    "WiringConfig",
]
