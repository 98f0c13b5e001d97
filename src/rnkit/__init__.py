"""
rnkit - capability installation engine for React Native scaffolds

rnkit attaches template packs to a generated project, wires installed
plugins and modules into the runtime entry points, and keeps a validated
project manifest of everything it installed.
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
