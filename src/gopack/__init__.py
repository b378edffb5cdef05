"""
gopack: publish a Go module version into a local GOPROXY directory tree.

For each invocation the tool writes, under `<out>/<escaped-module>/@v/`:
- `<version>.mod`  - a copy of the module's go.mod
- `<version>.info` - a small JSON version/time descriptor
- `<version>.zip`  - a canonical, reproducible module archive
- `list`           - the sorted, deduplicated catalog of published versions
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
