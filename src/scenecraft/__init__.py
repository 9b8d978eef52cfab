"""scenecraft: scene graph, transforms, and boolean solids for a small CAD editor."""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
