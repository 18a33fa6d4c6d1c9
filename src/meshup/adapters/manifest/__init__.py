"""Local-file mode: read and write control-plane manifests."""

from __future__ import annotations

from .render import render_manifest
from .store import ManifestStore

__all__ = ["ManifestStore", "render_manifest"]
