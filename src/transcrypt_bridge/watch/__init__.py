"""Incremental-rebuild support: which Python files a Transcrypt run depended on."""

from .manifest import ManifestModule, ManifestReadError, RunManifest, load_run_manifest, manifest_path
from .extractor import extract_watch_set

__all__ = [
    "ManifestModule",
    "ManifestReadError",
    "RunManifest",
    "load_run_manifest",
    "manifest_path",
    "extract_watch_set",
]
