"""
dotsync Download Subsystem

Resolves, selects and installs artifacts published as GitHub Release assets.

Core Components:
- interfaces: Release, Asset and Status data structures
- version: Version stability and normalization
- cache: On-disk HTTP response cache
- github_source: Latest-release resolution through the cache
- assets: Asset selection predicates
- files: Archive extraction and file helpers
- installer: Download, extract and place binaries
"""

from .assets import name_equals, name_matches, select_asset
from .cache import CachedResponse, HttpCache, url_cache_key
from .github_source import GithubReleaseResolver
from .installer import download_release_asset, install_release_asset
from .interfaces import Asset, Release, Status, StatusKind
from .version import is_stable, normalize_version

__all__ = [
    # Interfaces
    "Asset",
    "Release",
    "Status",
    "StatusKind",
    # Core components
    "CachedResponse",
    "HttpCache",
    "url_cache_key",
    "GithubReleaseResolver",
    "select_asset",
    "name_equals",
    "name_matches",
    "download_release_asset",
    "install_release_asset",
    "is_stable",
    "normalize_version",
]
