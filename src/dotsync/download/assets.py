"""
Asset selection for GitHub releases.
"""

import re
from typing import Optional

from .interfaces import Asset, AssetPredicate, Release
from .version import is_stable


def select_asset(
    release: Release,
    predicate: AssetPredicate,
    require_stable: bool = False,
) -> Optional[Asset]:
    """
    Pick the first asset of a release that satisfies a predicate.

    Parameters:
        release (Release): Release whose assets are searched in API order.
        predicate (AssetPredicate): Platform-specific matcher, usually built with name_equals() or name_matches().
        require_stable (bool): Also reject assets whose names look like prereleases.

    Returns:
        Optional[Asset]: The first matching asset, or None when nothing matches.
    """
    for asset in release.assets:
        if not predicate(asset):
            continue
        if require_stable and not is_stable(asset.name):
            continue
        return asset
    return None


def name_equals(name: str) -> AssetPredicate:
    def _matches(asset: Asset) -> bool:
        return asset.name == name

    return _matches


def name_matches(pattern: str) -> AssetPredicate:
    """Match asset names against a regular expression (anchors are up to the pattern)."""
    rx = re.compile(pattern)

    def _matches(asset: Asset) -> bool:
        return rx.search(asset.name) is not None

    return _matches
