"""
Core data structures shared by release resolution, installation and tasks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from dotsync.log_utils import logger


@dataclass(frozen=True)
class Asset:
    """Represents a downloadable asset attached to a release."""

    name: str
    """The filename of the asset"""

    download_url: str
    """Direct URL to download the asset (GitHub's browser_download_url)"""

    @classmethod
    def from_github_data(cls, asset_data: Dict[str, Any]) -> Optional["Asset"]:
        """
        Build an Asset from a GitHub API asset object.

        Returns:
            Optional[Asset]: The asset, or None when the name or download URL is missing.
        """
        name = asset_data.get("name")
        url = asset_data.get("browser_download_url")
        if not isinstance(name, str) or not name.strip():
            return None
        if not isinstance(url, str) or not url.strip():
            return None
        return cls(name=name, download_url=url)


AssetPredicate = Callable[[Asset], bool]


@dataclass(frozen=True)
class Release:
    """Represents a tagged release from a GitHub repository."""

    tag_name: str
    """The release tag/version identifier (e.g., 'v2.7.8')"""

    assets: List[Asset] = field(default_factory=list)
    """Downloadable assets in API order"""

    draft: bool = False
    """Whether this is an unpublished draft"""

    prerelease: bool = False
    """Whether this is marked as a prerelease"""

    @property
    def is_installable(self) -> bool:
        """A release is installable when it is published, stable and has assets."""
        return not self.draft and not self.prerelease and len(self.assets) > 0

    @classmethod
    def from_github_data(cls, release_data: Dict[str, Any]) -> Optional["Release"]:
        """
        Create a Release from GitHub API release data.

        Malformed assets are dropped individually; a missing tag drops the release.

        Parameters:
            release_data (Dict[str, Any]): Raw release object from the "list releases" endpoint.

        Returns:
            Optional[Release]: The parsed release, or None when `tag_name` is missing or invalid.
        """
        tag_name = release_data.get("tag_name")
        if not isinstance(tag_name, str) or not tag_name.strip():
            logger.warning("Skipping release with missing or invalid tag_name")
            return None

        assets: List[Asset] = []
        assets_data = release_data.get("assets")
        if isinstance(assets_data, list):
            for asset_data in assets_data:
                asset = (
                    Asset.from_github_data(asset_data)
                    if isinstance(asset_data, dict)
                    else None
                )
                if asset is None:
                    logger.debug("Skipping malformed asset for release %s", tag_name)
                    continue
                assets.append(asset)

        return cls(
            tag_name=tag_name,
            assets=assets,
            draft=bool(release_data.get("draft", False)),
            prerelease=bool(release_data.get("prerelease", False)),
        )


class StatusKind(Enum):
    DONE = "done"
    NOT_IMPLEMENTED = "not implemented"
    SKIPPED = "skipped"
    CHANGED = "changed"
    NO_CHANGE = "no change"


@dataclass(frozen=True)
class Status:
    """
    Outcome of a sync or update step.

    CHANGED carries `before` and `after`; NO_CHANGE carries `before` as its detail.
    For favourites these are comma-joined names; for release tools they are versions.
    """

    kind: StatusKind
    before: str = ""
    after: str = ""

    @classmethod
    def done(cls) -> "Status":
        return cls(StatusKind.DONE)

    @classmethod
    def not_implemented(cls) -> "Status":
        return cls(StatusKind.NOT_IMPLEMENTED)

    @classmethod
    def skipped(cls) -> "Status":
        return cls(StatusKind.SKIPPED)

    @classmethod
    def changed(cls, before: str, after: str) -> "Status":
        return cls(StatusKind.CHANGED, before, after)

    @classmethod
    def no_change(cls, detail: str = "") -> "Status":
        return cls(StatusKind.NO_CHANGE, detail)

    @property
    def is_changed(self) -> bool:
        return self.kind is StatusKind.CHANGED

    def __str__(self) -> str:
        if self.kind is StatusKind.CHANGED:
            return f"changed '{self.before}' -> '{self.after}'"
        if self.kind is StatusKind.NO_CHANGE:
            return f"'{self.before}' -> no change"
        return self.kind.value
