"""
Tasks: the units a run executes one after another.

Every task has a `sync` step (install what is missing) and an `update` step
(refresh what is present). Failures inside one task are logged and never stop
the remaining tasks; only a missing home directory aborts the run.
"""

import json
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from dotsync.constants import (
    FONT_MARKER_FILE,
    STATUS_ABSENT,
    STATUS_UNEXPECTED_VERSION,
)
from dotsync.download.assets import name_matches, select_asset
from dotsync.download.files import (
    archive_kind,
    extract_archive,
    remove_path,
)
from dotsync.download.github_source import GithubReleaseResolver
from dotsync.download.installer import download_release_asset, install_release_asset
from dotsync.download.interfaces import Asset, AssetPredicate, Release, Status
from dotsync.env_utils import exe_suffix, font_dir
from dotsync.exceptions import (
    ArchiveFormatError,
    CommandError,
    DotsyncError,
    EmptyReleasesError,
    HomeDirectoryError,
    InstallError,
    ValidReleaseNotFoundError,
)
from dotsync.log_utils import logger
from dotsync.package_managers import PackageManagerFavourites
from dotsync.process import run

StepResult = Tuple[str, Optional[Status]]

MODE_SYNC = "sync"
MODE_UPDATE = "update"
MODE_ALL = "all"
MODES = (MODE_ALL, MODE_SYNC, MODE_UPDATE)


def trim_whitespace(output: str) -> str:
    return output.strip()


@dataclass
class Task:
    """A named pair of sync and update steps."""

    name: str
    sync: Callable[[], Status]
    update: Callable[[], Status]

    def _run_step(self, step: str, func: Callable[[], Status]) -> Optional[Status]:
        logger.info(f"{self.name}: {step}: ...")
        try:
            status = func()
        except HomeDirectoryError:
            raise
        except (DotsyncError, OSError) as e:
            logger.warning(f"{self.name}: {step} error: {e}")
            return None
        logger.info(f"{self.name}: {step}: {status}")
        return status

    def run(self, mode: str = MODE_ALL) -> List[StepResult]:
        """
        Run the task's steps for a mode ("sync", "update" or "all").

        Returns:
            List[StepResult]: (step name, status) pairs; status is None when the step failed.
        """
        if mode == MODE_ALL:
            return self.sync_then_update()
        if mode == MODE_SYNC:
            return [(MODE_SYNC, self._run_step(MODE_SYNC, self.sync))]
        if mode == MODE_UPDATE:
            return [(MODE_UPDATE, self._run_step(MODE_UPDATE, self.update))]
        raise ValueError(f"Unknown mode: {mode}")

    def sync_then_update(self) -> List[StepResult]:
        return [
            (MODE_SYNC, self._run_step(MODE_SYNC, self.sync)),
            (MODE_UPDATE, self._run_step(MODE_UPDATE, self.update)),
        ]


def run_tasks(tasks: Iterable[Task], mode: str = MODE_ALL) -> List[Tuple[str, List[StepResult]]]:
    """Run tasks strictly in order."""
    return [(task.name, task.run(mode)) for task in tasks]


# =============================================================================
# GitHub Release tools
# =============================================================================


@dataclass(frozen=True)
class ReleaseTool:
    """
    A command-line tool distributed as a GitHub Release asset.

    Attributes:
        name: Task name.
        command: Executable name without the platform suffix.
        owner: GitHub repository owner.
        repo: GitHub repository name.
        asset_filter: Picks the asset for this platform.
        version_arg: Argument that makes the command print its version.
        trim_version: Extracts the version from that output.
        archive: The asset is a .tar.gz/.zip containing the command.
    """

    name: str
    command: str
    owner: str
    repo: str
    asset_filter: AssetPredicate
    version_arg: str = "--version"
    trim_version: Callable[[str], str] = field(default=trim_whitespace)
    archive: bool = False

    @property
    def executable(self) -> str:
        return f"{self.command}{exe_suffix()}"


class ReleaseTask:
    """Generic sync/update behaviour for any ReleaseTool."""

    def __init__(
        self,
        tool: ReleaseTool,
        resolver: GithubReleaseResolver,
        bin_dir: Optional[Union[str, Path]] = None,
    ):
        self.tool = tool
        self.resolver = resolver
        self.bin_dir = bin_dir

    def exists(self) -> bool:
        try:
            return run(self.tool.executable, [self.tool.version_arg]).returncode == 0
        except CommandError:
            return False

    def current_version(self) -> str:
        try:
            stdout = run(self.tool.executable, [self.tool.version_arg]).stdout or ""
        except CommandError as e:
            logger.warning(f"`{self.tool.executable} {self.tool.version_arg}`: {e}")
            stdout = ""
        trimmed = self.tool.trim_version(stdout)
        return trimmed if trimmed else STATUS_UNEXPECTED_VERSION

    def _install(self, release: Release) -> bool:
        asset = select_asset(
            release, self.tool.asset_filter, require_stable=self.tool.archive
        )
        if asset is None:
            logger.warning(f"{self.tool.name}: no asset matches OS and ARCH")
            return False
        try:
            install_release_asset(
                asset,
                self.tool.command,
                bin_dir=self.bin_dir,
                archive=self.tool.archive,
            )
        except ArchiveFormatError as e:
            logger.warning(f"{self.tool.name}: {e}")
            return False
        return True

    def sync(self) -> Status:
        if self.exists():
            return Status.skipped()

        try:
            release = self.resolver.latest_release(self.tool.owner, self.tool.repo)
        except (EmptyReleasesError, ValidReleaseNotFoundError) as e:
            logger.info(f"{self.tool.name}: {e}")
            return Status.skipped()

        if not self._install(release):
            return Status.skipped()
        return Status.changed(STATUS_ABSENT, release.tag_name)

    def update(self) -> Status:
        if not self.exists():
            return Status.skipped()

        current = self.current_version()
        release = self.resolver.release_versus_current(
            current, self.tool.owner, self.tool.repo
        )
        if release is None:
            return Status.no_change(current)
        if not self._install(release):
            return Status.skipped()
        return Status.changed(current, release.tag_name)

    def as_task(self) -> Task:
        return Task(name=self.tool.name, sync=self.sync, update=self.update)


# =============================================================================
# GitHub Release fonts
# =============================================================================


@dataclass(frozen=True)
class FontSource:
    """
    A font family published as a GitHub Release asset.

    The asset is either a zip/tar.gz archive, from which files ending in
    `font_suffix` are taken, or a single font file.
    """

    name: str
    owner: str
    repo: str
    asset_pattern: str
    font_suffix: str


class FontTask:
    """Installs a FontSource into the per-user font directory under the repo name."""

    def __init__(
        self,
        source: FontSource,
        resolver: GithubReleaseResolver,
        fonts_root: Optional[Union[str, Path]] = None,
    ):
        self.source = source
        self.resolver = resolver
        self._fonts_root = Path(fonts_root) if fonts_root is not None else None

    def install_dir(self) -> Optional[Path]:
        root = self._fonts_root if self._fonts_root is not None else font_dir()
        if root is None:
            return None
        return root / self.source.repo

    def read_marker(self) -> Optional[dict]:
        install_dir = self.install_dir()
        if install_dir is None:
            return None
        try:
            with open(install_dir / FONT_MARKER_FILE, "r", encoding="utf-8") as f:
                marker = json.load(f)
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(marker, dict) or not isinstance(marker.get("version"), str):
            return None
        return marker

    def _write_marker(self, install_dir: Path, version: str) -> None:
        with open(install_dir / FONT_MARKER_FILE, "w", encoding="utf-8") as f:
            json.dump({"name": self.source.repo, "version": version}, f, indent=2)

    def _place(self, asset: Asset, downloaded: Path, install_dir: Path) -> None:
        suffix = self.source.font_suffix.lower()
        remove_path(install_dir)
        install_dir.mkdir(parents=True, exist_ok=True)
        kind = archive_kind(asset.name)
        if kind is None:
            shutil.copyfile(downloaded, install_dir / asset.name)
            return
        fonts = extract_archive(
            downloaded,
            install_dir,
            kind,
            name_filter=lambda n: n.lower().endswith(suffix),
            flatten=True,
        )
        logger.debug(f"{self.source.name}: extracted {len(fonts)} font files")

    def install(self, release: Release) -> Optional[str]:
        """
        Download and place the fonts of a release.

        Returns:
            Optional[str]: The installed tag, or None when no asset matched.
        """
        install_dir = self.install_dir()
        if install_dir is None:
            return None

        asset = select_asset(release, name_matches(self.source.asset_pattern))
        if asset is None:
            logger.warning(
                f"{self.source.name}: no asset matches {self.source.asset_pattern}"
            )
            return None

        fd, temp_name = tempfile.mkstemp(prefix="dotsync-", suffix=f"-{asset.name}")
        os.close(fd)
        downloaded = Path(temp_name)
        try:
            download_release_asset(asset, downloaded)
            try:
                self._place(asset, downloaded, install_dir)
                self._write_marker(install_dir, release.tag_name)
            except OSError as e:
                raise InstallError(
                    f"Unable to install {self.source.name} fonts",
                    str(install_dir),
                    str(e),
                ) from e
        finally:
            remove_path(downloaded)
        logger.info(f"Installed {self.source.name} {release.tag_name} to {install_dir}")
        return release.tag_name

    def _latest_release(self) -> Optional[Release]:
        try:
            return self.resolver.latest_release(self.source.owner, self.source.repo)
        except (EmptyReleasesError, ValidReleaseNotFoundError) as e:
            logger.info(f"{self.source.name}: {e}")
            return None

    def sync(self) -> Status:
        if self.install_dir() is None:
            return Status.skipped()
        marker = self.read_marker()
        if marker is not None:
            return Status.no_change(marker["version"])

        release = self._latest_release()
        if release is None:
            return Status.skipped()
        installed = self.install(release)
        if installed is None:
            return Status.skipped()
        return Status.changed(STATUS_ABSENT, installed)

    def update(self) -> Status:
        marker = self.read_marker()
        if marker is None:
            return Status.skipped()
        current = marker["version"]

        release = self._latest_release()
        if release is None:
            return Status.no_change(current)
        if release.tag_name == current:
            return Status.no_change(current)
        installed = self.install(release)
        if installed is None:
            return Status.skipped()
        return Status.changed(current, installed)

    def as_task(self) -> Task:
        return Task(name=self.source.name, sync=self.sync, update=self.update)


# =============================================================================
# Package-manager favourites
# =============================================================================


class FavouritesTask:
    """Fills then culls a package manager's favourites, and upgrades on update."""

    def __init__(self, favourites: PackageManagerFavourites):
        self.favourites = favourites

    def sync(self) -> Status:
        if not self.favourites.is_available():
            return Status.skipped()
        filled = self.favourites.fill_and_status()
        logger.info(f"{self.favourites.name}: fill: {filled}")
        culled = self.favourites.cull_and_status()
        logger.info(f"{self.favourites.name}: cull: {culled}")
        return Status.done()

    def update(self) -> Status:
        if not self.favourites.is_available():
            return Status.skipped()
        self.favourites.upgrade()
        return Status.done()

    def as_task(self) -> Task:
        return Task(name=self.favourites.name, sync=self.sync, update=self.update)
