"""
Favourites bindings for package managers: pip, cargo, go get and Homebrew.

Each binding is built from the `install`/`uninstall` lists of its configuration
section and queries the live tool for what is installed.
"""

import json
import os
import re
import shutil
from abc import abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from dotsync.constants import BREW_INSTALL_DIRS
from dotsync.download.files import remove_path
from dotsync.env_utils import exe_suffix, gopath, home_dir
from dotsync.exceptions import CommandError
from dotsync.favourites import Favourites
from dotsync.log_utils import logger
from dotsync.process import command_output, run, spawn_wait, succeeds

_CARGO_INSTALLED_RX = re.compile(
    r"^(?P<name>\S+)\s+v(?P<version>[^\s:]+)(?:\s+\(.*\))?:\s*$"
)


def _names(section: Optional[Mapping[str, Any]], key: str) -> List[str]:
    if not section:
        return []
    values = section.get(key) or []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if str(v).strip()]


class PackageManagerFavourites(Favourites):
    """Favourites backed by `install` and `uninstall` lists from configuration."""

    name = "package-manager"

    def __init__(
        self,
        install: Optional[Sequence[str]] = None,
        uninstall: Optional[Sequence[str]] = None,
    ):
        self.install = list(install or [])
        self.uninstall = list(uninstall or [])

    @classmethod
    def from_config(cls, section: Optional[Mapping[str, Any]]):
        return cls(_names(section, "install"), _names(section, "uninstall"))

    def wanted(self) -> List[str]:
        return list(self.install)

    def unwanted(self) -> List[str]:
        return list(self.uninstall)

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool is installed."""

    @abstractmethod
    def upgrade(self) -> None:
        """Upgrade everything currently found."""


# =============================================================================
# pip
# =============================================================================

PIP_EXECUTABLES = ("pip", "pip3")


def parse_pip_list(output: str) -> List[Dict[str, str]]:
    """
    Parse `pip list --format=json` output.

    Returns:
        List[Dict[str, str]]: Entries with "name" and "version"; empty on malformed output.
    """
    try:
        data = json.loads(output)
    except (ValueError, TypeError):
        return []
    if not isinstance(data, list):
        return []
    return [
        {"name": str(p["name"]), "version": str(p.get("version", ""))}
        for p in data
        if isinstance(p, dict) and "name" in p
    ]


def pip_executable() -> Optional[str]:
    """First pip on PATH that is not bound to Python 2."""
    for pip in PIP_EXECUTABLES:
        found = shutil.which(pip)
        if not found:
            continue
        try:
            first_line = command_output(found, ["--version"]).strip().splitlines()
        except CommandError:
            continue
        line = first_line[0] if first_line else ""
        if "python2." not in line and "(python 2." not in line:
            return found
    return None


class PipFavourites(PackageManagerFavourites):
    name = "pip"

    def is_available(self) -> bool:
        return pip_executable() is not None

    def _pip(self) -> str:
        pip = pip_executable()
        if pip is None:
            raise CommandError("pip is not installed", command="pip")
        return pip

    def found(self) -> List[str]:
        pip = pip_executable()
        if pip is None:
            return []
        result = run(pip, ["list", "--format=json", "--user"])
        return [p["name"] for p in parse_pip_list(result.stdout or "")]

    def fill(self) -> None:
        missing = self.missing()
        if missing:
            spawn_wait(self._pip(), ["install", "--user", *missing])

    def cull(self) -> None:
        surplus = self.surplus()
        if surplus:
            spawn_wait(self._pip(), ["uninstall", "--yes", *surplus])

    def upgrade(self) -> None:
        found = self.found()
        if found:
            spawn_wait(self._pip(), ["install", "--upgrade", "--user", *found])


# =============================================================================
# cargo
# =============================================================================


def cargo_executable() -> Path:
    cargo_home = os.environ.get("CARGO_HOME", "").strip()
    base = Path(cargo_home) if cargo_home else home_dir() / ".cargo"
    candidate = base / "bin" / f"cargo{exe_suffix()}"
    if candidate.is_file():
        return candidate
    which = shutil.which("cargo")
    return Path(which) if which else candidate


def parse_cargo_installed(output: str) -> Dict[str, str]:
    """
    Parse `cargo install --list` output into a crate -> version mapping.
    """
    crates: Dict[str, str] = {}
    for line in output.splitlines():
        match = _CARGO_INSTALLED_RX.match(line)
        if match:
            crates[match.group("name")] = match.group("version")
    return crates


class CargoFavourites(PackageManagerFavourites):
    name = "cargo"

    def is_available(self) -> bool:
        return succeeds(cargo_executable(), ["--version"])

    def found_versions(self) -> Dict[str, str]:
        if not self.is_available():
            return {}
        return parse_cargo_installed(
            command_output(cargo_executable(), ["install", "--list"])
        )

    def found(self) -> List[str]:
        return list(self.found_versions())

    def fill(self) -> None:
        missing = self.missing()
        if missing:
            spawn_wait(cargo_executable(), ["install", *missing])

    def cull(self) -> None:
        surplus = self.surplus()
        if surplus:
            spawn_wait(cargo_executable(), ["uninstall", *surplus])

    def upgrade(self) -> None:
        found = self.found()
        if found:
            spawn_wait(cargo_executable(), ["install", "--force", *found])


# =============================================================================
# go get
# =============================================================================


def _go_package_paths(pkg: str) -> Optional[tuple]:
    leaf = Path(pkg).name
    if not leaf:
        return None
    root = gopath()
    return root / "bin" / f"{leaf}{exe_suffix()}", root / "src" / pkg


class GoGetFavourites(PackageManagerFavourites):
    """
    Go packages installed with `go get`.

    Go has no package listing, so only names named in configuration are probed:
    a package counts as found when both its binary and its source tree exist.
    """

    name = "goget"

    def is_available(self) -> bool:
        return succeeds("go", ["version"])

    @staticmethod
    def package_found(pkg: str) -> bool:
        paths = _go_package_paths(pkg)
        if paths is None:
            return False
        bin_path, src_path = paths
        return bin_path.is_file() and src_path.is_dir()

    def found(self) -> List[str]:
        results = [pkg for pkg in self.wanted() if self.package_found(pkg)]
        results.extend(pkg for pkg in self.unwanted() if self.package_found(pkg))
        return results

    def fill(self) -> None:
        for pkg in self.missing():
            spawn_wait("go", ["get", "-u", "-v", pkg])

    def cull(self) -> None:
        for pkg in self.surplus():
            paths = _go_package_paths(pkg)
            if paths is None:
                continue
            bin_path, src_path = paths
            logger.info(f"Removing Go package {pkg}")
            remove_path(src_path)
            remove_path(bin_path)

    def upgrade(self) -> None:
        found = self.found()
        if found:
            spawn_wait("go", ["get", "-u", *found])


# =============================================================================
# Homebrew
# =============================================================================


def brew_executable() -> Optional[str]:
    found = shutil.which("brew")
    if found:
        return found
    home = str(home_dir())
    search_path = os.pathsep.join(
        os.path.join(d.replace("~", home, 1) if d.startswith("~/") else d, "bin")
        for d in BREW_INSTALL_DIRS
    )
    return shutil.which("brew", path=search_path)


class BrewFavourites(PackageManagerFavourites):
    name = "brew"

    def is_available(self) -> bool:
        brew = brew_executable()
        return brew is not None and succeeds(brew, ["--version"])

    def _brew(self) -> str:
        brew = brew_executable()
        if brew is None:
            raise CommandError("brew is not installed", command="brew")
        return brew

    def found(self) -> List[str]:
        brew = brew_executable()
        if brew is None:
            return []
        result = run(brew, ["list", "-1"])
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def fill(self) -> None:
        missing = self.missing()
        if missing:
            spawn_wait(self._brew(), ["install", *missing])

    def cull(self) -> None:
        surplus = self.surplus()
        if surplus:
            spawn_wait(self._brew(), ["uninstall", *surplus])

    def upgrade(self) -> None:
        spawn_wait(self._brew(), ["upgrade"])


PACKAGE_MANAGERS = {
    "pip": PipFavourites,
    "cargo": CargoFavourites,
    "goget": GoGetFavourites,
    "brew": BrewFavourites,
}
