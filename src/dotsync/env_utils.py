"""
Environment detection helpers.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Optional

from dotsync.constants import (
    LINUX_FONT_DIR_PARTS,
    LOCAL_BIN_DIR_PARTS,
    MACOS_FONT_DIR_PARTS,
)
from dotsync.exceptions import HomeDirectoryError

_GO_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


def home_dir() -> Path:
    """
    Return the current user's home directory.

    Raises:
        HomeDirectoryError: If the home directory cannot be determined.
    """
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise HomeDirectoryError(
            "Unable to determine home directory", details=str(e)
        ) from e
    if str(home) in ("", "~"):
        raise HomeDirectoryError("Unable to determine home directory")
    return home


def is_windows() -> bool:
    return platform.system() == "Windows"


def exe_suffix() -> str:
    return ".exe" if is_windows() else ""


def go_os() -> str:
    """
    Operating system name as Go release tooling spells it ("linux", "darwin", "windows").
    """
    return platform.system().lower()


def go_arch() -> str:
    """
    CPU architecture as Go release tooling spells it ("amd64", "arm64", "386").
    """
    machine = platform.machine().lower()
    return _GO_ARCH_ALIASES.get(machine, machine)


def machine_arch() -> str:
    """
    CPU architecture in the uname style ("x86_64", "arm64").
    """
    machine = platform.machine()
    if machine.lower() == "amd64":
        return "x86_64"
    return machine


def local_bin_dir() -> Path:
    return home_dir().joinpath(*LOCAL_BIN_DIR_PARTS)


def font_dir() -> Optional[Path]:
    """
    Per-user font directory, or None where fonts cannot be installed per user.
    """
    system = platform.system()
    if system == "Darwin":
        return home_dir().joinpath(*MACOS_FONT_DIR_PARTS)
    if system == "Linux":
        return home_dir().joinpath(*LINUX_FONT_DIR_PARTS)
    return None


def gopath() -> Path:
    env_gopath = os.environ.get("GOPATH", "").strip()
    if env_gopath:
        # Only the first entry of a list-style GOPATH receives `go get` output
        return Path(env_gopath.split(os.pathsep)[0])
    return home_dir() / "go"
