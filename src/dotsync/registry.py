"""
Built-in task registry.

Tools and fonts are plain configuration records; the order below is the order
tasks run in.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from dotsync.constants import PACKAGE_MANAGER_SECTIONS, STATUS_UNEXPECTED_VERSION
from dotsync.download.assets import name_equals, name_matches
from dotsync.download.github_source import GithubReleaseResolver
from dotsync.download.interfaces import Asset
from dotsync.env_utils import exe_suffix, go_arch, go_os, is_windows, machine_arch
from dotsync.package_managers import PACKAGE_MANAGERS
from dotsync.tasks import (
    FavouritesTask,
    FontSource,
    FontTask,
    ReleaseTask,
    ReleaseTool,
    Task,
)

_SEMVER_RX = re.compile(r"(\d+\.\d+\.\d+)")


# -----------------------------------------------------------------------------
# Version trimmers
# -----------------------------------------------------------------------------


def first_semver(output: str) -> str:
    match = _SEMVER_RX.search(output.strip())
    return match.group(1) if match else STATUS_UNEXPECTED_VERSION


def after_first_colon(output: str) -> str:
    """"minikube version: v0.28.2" -> "v0.28.2"."""
    lines = output.splitlines()
    first = lines[0] if lines else ""
    parts = first.split(":", 1)
    if len(parts) == 2:
        return parts[1].strip()
    return STATUS_UNEXPECTED_VERSION


def labelled_version(output: str) -> str:
    """Value of the first "version: ..." line, as printed by `dep version`."""
    for line in output.splitlines():
        parts = line.split(":", 1)
        if len(parts) == 2 and parts[0].strip() == "version":
            return parts[1].strip()
    return STATUS_UNEXPECTED_VERSION


# -----------------------------------------------------------------------------
# Asset filters
# -----------------------------------------------------------------------------


def _go_style_name(template: str):
    """Filter matching `template` formatted with Go-style os/arch plus the exe suffix."""

    def _matches(asset: Asset) -> bool:
        name = template.format(os=go_os(), arch=go_arch()) + exe_suffix()
        return name_equals(name)(asset)

    return _matches


def _regex_name(template: str):
    def _matches(asset: Asset) -> bool:
        pattern = template.format(os=go_os(), arch=go_arch())
        return name_matches(pattern)(asset)

    return _matches


def jq_os_arch() -> str:
    # jq 1.5 and 1.6 naming
    os_name = go_os()
    arch = machine_arch()
    if os_name == "darwin" and arch == "x86_64":
        return "osx-amd64"
    os_part = {"darwin": "darwin", "windows": "win"}.get(os_name, os_name)
    arch_part = {"x86_64": "64", "x86": "32", "i386": "32", "i686": "32"}.get(
        arch, arch
    )
    return f"{os_part}{arch_part}"


def _jq_filter(asset: Asset) -> bool:
    return name_equals(f"jq-{jq_os_arch()}{exe_suffix()}")(asset)


def _hadolint_filter(asset: Asset) -> bool:
    name = f"hadolint-{go_os().title()}-{machine_arch()}{exe_suffix()}"
    return name_equals(name)(asset)


def _vale_filter(asset: Asset) -> bool:
    os_name = {"linux": "Linux", "darwin": "macOS", "windows": "Windows"}.get(
        go_os(), go_os()
    )
    arch = machine_arch()
    arch = "64-bit" if arch == "x86_64" else arch
    extension = r"\.zip" if is_windows() else r"\.tar\.gz"
    pattern = rf"^vale_.*_{re.escape(os_name)}_{re.escape(arch)}{extension}$"
    return name_matches(pattern)(asset)


RELEASE_TOOLS: Sequence[ReleaseTool] = (
    ReleaseTool(
        name="dep",
        command="dep",
        owner="golang",
        repo="dep",
        asset_filter=_go_style_name("dep-{os}-{arch}"),
        version_arg="version",
        trim_version=labelled_version,
    ),
    ReleaseTool(
        name="gitleaks",
        command="gitleaks",
        owner="zricethezav",
        repo="gitleaks",
        asset_filter=_go_style_name("gitleaks-{os}-{arch}"),
    ),
    ReleaseTool(
        name="gitsizer",
        command="git-sizer",
        owner="github",
        repo="git-sizer",
        asset_filter=_regex_name(r"^git-sizer-.*-{os}-{arch}\.zip$"),
        archive=True,
    ),
    ReleaseTool(
        name="hadolint",
        command="hadolint",
        owner="hadolint",
        repo="hadolint",
        asset_filter=_hadolint_filter,
        trim_version=first_semver,
    ),
    ReleaseTool(
        name="jq",
        command="jq",
        owner="stedolan",
        repo="jq",
        asset_filter=_jq_filter,
    ),
    ReleaseTool(
        name="minikube",
        command="minikube",
        owner="kubernetes",
        repo="minikube",
        asset_filter=_go_style_name("minikube-{os}-{arch}"),
        version_arg="version",
        trim_version=after_first_colon,
    ),
    ReleaseTool(
        name="shfmt",
        command="shfmt",
        owner="mvdan",
        repo="sh",
        asset_filter=_regex_name(r"^shfmt_.*_{os}_{arch}(\.exe)?$"),
    ),
    ReleaseTool(
        name="skaffold",
        command="skaffold",
        owner="GoogleCloudPlatform",
        repo="skaffold",
        asset_filter=_go_style_name("skaffold-{os}-{arch}"),
        version_arg="version",
    ),
    ReleaseTool(
        name="vale",
        command="vale",
        owner="errata-ai",
        repo="vale",
        asset_filter=_vale_filter,
        archive=True,
    ),
    ReleaseTool(
        name="yq",
        command="yq",
        owner="mikefarah",
        repo="yq",
        asset_filter=_go_style_name("yq_{os}_{arch}"),
    ),
)

FONT_SOURCES: Sequence[FontSource] = (
    FontSource(
        "cascadiacode", "microsoft", "cascadia-code", r"^Cascadia\.ttf$", ".ttf"
    ),
    FontSource("firacode", "tonsky", "FiraCode", r"^FiraCode_.*\.zip$", ".otf"),
    FontSource("hack", "source-foundry", "Hack", r"^Hack-.*-ttf\.zip$", ".ttf"),
    FontSource("hasklig", "i-tu", "Hasklig", r"^Hasklig-.*\.zip$", ".otf"),
    FontSource("inter", "rsms", "inter", r"^Inter-.*\.zip$", ".otf"),
    FontSource(
        "overpass", "RedHatBrand", "Overpass", r"^overpass-desktop-fonts\.zip$", ".otf"
    ),
    FontSource("plex", "IBM", "plex", r"^OpenType\.zip$", ".otf"),
    FontSource(
        "publicsans", "uswds", "public-sans", r"^public-sans-.*\.zip$", ".otf"
    ),
    FontSource(
        "sourcesanspro",
        "adobe-fonts",
        "source-sans-pro",
        r"^source-sans-pro-.*\.zip$",
        ".otf",
    ),
    FontSource(
        "sourceserifpro",
        "adobe-fonts",
        "source-serif-pro",
        r"^source-serif-pro-.*\.zip$",
        ".otf",
    ),
)


def list_task_names() -> List[str]:
    return (
        [tool.name for tool in RELEASE_TOOLS]
        + [font.name for font in FONT_SOURCES]
        + list(PACKAGE_MANAGER_SECTIONS)
    )


def build_tasks(
    config: Optional[Dict[str, Any]] = None,
    resolver: Optional[GithubReleaseResolver] = None,
    bin_dir: Optional[Union[str, Path]] = None,
    skip: Sequence[str] = (),
    only: Sequence[str] = (),
) -> List[Task]:
    """
    Build the ordered list of tasks for a run.

    Parameters:
        config: Parsed configuration; package-manager sections supply favourites.
        resolver: Release resolver shared by every GitHub-backed task.
        bin_dir: Install directory for release tools (defaults to ~/.local/bin).
        skip: Task names to leave out.
        only: When non-empty, run just these task names.

    Returns:
        List[Task]: Release tools, then fonts, then package managers.
    """
    config = config or {}
    resolver = resolver or GithubReleaseResolver(
        github_token=config.get("GITHUB_TOKEN"),
        allow_env_token=config.get("ALLOW_ENV_TOKEN", True),
    )

    tasks: List[Task] = [
        ReleaseTask(tool, resolver, bin_dir).as_task() for tool in RELEASE_TOOLS
    ]
    tasks.extend(FontTask(font, resolver).as_task() for font in FONT_SOURCES)
    for section in PACKAGE_MANAGER_SECTIONS:
        favourites = PACKAGE_MANAGERS[section].from_config(config.get(section))
        tasks.append(FavouritesTask(favourites).as_task())

    skipped = set(skip)
    selected = set(only)
    return [
        task
        for task in tasks
        if task.name not in skipped and (not selected or task.name in selected)
    ]
