# src/dotsync/cli.py

import argparse
import importlib.metadata
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs

from dotsync import log_utils
from dotsync.config import get_bin_dir, get_skip_list, load_config
from dotsync.constants import APP_NAME
from dotsync.download.cache import HttpCache
from dotsync.download.github_source import GithubReleaseResolver
from dotsync.exceptions import ConfigFileError, HomeDirectoryError
from dotsync.registry import build_tasks, list_task_names
from dotsync.tasks import MODE_ALL, MODE_SYNC, MODE_UPDATE, run_tasks


def get_version() -> str:
    try:
        return importlib.metadata.version(APP_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _load_config_or_defaults(config_path: Optional[str]) -> Dict[str, Any]:
    """
    Load the configuration file, falling back to an empty configuration.

    Returns:
        Dict[str, Any]: The parsed configuration, or {} when it could not be loaded.
    """
    try:
        return load_config(config_path)
    except ConfigFileError as e:
        log_utils.logger.error(f"Failed to load configuration: {e}")
        log_utils.logger.info("Continuing with default settings.")
        return {}


def _apply_logging(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    level = args.log_level or config.get("LOG_LEVEL")
    if level:
        log_utils.set_log_level(str(level))
    if args.log_file:
        log_utils.add_file_logging(
            Path(platformdirs.user_log_dir(APP_NAME)), level or "INFO"
        )


def _run_mode(mode: str, args: argparse.Namespace, config: Dict[str, Any]) -> int:
    unknown = [name for name in args.only if name not in list_task_names()]
    if unknown:
        log_utils.logger.warning(f"Unknown task names ignored: {', '.join(unknown)}")

    resolver = GithubReleaseResolver(
        cache=HttpCache(),
        github_token=config.get("GITHUB_TOKEN"),
        allow_env_token=bool(config.get("ALLOW_ENV_TOKEN", True)),
    )
    try:
        tasks = build_tasks(
            config,
            resolver=resolver,
            bin_dir=get_bin_dir(config),
            skip=get_skip_list(config),
            only=args.only,
        )
        results = run_tasks(tasks, mode)
    except HomeDirectoryError as e:
        log_utils.logger.error(f"Cannot continue: {e}")
        return 1

    failed = [
        name
        for name, steps in results
        if any(status is None for _step, status in steps)
    ]
    if failed:
        log_utils.logger.warning(f"Steps failed for: {', '.join(failed)}")
    log_utils.logger.info(f"Processed {len(results)} task(s).")
    return 0


def _clear_cache() -> int:
    removed = HttpCache().clear()
    log_utils.logger.info(f"Removed {removed} cached file(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="dotsync - keep tools, fonts and packages in a declared state",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (DEBUG, INFO, WARNING, ERROR); overrides LOG_LEVEL in the config",
    )
    parser.add_argument(
        "--log-file",
        action="store_true",
        help="Also write a rotating log file to the user log directory",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Configuration file to use instead of the default location",
    )
    subparsers = parser.add_subparsers(dest="command")

    for mode, help_text in (
        (MODE_ALL, "Install what is missing, then update what is present"),
        (MODE_SYNC, "Install what is missing"),
        (MODE_UPDATE, "Update what is present"),
    ):
        mode_parser = subparsers.add_parser(mode, help=help_text)
        mode_parser.add_argument(
            "--only",
            action="append",
            default=[],
            metavar="NAME",
            help="Only run the named task (can be passed multiple times)",
        )

    # Command to manage the HTTP cache
    cache_parser = subparsers.add_parser(
        "cache",
        help="Manage cached data",
        description="Manage cached GitHub API responses.",
    )
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command", required=True)
    cache_subparsers.add_parser("clear", help="Delete every cached response")

    subparsers.add_parser("version", help="Display dotsync version")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the dotsync command-line interface.

    Dispatches the `all`, `sync`, `update`, `cache clear` and `version`
    subcommands. With no subcommand, `all` runs.

    Returns:
        int: Process exit status; 1 only when the home directory is unavailable.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"{APP_NAME} {get_version()}")
        return 0

    config = _load_config_or_defaults(args.config)
    _apply_logging(args, config)

    if args.command == "cache":
        return _clear_cache()

    mode = args.command or MODE_ALL
    if not hasattr(args, "only"):
        args.only = []
    return _run_mode(mode, args, config)


if __name__ == "__main__":
    sys.exit(main())
