"""
Thin wrappers around subprocess used by tasks and package-manager bindings.

Calls block until the child exits; there is no timeout.
"""

import os
import subprocess
from typing import Sequence, Union

from dotsync.exceptions import CommandError
from dotsync.log_utils import logger

Command = Union[str, "os.PathLike[str]"]


def run(command: Command, args: Sequence[str] = ()) -> subprocess.CompletedProcess:
    """
    Run a command to completion and capture its output as text.

    Output is decoded as UTF-8; undecodable bytes become U+FFFD.

    Returns:
        subprocess.CompletedProcess: The finished process; a non-zero exit status is not an error here.

    Raises:
        CommandError: If the executable cannot be started.
    """
    argv = [os.fspath(command), *args]
    logger.debug("Running: %s", " ".join(argv))
    try:
        return subprocess.run(
            argv,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except (FileNotFoundError, PermissionError, OSError) as e:
        raise CommandError(
            f"Unable to run {argv[0]}", command=argv[0], details=str(e)
        ) from e


def command_output(command: Command, args: Sequence[str] = ()) -> str:
    """
    Run a command and return its trimmed stdout and stderr joined by a newline.

    Raises:
        CommandError: If the executable cannot be started.
    """
    result = run(command, args)
    return f"{(result.stdout or '').strip()}\n{(result.stderr or '').strip()}"


def succeeds(command: Command, args: Sequence[str] = ()) -> bool:
    """Whether a command can be started and exits with status 0."""
    try:
        return run(command, args).returncode == 0
    except CommandError:
        return False


def spawn_wait(command: Command, args: Sequence[str] = ()) -> None:
    """
    Run a command with inherited stdio so the user sees its progress.

    Raises:
        CommandError: If the executable cannot be started or exits non-zero.
    """
    argv = [os.fspath(command), *args]
    logger.info("Running: %s", " ".join(argv))
    try:
        result = subprocess.run(argv, check=False)
    except (FileNotFoundError, PermissionError, OSError) as e:
        raise CommandError(
            f"Unable to run {argv[0]}", command=argv[0], details=str(e)
        ) from e
    if result.returncode != 0:
        raise CommandError(
            f"{argv[0]} exited with status {result.returncode}",
            command=argv[0],
            returncode=result.returncode,
        )
