"""
Release Installer

Downloads a release asset, unpacks it when it is an archive, and copies the
resulting binary into the per-user bin directory. Each install overwrites the
previous binary in place; a failure part-way leaves earlier steps as they were.
"""

import os
import shutil
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import requests

from dotsync.constants import DEFAULT_CHUNK_SIZE, DEFAULT_REQUEST_TIMEOUT
from dotsync.env_utils import exe_suffix, local_bin_dir
from dotsync.exceptions import ArchiveFormatError, InstallError, NetworkError
from dotsync.log_utils import logger
from dotsync.utils import build_retry_session

from .files import (
    archive_kind,
    extract_archive,
    find_extracted_file,
    remove_path,
    set_executable,
)
from .interfaces import Asset

Pathish = Union[str, Path]


class InstallState(Enum):
    RESOLVED = "resolved"
    DOWNLOADED = "downloaded"
    EXTRACTED = "extracted"
    PLACED = "placed"
    DONE = "done"


def download_release_asset(
    asset: Asset,
    destination: Pathish,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Stream an asset to a local file.

    Parameters:
        asset (Asset): Asset whose download_url is fetched.
        destination (Pathish): File to write; parent directories are created.
        session (Optional[requests.Session]): Session to use; a retrying session is created and closed when omitted.

    Returns:
        Path: The destination path.

    Raises:
        NetworkError: If the request fails or returns an error status after retries.
        InstallError: If the destination cannot be written.
    """
    destination = Path(destination)
    own_session = session is None
    session = session or build_retry_session()
    response = None
    try:
        logger.debug(f"Downloading {asset.download_url} to {destination}")
        start_time = time.time()
        try:
            response = session.get(
                asset.download_url, stream=True, timeout=DEFAULT_REQUEST_TIMEOUT
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(
                f"Unable to download {asset.name}",
                url=asset.download_url,
                details=str(e),
            ) from e

        downloaded_bytes = 0
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "wb") as file:
                for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                    if chunk:
                        file.write(chunk)
                        downloaded_bytes += len(chunk)
        except requests.RequestException as e:
            raise NetworkError(
                f"Download of {asset.name} was interrupted",
                url=asset.download_url,
                details=str(e),
            ) from e
        except OSError as e:
            raise InstallError(
                f"Unable to write {destination}", str(destination), str(e)
            ) from e

        logger.debug(
            "Downloaded %d bytes in %.2fs for %s",
            downloaded_bytes,
            time.time() - start_time,
            asset.download_url,
        )
        return destination
    finally:
        if response is not None:
            response.close()
        if own_session:
            session.close()


def install_release_asset(
    asset: Asset,
    command: str,
    bin_dir: Optional[Pathish] = None,
    archive: bool = False,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Install a release asset as an executable named after `command`.

    Archives (.tar.gz, .tgz, .zip) are extracted to a temporary directory and the
    entry whose basename is the command (plus the platform executable suffix) is
    used; any other asset is treated as the binary itself. The binary is copied
    to `bin_dir` and marked executable. Temporary files are removed whether or
    not the install succeeds.

    Parameters:
        asset (Asset): The selected asset.
        command (str): Executable name without platform suffix.
        bin_dir (Optional[Pathish]): Install directory; defaults to ~/.local/bin.
        archive (bool): Require the asset to be a recognized archive.
        session (Optional[requests.Session]): HTTP session for the download.

    Returns:
        Path: Path of the installed binary.

    Raises:
        ArchiveFormatError: If `archive` is set and the asset suffix is not recognized.
        NetworkError: If the download fails.
        InstallError: If extraction, copying or chmod fails.
    """
    kind = archive_kind(asset.name)
    if archive and kind is None:
        raise ArchiveFormatError(f"Unexpected archive file type: {asset.name}")

    bin_name = f"{command}{exe_suffix()}"
    bin_path = Path(bin_dir) if bin_dir is not None else local_bin_dir()
    bin_path = bin_path / bin_name

    state = InstallState.RESOLVED
    fd, temp_name = tempfile.mkstemp(prefix="dotsync-", suffix=f"-{asset.name}")
    os.close(fd)
    download_path = Path(temp_name)
    extract_dir: Optional[Path] = None
    try:
        download_release_asset(asset, download_path, session=session)
        state = InstallState.DOWNLOADED

        source = download_path
        if kind is not None:
            extract_dir = Path(tempfile.mkdtemp(prefix="dotsync-"))
            extract_archive(download_path, extract_dir, kind)
            found = find_extracted_file(extract_dir, bin_name)
            if found is None:
                raise InstallError(
                    f"{asset.name} does not contain {bin_name}", str(extract_dir)
                )
            source = found
            state = InstallState.EXTRACTED

        try:
            bin_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, bin_path)
            state = InstallState.PLACED
            set_executable(bin_path)
        except OSError as e:
            raise InstallError(
                f"Unable to install {bin_name}", str(bin_path), str(e)
            ) from e

        state = InstallState.DONE
        logger.info(f"Installed {asset.name} as {bin_path}")
        return bin_path
    except Exception:
        logger.debug(f"Install of {asset.name} stopped after state {state.value}")
        raise
    finally:
        remove_path(download_path)
        if extract_dir is not None:
            remove_path(extract_dir)
