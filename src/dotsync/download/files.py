"""
File and archive helpers for the install pipeline.
"""

import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path
from typing import Callable, List, Optional, Union

from dotsync.constants import TAR_GZ_EXTENSIONS, ZIP_EXTENSION
from dotsync.exceptions import ArchiveFormatError, InstallError
from dotsync.log_utils import logger

Pathish = Union[str, Path]
NameFilter = Callable[[str], bool]

ARCHIVE_TAR_GZ = "tar.gz"
ARCHIVE_ZIP = "zip"


def archive_kind(name: str) -> Optional[str]:
    """
    Classify an asset name by archive suffix.

    Returns:
        Optional[str]: "tar.gz", "zip", or None when the name is not a recognized archive.
    """
    lowered = name.lower()
    if lowered.endswith(TAR_GZ_EXTENSIONS):
        return ARCHIVE_TAR_GZ
    if lowered.endswith(ZIP_EXTENSION):
        return ARCHIVE_ZIP
    return None


def _is_within_base(real_base_dir: str, candidate: str) -> bool:
    """
    Determine whether the candidate path resides within the given base directory.
    """
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        return False


def _is_safe_archive_member(member_name: str) -> bool:
    """
    Determine whether an archive member name is safe to extract.

    Returns:
        `True` if the member name contains no absolute paths, parent-directory references, or null bytes, `False` otherwise.
    """
    if not member_name or member_name.startswith("/") or member_name.startswith("\\"):
        return False
    normalized = os.path.normpath(member_name)
    if os.path.isabs(normalized):
        return False
    if normalized == "..":
        return False
    if normalized.startswith(f"..{os.sep}"):
        return False
    if os.altsep and normalized.startswith(f"..{os.altsep}"):
        return False
    if "\x00" in normalized:
        return False
    return True


def safe_extract_path(extract_dir: Pathish, file_path: str) -> str:
    """
    Resolve a safe absolute extraction path and prevent directory traversal.

    Raises:
        ValueError: If the resolved path is outside extract_dir.
    """
    real_extract_dir = os.path.realpath(extract_dir)
    prospective_path = os.path.join(real_extract_dir, file_path)
    normalized_path = os.path.realpath(prospective_path)

    if not _is_within_base(real_extract_dir, normalized_path):
        raise ValueError(
            f"Unsafe extraction path '{file_path}' is outside base '{extract_dir}'"
        )

    return normalized_path


def _destination_for(
    target_dir: Path, member_name: str, flatten: bool
) -> Optional[str]:
    if not _is_safe_archive_member(member_name):
        logger.warning(
            "Skipping unsafe archive member %s (possible traversal)", member_name
        )
        return None
    relative = os.path.basename(member_name) if flatten else member_name
    try:
        return safe_extract_path(target_dir, relative)
    except ValueError as e:
        logger.warning(f"Skipping unsafe extraction path: {e}")
        return None


def _extract_tar_gz(
    archive_path: Path,
    target_dir: Path,
    name_filter: Optional[NameFilter],
    flatten: bool,
) -> List[Path]:
    extracted: List[Path] = []
    with tarfile.open(archive_path, "r:gz") as tar:
        for member in tar.getmembers():
            if not member.isfile():
                continue
            base_name = os.path.basename(member.name)
            if name_filter is not None and not name_filter(base_name):
                continue
            destination = _destination_for(target_dir, member.name, flatten)
            if destination is None:
                continue
            source = tar.extractfile(member)
            if source is None:
                continue
            os.makedirs(os.path.dirname(destination), exist_ok=True)
            with source, open(destination, "wb") as target:
                shutil.copyfileobj(source, target)
            extracted.append(Path(destination))
            logger.debug(f"Extracted {member.name} to {destination}")
    return extracted


def _extract_zip(
    archive_path: Path,
    target_dir: Path,
    name_filter: Optional[NameFilter],
    flatten: bool,
) -> List[Path]:
    extracted: List[Path] = []
    with zipfile.ZipFile(archive_path, "r") as zip_ref:
        for file_info in zip_ref.infolist():
            if file_info.is_dir():
                continue
            base_name = os.path.basename(file_info.filename)
            if name_filter is not None and not name_filter(base_name):
                continue
            destination = _destination_for(target_dir, file_info.filename, flatten)
            if destination is None:
                continue
            os.makedirs(os.path.dirname(destination), exist_ok=True)
            with zip_ref.open(file_info) as source, open(destination, "wb") as target:
                shutil.copyfileobj(source, target)
            extracted.append(Path(destination))
            logger.debug(f"Extracted {file_info.filename} to {destination}")
    return extracted


def extract_archive(
    archive_path: Pathish,
    target_dir: Pathish,
    kind: Optional[str],
    name_filter: Optional[NameFilter] = None,
    flatten: bool = False,
) -> List[Path]:
    """
    Extract regular files from a gzip+tar or zip archive.

    Parameters:
        archive_path: Archive on disk.
        target_dir: Directory to extract into; created if missing.
        kind: "tar.gz" or "zip", as returned by archive_kind().
        name_filter: Optional predicate on each member's basename; members failing it are skipped.
        flatten: Write every member directly into target_dir using only its basename.

    Returns:
        List[Path]: Paths of the extracted files.

    Raises:
        ArchiveFormatError: If `kind` is not a supported archive type.
        InstallError: If the archive is corrupt or cannot be written out.
    """
    archive_path = Path(archive_path)
    target = Path(target_dir)
    try:
        target.mkdir(parents=True, exist_ok=True)
        if kind == ARCHIVE_TAR_GZ:
            return _extract_tar_gz(archive_path, target, name_filter, flatten)
        if kind == ARCHIVE_ZIP:
            return _extract_zip(archive_path, target, name_filter, flatten)
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
        raise InstallError(
            f"Error extracting archive {archive_path}", str(archive_path), str(e)
        ) from e
    raise ArchiveFormatError(
        f"Unsupported archive type: {kind}", path=str(archive_path)
    )


def find_extracted_file(root: Pathish, file_name: str) -> Optional[Path]:
    """
    Locate a file by exact basename under an extraction directory.

    Shallower matches win; ties break alphabetically so the result is stable.
    """
    matches = [p for p in Path(root).rglob(file_name) if p.is_file()]
    if not matches:
        return None
    matches.sort(key=lambda p: (len(p.parts), str(p)))
    return matches[0]


def set_executable(path: Pathish) -> None:
    """
    Add execute permission for everyone who can read the file.

    Raises:
        OSError: If the mode cannot be read or changed.
    """
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def remove_path(path: Pathish) -> None:
    """
    Remove a file or directory tree if it exists; failures are logged, not raised.
    """
    p = Path(path)
    try:
        if p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
        elif p.exists() or p.is_symlink():
            p.unlink()
    except OSError as e:
        logger.debug(f"Error removing {p}: {e}")
