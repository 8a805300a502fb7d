"""Tests for downloading and installing release assets."""

import io
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile

import pytest
import requests

from dotsync.download.installer import download_release_asset, install_release_asset
from dotsync.download.interfaces import Asset
from dotsync.exceptions import ArchiveFormatError, InstallError, NetworkError

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]


@pytest.fixture
def fixtures_dir(tmp_path):
    path = tmp_path / "fixtures"
    path.mkdir()
    return path


@pytest.fixture
def temp_root(tmp_path, monkeypatch):
    """Route mkstemp/mkdtemp into a directory the test can inspect."""
    root = tmp_path / "tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


def _serve(mocker, source_file):
    def _download(asset, destination, session=None):
        shutil.copyfile(source_file, destination)
        return destination

    return mocker.patch(
        "dotsync.download.installer.download_release_asset", side_effect=_download
    )


def test_installs_plain_binary(mocker, fixtures_dir, tmp_path, temp_root):
    binary = fixtures_dir / "jq-linux64"
    binary.write_bytes(b"\x7fELF jq")
    _serve(mocker, binary)
    mocker.patch("dotsync.download.installer.exe_suffix", return_value="")

    installed = install_release_asset(
        Asset("jq-linux64", "https://example.com/jq"), "jq", bin_dir=tmp_path / "bin"
    )

    assert installed == tmp_path / "bin" / "jq"
    assert installed.read_bytes() == b"\x7fELF jq"
    assert os.stat(installed).st_mode & stat.S_IXUSR
    assert list(temp_root.iterdir()) == []


def test_installs_from_tar_gz(mocker, fixtures_dir, tmp_path, temp_root):
    archive = fixtures_dir / "vale_2.0.0_Linux_64-bit.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        for name, data in {"vale": b"vale-bin", "README.md": b"docs"}.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    _serve(mocker, archive)
    mocker.patch("dotsync.download.installer.exe_suffix", return_value="")

    installed = install_release_asset(
        Asset(archive.name, "https://example.com/vale"),
        "vale",
        bin_dir=tmp_path / "bin",
        archive=True,
    )

    assert installed.read_bytes() == b"vale-bin"
    assert list(temp_root.iterdir()) == []


def test_installs_from_zip(mocker, fixtures_dir, tmp_path, temp_root):
    archive = fixtures_dir / "git-sizer-1.3.0-linux-amd64.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("git-sizer", b"sizer")
        zf.writestr("LICENSE", b"mit")
    _serve(mocker, archive)
    mocker.patch("dotsync.download.installer.exe_suffix", return_value="")

    installed = install_release_asset(
        Asset(archive.name, "https://example.com/sizer"),
        "git-sizer",
        bin_dir=tmp_path / "bin",
        archive=True,
    )

    assert installed == tmp_path / "bin" / "git-sizer"
    assert installed.read_bytes() == b"sizer"


def test_overwrites_existing_binary(mocker, fixtures_dir, tmp_path, temp_root):
    binary = fixtures_dir / "yq_linux_amd64"
    binary.write_bytes(b"new")
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "yq").write_bytes(b"old")
    _serve(mocker, binary)
    mocker.patch("dotsync.download.installer.exe_suffix", return_value="")

    installed = install_release_asset(
        Asset(binary.name, "https://example.com/yq"), "yq", bin_dir=tmp_path / "bin"
    )
    assert installed.read_bytes() == b"new"


def test_unknown_archive_suffix(mocker, tmp_path, temp_root):
    download = mocker.patch("dotsync.download.installer.download_release_asset")
    with pytest.raises(ArchiveFormatError):
        install_release_asset(
            Asset("vale.7z", "https://example.com/vale.7z"),
            "vale",
            bin_dir=tmp_path / "bin",
            archive=True,
        )
    download.assert_not_called()


def test_archive_without_entry_cleans_up(mocker, fixtures_dir, tmp_path, temp_root):
    archive = fixtures_dir / "tool.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("something-else", b"x")
    _serve(mocker, archive)
    mocker.patch("dotsync.download.installer.exe_suffix", return_value="")

    with pytest.raises(InstallError):
        install_release_asset(
            Asset("tool.zip", "https://example.com/tool.zip"),
            "tool",
            bin_dir=tmp_path / "bin",
            archive=True,
        )

    assert not (tmp_path / "bin" / "tool").exists()
    assert list(temp_root.iterdir()) == []


def test_download_failure_cleans_up(mocker, tmp_path, temp_root):
    mocker.patch(
        "dotsync.download.installer.download_release_asset",
        side_effect=NetworkError("boom", url="https://example.com/x"),
    )
    with pytest.raises(NetworkError):
        install_release_asset(
            Asset("x", "https://example.com/x"), "x", bin_dir=tmp_path / "bin"
        )
    assert list(temp_root.iterdir()) == []


class TestDownloadReleaseAsset:
    def test_streams_to_destination(self, mocker, tmp_path):
        response = mocker.MagicMock()
        response.iter_content.return_value = [b"abc", b"", b"def"]
        session = mocker.MagicMock()
        session.get.return_value = response

        destination = download_release_asset(
            Asset("tool", "https://example.com/tool"),
            tmp_path / "sub" / "tool",
            session=session,
        )

        assert destination.read_bytes() == b"abcdef"
        response.close.assert_called_once()
        session.close.assert_not_called()

    def test_http_error_becomes_network_error(self, mocker, tmp_path):
        response = mocker.MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404")
        session = mocker.MagicMock()
        session.get.return_value = response

        with pytest.raises(NetworkError):
            download_release_asset(
                Asset("tool", "https://example.com/tool"),
                tmp_path / "tool",
                session=session,
            )
        response.close.assert_called_once()

    def test_closes_own_session(self, mocker, tmp_path):
        session = mocker.MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        mocker.patch(
            "dotsync.download.installer.build_retry_session", return_value=session
        )

        with pytest.raises(NetworkError):
            download_release_asset(
                Asset("tool", "https://example.com/tool"), tmp_path / "tool"
            )
        session.close.assert_called_once()
