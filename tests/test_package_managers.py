"""Tests for the pip, cargo, go get and Homebrew favourites bindings."""

import json
import subprocess

import pytest

from dotsync.download.interfaces import Status
from dotsync.exceptions import CommandError
from dotsync.package_managers import (
    PACKAGE_MANAGERS,
    BrewFavourites,
    CargoFavourites,
    GoGetFavourites,
    PipFavourites,
    parse_cargo_installed,
    parse_pip_list,
    pip_executable,
)

pytestmark = [pytest.mark.unit, pytest.mark.favourites]


def _completed(stdout="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr="")


def test_registry_has_every_section():
    assert list(PACKAGE_MANAGERS) == ["pip", "cargo", "goget", "brew"]


def test_from_config_reads_lists():
    favs = PipFavourites.from_config({"install": ["black", " "], "uninstall": "pylint"})
    assert favs.wanted() == ["black"]
    assert favs.unwanted() == ["pylint"]
    assert PipFavourites.from_config(None).wanted() == []


class TestPip:
    def test_parse_pip_list(self):
        output = json.dumps(
            [{"name": "black", "version": "23.1"}, {"version": "1"}, "junk"]
        )
        assert parse_pip_list(output) == [{"name": "black", "version": "23.1"}]
        assert parse_pip_list("not json") == []
        assert parse_pip_list("{}") == []

    def test_pip_executable_skips_python2(self, mocker):
        mocker.patch(
            "dotsync.package_managers.shutil.which",
            side_effect=lambda name: f"/usr/bin/{name}",
        )
        mocker.patch(
            "dotsync.package_managers.command_output",
            side_effect=[
                "pip 20.3.4 from /usr/lib/python2.7/site-packages/pip (python 2.7)\n",
                "pip 23.0 from /usr/lib/python3/dist-packages/pip (python 3.11)\n",
            ],
        )
        assert pip_executable() == "/usr/bin/pip3"

    def test_fill_installs_missing(self, mocker):
        mocker.patch("dotsync.package_managers.pip_executable", return_value="pip")
        installed = [{"name": "black", "version": "1"}]
        mocker.patch(
            "dotsync.package_managers.run",
            side_effect=lambda *_a, **_k: _completed(json.dumps(installed)),
        )

        def _spawn(command, args):
            installed.extend({"name": n, "version": "1"} for n in args[2:])

        spawn = mocker.patch("dotsync.package_managers.spawn_wait", side_effect=_spawn)

        favs = PipFavourites(install=["black", "httpie"])
        assert favs.fill_and_status() == Status.changed("", "httpie")
        spawn.assert_called_once_with("pip", ["install", "--user", "httpie"])

    def test_cull_uninstalls_surplus(self, mocker):
        mocker.patch("dotsync.package_managers.pip_executable", return_value="pip")
        mocker.patch(
            "dotsync.package_managers.run",
            return_value=_completed(json.dumps([{"name": "pylint", "version": "2"}])),
        )
        spawn = mocker.patch("dotsync.package_managers.spawn_wait")

        PipFavourites(uninstall=["pylint", "flake8"]).cull()
        spawn.assert_called_once_with("pip", ["uninstall", "--yes", "pylint"])

    def test_nothing_missing_spawns_nothing(self, mocker):
        mocker.patch("dotsync.package_managers.pip_executable", return_value="pip")
        mocker.patch(
            "dotsync.package_managers.run",
            return_value=_completed(json.dumps([{"name": "black", "version": "1"}])),
        )
        spawn = mocker.patch("dotsync.package_managers.spawn_wait")
        assert PipFavourites(install=["black"]).fill_and_status() == Status.no_change("")
        spawn.assert_not_called()

    def test_fill_failure_propagates(self, mocker):
        mocker.patch("dotsync.package_managers.pip_executable", return_value="pip")
        mocker.patch("dotsync.package_managers.run", return_value=_completed("[]"))
        mocker.patch(
            "dotsync.package_managers.spawn_wait",
            side_effect=CommandError("pip exited with status 1", command="pip", returncode=1),
        )
        with pytest.raises(CommandError):
            PipFavourites(install=["black"]).fill_and_status()


class TestCargo:
    def test_parse_cargo_installed(self):
        output = (
            "ripgrep v13.0.0:\n"
            "    rg\n"
            "bat v0.22.1 (/home/me/src/bat):\n"
            "    bat\n"
        )
        assert parse_cargo_installed(output) == {"ripgrep": "13.0.0", "bat": "0.22.1"}

    def test_parse_cargo_installed_git_source_and_noise(self):
        output = (
            "cargo-edit v0.11.9 (https://github.com/killercup/cargo-edit#3d2f7a1c):\n"
            "    cargo-add\n"
            "warning: something unrelated\n"
        )
        assert parse_cargo_installed(output) == {"cargo-edit": "0.11.9"}

    def test_path_installed_crate_is_found_not_missing(self, mocker, tmp_path):
        mocker.patch(
            "dotsync.package_managers.cargo_executable", return_value=tmp_path / "cargo"
        )
        mocker.patch("dotsync.package_managers.succeeds", return_value=True)
        mocker.patch(
            "dotsync.package_managers.command_output",
            return_value="bat v0.22.1 (/home/me/src/bat):\n    bat\n",
        )
        favs = CargoFavourites(install=["bat"], uninstall=["bat"])
        assert favs.found() == ["bat"]
        assert favs.missing() == []
        assert favs.surplus() == ["bat"]

    def test_fill_and_upgrade(self, mocker, tmp_path):
        mocker.patch(
            "dotsync.package_managers.cargo_executable", return_value=tmp_path / "cargo"
        )
        mocker.patch("dotsync.package_managers.succeeds", return_value=True)
        mocker.patch(
            "dotsync.package_managers.command_output",
            return_value="ripgrep v13.0.0:\n    rg\n",
        )
        spawn = mocker.patch("dotsync.package_managers.spawn_wait")

        favs = CargoFavourites(install=["ripgrep", "fd-find"])
        favs.fill()
        favs.upgrade()

        assert spawn.call_args_list == [
            mocker.call(tmp_path / "cargo", ["install", "fd-find"]),
            mocker.call(tmp_path / "cargo", ["install", "--force", "ripgrep"]),
        ]

    def test_unavailable_cargo_finds_nothing(self, mocker):
        mocker.patch("dotsync.package_managers.succeeds", return_value=False)
        assert CargoFavourites(install=["ripgrep"]).found() == []


class TestGoGet:
    def test_found_requires_binary_and_source(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GOPATH", str(tmp_path))
        (tmp_path / "bin").mkdir()
        (tmp_path / "bin" / "dep").write_text("x")
        (tmp_path / "src" / "github.com" / "golang" / "dep").mkdir(parents=True)
        (tmp_path / "bin" / "lint").write_text("x")

        favs = GoGetFavourites(
            install=["github.com/golang/dep"], uninstall=["golang.org/x/lint"]
        )
        assert favs.found() == ["github.com/golang/dep"]

    def test_cull_removes_source_and_binary(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GOPATH", str(tmp_path))
        (tmp_path / "bin").mkdir()
        (tmp_path / "bin" / "golint").write_text("x")
        src = tmp_path / "src" / "golang.org" / "x" / "golint"
        src.mkdir(parents=True)

        favs = GoGetFavourites(uninstall=["golang.org/x/golint"])
        assert favs.cull_and_status() == Status.changed("golang.org/x/golint", "")
        assert not src.exists()
        assert not (tmp_path / "bin" / "golint").exists()

    def test_fill_runs_go_get(self, mocker, tmp_path, monkeypatch):
        monkeypatch.setenv("GOPATH", str(tmp_path))
        spawn = mocker.patch("dotsync.package_managers.spawn_wait")
        GoGetFavourites(install=["github.com/a/b", "github.com/c/d"]).fill()
        assert spawn.call_args_list == [
            mocker.call("go", ["get", "-u", "-v", "github.com/a/b"]),
            mocker.call("go", ["get", "-u", "-v", "github.com/c/d"]),
        ]


class TestBrew:
    def test_found_lists_formulae(self, mocker):
        mocker.patch(
            "dotsync.package_managers.brew_executable", return_value="/usr/local/bin/brew"
        )
        run = mocker.patch(
            "dotsync.package_managers.run", return_value=_completed("git\n\nwget\n")
        )
        assert BrewFavourites().found() == ["git", "wget"]
        run.assert_called_once_with("/usr/local/bin/brew", ["list", "-1"])

    def test_missing_brew(self, mocker):
        mocker.patch("dotsync.package_managers.brew_executable", return_value=None)
        favs = BrewFavourites(install=["git"])
        assert favs.is_available() is False
        assert favs.found() == []
        with pytest.raises(CommandError):
            favs.fill()
