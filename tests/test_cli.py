"""
Test 13: Command line (cli/)

Runs the click commands in-process with CliRunner.
"""

import json
import sys

import click
import pytest
from click.testing import CliRunner

from strix import __version__
from strix.cli.__main__ import cli, load_app


@pytest.fixture
def runner():
    return CliRunner()


class TestVersion:

    def test_version_command(self, runner):
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert f"strix {__version__}" in result.output
        assert f"Python {sys.version.split()[0]}" in result.output

    def test_version_option(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestRoutes:

    def test_text_listing(self, runner):
        result = runner.invoke(cli, ["routes", "myapp.main:app"])
        assert result.exit_code == 0, result.output
        assert "/users/{id}" in result.output
        assert "UserController.show" in result.output
        assert "[SessionAuthGate]" in result.output
        assert "Auto-routed:" in result.output
        assert "/user/show" in result.output

    def test_json_listing(self, runner):
        result = runner.invoke(cli, ["routes", "myapp.main:app", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)

        paths = [(r["method"], r["path"]) for r in data["routes"]]
        assert paths.index(("GET", "/users/create")) < paths.index(("GET", "/users/{id}"))

        dashboard = next(r for r in data["routes"] if r["path"] == "/dashboard")
        assert dashboard["middleware"] == ["SessionAuthGate"]
        assert dashboard["name"] == "dashboard"

        assert "/home/about" in data["auto"]
        assert not any(path.startswith("/auth/") for path in data["auto"])

    def test_bad_app_path(self, runner):
        result = runner.invoke(cli, ["routes", "no_such_module:app"])
        assert result.exit_code != 0
        assert "cannot import" in result.output


class TestConfig:

    def test_config_dump_masks_secrets(self, runner):
        result = runner.invoke(cli, ["config", "myapp.main:app"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["secret_key"] in ("", "***")
        assert data["database"]["password"] in ("", "***")
        assert data["database"]["driver"] in ("sqlite", "mysql")


class TestLoadApp:

    def test_requires_module_and_attribute(self):
        with pytest.raises(click.BadParameter):
            load_app("myapp.main")

    def test_missing_attribute(self):
        with pytest.raises(click.BadParameter):
            load_app("myapp.main:nope")

    def test_loads_application(self):
        from strix import Application

        assert isinstance(load_app("myapp.main:app"), Application)
