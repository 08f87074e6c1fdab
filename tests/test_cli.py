"""
Tests for the sleet command line.
"""

import json

import httpx
import pytest
from typer.testing import CliRunner

from conftest import build_nupkg, read_feed_json
from sleet import __version__
from sleet.main import app

runner = CliRunner()


class TestCli:
    """Test suite for the typer application"""

    @pytest.fixture
    def config(self, tmp_path):
        path = tmp_path / "sleet.json"
        path.write_text(
            json.dumps(
                {
                    "config": {"feedLockTimeoutSeconds": 5},
                    "sources": [{"name": "feed", "type": "local", "path": "feed", "baseURI": "https://example.com/feed/"}],
                }
            )
        )
        return path

    def invoke(self, config, *args):
        return runner.invoke(app, ["--config", str(config), *args])

    def test_version(self):
        """Should print the version"""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_workflow(self, config, tmp_path, packages_dir):
        """Should run init, push, validate, stats and delete"""
        feed_root = tmp_path / "feed"
        assert self.invoke(config, "init", "--with-catalog").exit_code == 0
        assert read_feed_json(feed_root, "index.json")["version"] == "3.0.0"

        build_nupkg(packages_dir, "a", "1.0.0")
        build_nupkg(packages_dir, "a", "2.0.0")
        assert self.invoke(config, "push", str(packages_dir)).exit_code == 0
        assert read_feed_json(feed_root, "flatcontainer/a/index.json")["versions"] == ["1.0.0", "2.0.0"]

        assert self.invoke(config, "validate").exit_code == 0
        assert self.invoke(config, "stats").exit_code == 0

        assert self.invoke(config, "delete", "--id", "a", "--version", "1.0.0", "--reason", "old").exit_code == 0
        assert read_feed_json(feed_root, "flatcontainer/a/index.json")["versions"] == ["2.0.0"]

        output = tmp_path / "out"
        assert self.invoke(config, "download", "--output", str(output)).exit_code == 0
        assert (output / "a/a.2.0.0.nupkg").is_file()

        assert self.invoke(config, "feed-settings", "--set", "retentionmaxstableversions:1", "--get-all").exit_code == 0
        assert self.invoke(config, "prune", "--prerelease", "1").exit_code == 0

        assert self.invoke(config, "recreate").exit_code == 0
        assert self.invoke(config, "destroy").exit_code == 0
        assert not (feed_root / "index.json").exists()

    def test_errors_exit_non_zero(self, config, tmp_path):
        """Should exit with code 1 for sleet errors and missing files"""
        assert self.invoke(config, "validate").exit_code == 1
        assert self.invoke(config, "init").exit_code == 0
        assert self.invoke(config, "init").exit_code == 1
        assert self.invoke(config, "push", str(tmp_path / "missing.nupkg")).exit_code == 1
        assert self.invoke(config, "delete", "--id", "missing").exit_code == 1
        assert self.invoke(config, "delete", "--id", "missing", "--force").exit_code == 0

    def test_missing_config(self, tmp_path):
        """Should exit with code 1 when no settings file exists"""
        result = runner.invoke(app, ["--config", str(tmp_path / "none.json"), "stats"])
        assert result.exit_code == 1

    def test_unknown_source(self, config):
        """Should exit with code 1 for an unknown source"""
        assert runner.invoke(app, ["--config", str(config), "--source", "other", "stats"]).exit_code == 1

    @pytest.mark.parametrize(
        "error",
        [PermissionError("feed is read only"), httpx.ConnectError("connection refused")],
    )
    def test_io_errors_exit_non_zero(self, config, monkeypatch, error):
        """Should report I/O and HTTP errors that outlive the retries and exit with code 1"""

        async def failing_validate(settings, file_system):
            raise error

        monkeypatch.setattr("sleet.main.run_validate", failing_validate)
        assert self.invoke(config, "init").exit_code == 0

        result = self.invoke(config, "validate")
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_create_config(self, tmp_path):
        """Should write a starter settings file once"""
        result = runner.invoke(app, ["create-config", "--output", str(tmp_path), "--type", "http"])
        assert result.exit_code == 0
        data = json.loads((tmp_path / "sleet.json").read_text())
        assert data["sources"][0]["type"] == "http"

        assert runner.invoke(app, ["create-config", "--output", str(tmp_path)]).exit_code == 1
        assert runner.invoke(app, ["create-config", "--output", str(tmp_path / "x.json"), "--type", "ftp"]).exit_code == 1
