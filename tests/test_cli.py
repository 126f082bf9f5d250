"""Tests for the jobrunner command line."""

import json
import sys

import pytest
from click.testing import CliRunner

from jobrunner import cli as cli_module
from jobrunner.cli import cli
from jobrunner.dsl import command, job, stage

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("JOBRUNNER_BUILDER", "JOBRUNNER_PLUGINS", "JOBRUNNER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_job(tmp_path):
    def write(payload):
        path = tmp_path / "job.json"
        path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
        return str(path)
    return write


def local_job(*stages):
    return job("cli-test", *stages, environment={"os": "generic_local"})


class TestPluginsCommand:

    def test_lists_builtin_plugins(self):
        result = CliRunner().invoke(cli, ["plugins"], obj={})

        assert result.exit_code == 0
        assert "builder:" in result.output
        assert "provisioner:" in result.output
        for name in ("local", "ubuntu", "debian", "generic", "command", "git"):
            assert f"  {name}" in result.output

    def test_bad_plugin_module(self, monkeypatch):
        monkeypatch.setenv("JOBRUNNER_PLUGINS", "no_such_plugin_module")

        result = CliRunner().invoke(cli, ["plugins"], obj={})

        assert result.exit_code == 1
        assert "Failed to load plugins" in result.output


class TestRunCommand:

    def test_successful_job(self, write_job):
        path = write_job(local_job(stage("greet", command("echo hello-from-job"))))

        result = CliRunner().invoke(cli, ["run", path, "--job-id", "abc"], obj={})

        assert result.exit_code == 0, result.output
        assert "Job ID: abc" in result.output
        assert "hello-from-job" in result.output
        assert "greet v1.0.0: SUCCESS" in result.output
        assert "JOB SUCCEEDED" in result.output

    def test_failing_job(self, write_job):
        path = write_job(local_job(
            stage("build", command("exit 4"), on_failure="report"),
            stage("report", command("echo reporting")),
        ))

        result = CliRunner().invoke(cli, ["run", path], obj={})

        assert result.exit_code == 1
        assert "build v1.0.0: FAILED (rc=4)" in result.output
        assert "report v1.0.0: SUCCESS" in result.output
        assert "JOB FAILED" in result.output

    def test_unreadable_job_file(self, write_job):
        path = write_job("{ this is not json")

        result = CliRunner().invoke(cli, ["run", path], obj={})

        assert result.exit_code == 1
        assert "Failed to load job" in result.output

    def test_unknown_builder(self, write_job):
        path = write_job(local_job())

        result = CliRunner().invoke(cli, ["run", path, "--builder", "nope"], obj={})

        assert result.exit_code == 1
        assert "Job failed" in result.output
        assert "PluginNotFoundError" in result.output

    def test_builder_from_environment(self, write_job, monkeypatch):
        monkeypatch.setenv("JOBRUNNER_BUILDER", "nope")
        path = write_job(local_job())

        result = CliRunner().invoke(cli, ["run", path], obj={})

        assert result.exit_code == 1
        assert "no builder plugin registered as 'nope'" in result.output

    def test_here_adds_current_repository(self, write_job, monkeypatch):
        monkeypatch.setattr(
            cli_module,
            "_current_repo_source",
            lambda: {"type": "git", "url": "https://example.com/org/app.git", "branch": "main"},
        )
        seen = {}

        class RecordingRunner:
            def __init__(self, job_id, payload, notifier, settings=None):
                seen["payload"] = payload
                self.outcomes = []
                self.notifier = notifier

            def run(self):
                return True

        monkeypatch.setattr(cli_module, "JobRunner", RecordingRunner)
        path = write_job(local_job())

        result = CliRunner().invoke(cli, ["run", path, "--here"], obj={})

        assert result.exit_code == 0, result.output
        assert seen["payload"]["sources"] == [
            {"type": "git", "url": "https://example.com/org/app.git", "branch": "main"}
        ]
