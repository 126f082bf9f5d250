"""Tests for Settings.from_env."""

from jobrunner.settings import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.builder == "local"
        assert settings.plugins == ()
        assert settings.log_level == "WARNING"

    def test_reads_environment(self):
        settings = Settings.from_env({
            "JOBRUNNER_BUILDER": "openstack",
            "JOBRUNNER_PLUGINS": "acme.ssh, acme.openstack,,",
            "JOBRUNNER_LOG_LEVEL": "debug",
        })

        assert settings.builder == "openstack"
        assert settings.plugins == ("acme.ssh", "acme.openstack")
        assert settings.log_level == "DEBUG"

    def test_reads_process_environment_by_default(self, monkeypatch):
        monkeypatch.setenv("JOBRUNNER_BUILDER", "from-env")

        assert Settings.from_env().builder == "from-env"
