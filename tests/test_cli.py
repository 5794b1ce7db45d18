"""Tests for the command-line interface."""

import pytest

from sitecapture.cli import build_parser, config_from_args, main


@pytest.fixture
def no_env(monkeypatch):
    for key in ("START_URLS", "MAX_PAGES", "DEVICES", "RESPECT_ROBOTS", "LAYOUT_DEDUP"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestConfigFromArgs:
    """Tests for merging arguments over the environment."""

    def test_arguments_override_environment(self, no_env, tmp_path):
        no_env.setenv("MAX_PAGES", "50")
        args = build_parser().parse_args([
            "https://example.com/docs/",
            "--max-pages", "5",
            "--devices", "iPhone 13, Desktop 1280x800",
            "--filename-mode", "tree",
            "--out-dir", str(tmp_path),
            "--ignore-robots",
            "--no-dedup",
        ])

        config = config_from_args(args)

        assert config.start_urls == ["https://example.com/docs/"]
        assert config.max_pages == 5
        assert config.devices == ["iPhone 13", "Desktop 1280x800"]
        assert config.filename_mode == "tree"
        assert config.respect_robots is False
        assert config.layout_dedup is False

    def test_environment_used_without_arguments(self, no_env):
        no_env.setenv("START_URLS", "https://example.com/")
        no_env.setenv("MAX_PAGES", "7")

        config = config_from_args(build_parser().parse_args([]))

        assert config.start_urls == ["https://example.com/"]
        assert config.max_pages == 7
        assert config.respect_robots is True


class TestMain:
    """Tests for the main entry point."""

    def test_missing_start_url_exits_with_error(self, no_env, capsys):
        assert main([]) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_option_value_exits_with_error(self, no_env, capsys):
        assert main(["https://example.com/", "--max-pages", "0"]) == 1


class TestSetupLogging:
    """Tests for logging setup."""

    def test_file_handler_and_quiet_loggers(self, tmp_path):
        import logging

        from sitecapture.logging_config import setup_logging

        log_file = tmp_path / "logs" / "capture.log"
        setup_logging(level="DEBUG", log_file=str(log_file))
        logging.getLogger("sitecapture.test").info("hello")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert "hello" in log_file.read_text(encoding="utf-8")


class TestBrowsersToInstall:
    """Tests for the post-install browser selection."""

    def test_defaults_to_browser_type(self, monkeypatch):
        from scripts import browsers_to_install

        monkeypatch.setenv("BROWSER_TYPE", "firefox")
        assert browsers_to_install([]) == ["firefox"]

    def test_explicit_arguments(self):
        from scripts import browsers_to_install

        assert browsers_to_install(["Chromium", "webkit"]) == ["chromium", "webkit"]

    def test_unknown_browser(self):
        from scripts import browsers_to_install

        with pytest.raises(SystemExit):
            browsers_to_install(["netscape"])
