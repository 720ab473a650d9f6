from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest
import yaml

from strmsync import cli


@pytest.fixture(autouse=True)
def _quiet_cli(monkeypatch):
    monkeypatch.setattr("strmsync.cli.configure_logging", lambda *args, **kwargs: None)
    monkeypatch.delenv(cli.CONFIG_ENV_VAR, raising=False)


@pytest.fixture
def printed(monkeypatch):
    output_lines = []

    def mock_console_print(message="", **kwargs):
        output_lines.append(str(message))

    monkeypatch.setattr("strmsync.cli.CONSOLE.print", mock_console_print)
    return output_lines


def _write_catalog(tmp_path: Path, entries=None) -> Path:
    catalog = tmp_path / "catalog.json"
    if entries is None:
        entries = [
            {"url": "http://x/a.mkv", "tvg_name": "Show.S01E01", "group_title": ""},
            {"url": "http://x/b.avi", "tvg_name": "Old.Movie", "group_title": ""},
        ]
    catalog.write_text(json.dumps(entries), encoding="utf-8")
    return catalog


def _write_config(tmp_path: Path, catalog: Path, extra: str = "") -> Path:
    config_path = tmp_path / "strmsync.yaml"
    config_path.write_text(
        textwrap.dedent(
            f"""
            settings:
              tv_shows_dir: "{tmp_path / 'tv'}"
              movies_dir: "{tmp_path / 'movies'}"
              working_dir: "{tmp_path / 'work'}"
            {extra}
            sources:
              - url: "{catalog}"
                format: json
            """
        ),
        encoding="utf-8",
    )
    return config_path


class TestRun:
    """Test the run command."""

    def test_run_reconciles_and_exits_cleanly(self, tmp_path: Path) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))

        assert cli.main(["run", "--config", str(config_path), "--no-banner"]) == cli.EXIT_OK
        assert (tmp_path / "movies" / "Old_Movie" / "Old_Movie.strm").exists()

    def test_run_is_the_default_command(self, tmp_path: Path) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))

        assert cli.main(["--config", str(config_path), "--no-banner"]) == cli.EXIT_OK
        assert (tmp_path / "tv" / "Show" / "S01" / "Show_S01E01.strm").exists()

    def test_config_from_environment(self, tmp_path: Path, monkeypatch) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))
        monkeypatch.setenv(cli.CONFIG_ENV_VAR, str(config_path))

        assert cli.main(["--no-banner"]) == cli.EXIT_OK

    def test_command_line_only_run(self, tmp_path: Path) -> None:
        catalog = _write_catalog(tmp_path)

        exit_code = cli.main(
            [
                "--tv-shows-dir",
                str(tmp_path / "tv"),
                "--movies-dir",
                str(tmp_path / "movies"),
                "--json-url",
                str(catalog),
                "--download-dir",
                str(tmp_path / "dl"),
                "--no-banner",
            ]
        )

        assert exit_code == cli.EXIT_OK
        assert (tmp_path / "movies" / "Old_Movie" / "Old_Movie.strm").exists()

    def test_overlapping_groups_exit_with_config_error(self, tmp_path: Path) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))

        exit_code = cli.main(
            ["--config", str(config_path), "--include-group", "news", "--exclude-group", "News", "--no-banner"]
        )

        assert exit_code == cli.EXIT_CONFIG_ERROR
        assert not (tmp_path / "tv").exists()

    def test_missing_config_file_is_a_config_error(self, tmp_path: Path) -> None:
        assert cli.main(["--config", str(tmp_path / "missing.yaml"), "--no-banner"]) == cli.EXIT_CONFIG_ERROR

    def test_unreadable_config_path_is_a_config_error(self, tmp_path: Path) -> None:
        config_dir = tmp_path / "config.yaml"
        config_dir.mkdir()
        assert cli.main(["--config", str(config_dir), "--no-banner"]) == cli.EXIT_CONFIG_ERROR

    def test_invalid_log_level_is_a_config_error(self, tmp_path: Path) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))
        assert cli.main(["--config", str(config_path), "--log-level", "chatty"]) == cli.EXIT_CONFIG_ERROR

    def test_catalog_failure_exit_code(self, tmp_path: Path) -> None:
        config_path = _write_config(tmp_path, tmp_path / "missing.json")

        assert cli.main(["--config", str(config_path), "--no-banner"]) == cli.EXIT_CATALOG_ERROR

    def test_entry_errors_exit_code(self, tmp_path: Path) -> None:
        catalog = _write_catalog(tmp_path, [{"url": "http://x/a.mkv", "tvg_name": "S01E01", "group_title": ""}])
        config_path = _write_config(tmp_path, catalog)

        assert cli.main(["--config", str(config_path), "--no-banner"]) == cli.EXIT_RUN_ERRORS

    def test_keep_report_flag(self, tmp_path: Path) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))
        report = tmp_path / "keep.txt"

        cli.main(["--config", str(config_path), "--write-keep-report", str(report), "--no-banner"])

        assert len(report.read_text(encoding="utf-8").splitlines()) == 2

    def test_save_config_writes_effective_configuration(self, tmp_path: Path) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))
        saved = tmp_path / "effective.yaml"

        cli.main(["--config", str(config_path), "--delete-limit", "3", "--save-config", str(saved), "--no-banner"])

        data = yaml.safe_load(saved.read_text(encoding="utf-8"))
        assert data["settings"]["delete_limit"] == 3
        assert data["sources"][0]["format"] == "json"

    def test_banner_is_printed(self, tmp_path: Path, printed) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))

        cli.main(["--config", str(config_path)])

        assert any("Panel" in line for line in printed)


class TestBuildOverrides:
    """Test build_overrides translation of flags."""

    def test_flags_become_overrides(self) -> None:
        args = cli.parse_args(
            [
                "run",
                "--json-url",
                "https://example.com/a.json",
                "--m3u-url",
                "https://example.com/b.m3u",
                "--m3u-url",
                "https://example.com/c.m3u",
                "--delete-limit",
                "3",
                "--use-group",
                "--log-level",
                "debug",
                "--write-keep-report",
            ]
        )

        settings, sources = cli.build_overrides(args)

        assert settings["delete_limit"] == 3
        assert settings["use_group"] is True
        assert settings["retain_downloads"] is None
        assert settings["logging"] == {"file": None, "level": "DEBUG"}
        assert settings["keep_report"] == {"enabled": True}
        assert sources == [
            {"url": "https://example.com/a.json", "format": "json"},
            {"url": "https://example.com/b.m3u", "format": "m3u"},
            {"url": "https://example.com/c.m3u", "format": "m3u"},
        ]

    def test_no_flags_means_no_overrides(self) -> None:
        settings, sources = cli.build_overrides(cli.parse_args([]))

        assert sources == []
        assert settings["keep_report"] is None
        assert all(value is None for key, value in settings.items() if key != "logging")


class TestValidateConfig:
    """Test the validate-config command."""

    def test_valid_config(self, tmp_path: Path, printed) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path))

        assert cli.main(["validate-config", "--config", str(config_path)]) == 0
        assert any("Configuration passed validation" in line for line in printed)

    def test_invalid_config(self, tmp_path: Path, printed) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path), extra="  delete_limit: -5")

        assert cli.main(["validate-config", "--config", str(config_path)]) == 1

    def test_unknown_keys_only_warn(self, tmp_path: Path, printed) -> None:
        config_path = _write_config(tmp_path, _write_catalog(tmp_path), extra="  useGroup: 1")

        assert cli.main(["validate-config", "--config", str(config_path)]) == 0
        assert any("with warnings" in line for line in printed)

    def test_missing_file(self, tmp_path: Path, printed) -> None:
        assert cli.main(["validate-config", "--config", str(tmp_path / "missing.yaml")]) == 1
        assert any("Failed to load configuration" in line for line in printed)

    def test_directory_instead_of_file(self, tmp_path: Path, printed) -> None:
        assert cli.main(["validate-config", "--config", str(tmp_path)]) == 1
        assert any("Failed to load configuration" in line for line in printed)

    def test_requires_a_config(self, printed) -> None:
        assert cli.main(["validate-config"]) == 1


class TestSampleConfig:
    """Test the sample-config command."""

    def test_writes_loadable_sample(self, tmp_path: Path, printed) -> None:
        target = tmp_path / "sample.yaml"

        assert cli.main(["sample-config", str(target), "--base-dir", str(tmp_path)]) == 0

        data = yaml.safe_load(target.read_text(encoding="utf-8"))
        assert data["settings"]["tv_shows_dir"] == str(tmp_path / "vod_tv")
        assert cli.main(["validate-config", "--config", str(target)]) == 0

    def test_never_overwrites(self, tmp_path: Path, printed) -> None:
        target = tmp_path / "sample.yaml"
        target.write_text("keep: me\n", encoding="utf-8")

        assert cli.main(["sample-config", str(target)]) == 1
        assert target.read_text(encoding="utf-8") == "keep: me\n"


def test_version_flag(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert "strmsync" in capsys.readouterr().out


def test_keyboard_interrupt_exit_code(monkeypatch) -> None:
    def interrupted(args):
        raise KeyboardInterrupt

    monkeypatch.setattr("strmsync.cli.run_sample_config", interrupted)
    monkeypatch.setattr("strmsync.cli.run_run", interrupted)

    assert cli.main(["--no-banner"]) == cli.EXIT_INTERRUPTED
