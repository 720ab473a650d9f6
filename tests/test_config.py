from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import Any, Dict

import pytest

from strmsync.config import (
    DEFAULT_FILE_TYPES,
    build_config,
    build_sample_config,
    load_config,
    merge_overrides,
)


def _minimal(**settings: Any) -> Dict[str, Any]:
    base: Dict[str, Any] = {"tv_shows_dir": "/data/tv", "movies_dir": "/data/movies"}
    base.update(settings)
    return {"settings": base, "sources": [{"url": "https://example.com/c.json", "format": "json"}]}


class TestBuildConfig:
    """Test build_config defaults and validation."""

    def test_defaults(self) -> None:
        config = build_config(_minimal())
        settings = config.settings

        assert settings.tv_shows_dir == Path("/data/tv")
        assert settings.movies_dir == Path("/data/movies")
        assert settings.file_types == DEFAULT_FILE_TYPES
        assert settings.delete_limit == 25
        assert settings.use_group is False
        assert settings.default_group == "Dummy"
        assert settings.include_groups == []
        assert settings.exclude_groups == []
        assert settings.retain_downloads is False
        assert settings.effective_download_dir == Path(".") / "Download"
        assert settings.keep_report_path == Path(".") / "Log" / "keep_files.txt"
        assert settings.logging.level == "INFO"
        assert config.sources[0].format == "json"

    def test_comma_separated_lists(self) -> None:
        settings = build_config(
            _minimal(include_groups="News, Sports ,", file_types="MKV, mp4")
        ).settings

        assert settings.include_groups == ["news", "sports"]
        assert settings.file_types == ["mkv", "mp4"]

    def test_integer_flags_are_accepted(self) -> None:
        assert build_config(_minimal(use_group=1)).settings.use_group is True
        assert build_config(_minimal(use_group=0)).settings.use_group is False

    def test_overlapping_groups_are_fatal(self) -> None:
        with pytest.raises(ValueError, match="cannot share"):
            build_config(_minimal(include_groups=["News"], exclude_groups="news, adult"))

    def test_missing_roots_are_reported_together(self) -> None:
        with pytest.raises(ValueError, match="settings.tv_shows_dir, settings.movies_dir"):
            build_config({"settings": {}, "sources": [{"url": "https://example.com/c.json", "format": "json"}]})

    def test_sources_are_required(self) -> None:
        data = _minimal()
        data["sources"] = []
        with pytest.raises(ValueError, match="At least one catalog source"):
            build_config(data)

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ({"url": "https://example.com/c.xml", "format": "xml"}, "format"),
            ({"format": "json"}, "url"),
            ({"url": "http://", "format": "m3u"}, "valid http"),
        ],
    )
    def test_invalid_sources(self, source: Dict[str, Any], message: str) -> None:
        data = _minimal()
        data["sources"] = [source]
        with pytest.raises(ValueError, match=message):
            build_config(data)

    @pytest.mark.parametrize("value", [-1, "many", True])
    def test_invalid_delete_limit(self, value: Any) -> None:
        with pytest.raises(ValueError, match="delete_limit"):
            build_config(_minimal(delete_limit=value))

    def test_zero_delete_limit_is_allowed(self) -> None:
        assert build_config(_minimal(delete_limit=0)).settings.delete_limit == 0

    def test_unknown_log_level(self) -> None:
        with pytest.raises(ValueError, match="log level"):
            build_config(_minimal(logging={"level": "chatty"}))

    def test_unknown_keys_are_logged(self, caplog) -> None:
        data = _minimal(useGroup=1)
        data["extra"] = True

        with caplog.at_level(logging.WARNING, logger="strmsync.config"):
            build_config(data)

        assert "Unrecognized Configuration Key" in caplog.text
        assert "settings.useGroup" in caplog.text
        assert "extra" in caplog.text

    def test_format_is_case_insensitive(self) -> None:
        data = _minimal()
        data["sources"] = [{"url": "https://example.com/p.m3u", "format": "M3U"}]
        assert build_config(data).sources[0].format == "m3u"

    def test_local_source_paths_are_allowed(self) -> None:
        data = _minimal()
        data["sources"] = [{"url": "/srv/catalogs/c.json", "format": "json"}]
        assert build_config(data).sources[0].url == "/srv/catalogs/c.json"


def test_load_config_expands_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("VOD_ROOT", str(tmp_path))
    config_path = tmp_path / "strmsync.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            settings:
              tv_shows_dir: ${VOD_ROOT}/tv
              movies_dir: $VOD_ROOT/movies
              keep_report:
                enabled: true
            sources:
              - url: https://example.com/p.m3u
                format: m3u
            """
        ),
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.settings.tv_shows_dir == tmp_path / "tv"
    assert config.settings.movies_dir == tmp_path / "movies"
    assert config.settings.keep_report.enabled is True


def test_load_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_config(tmp_path / "missing.yaml")


def test_load_config_directory_is_a_config_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unable to read configuration file"):
        load_config(tmp_path)


class TestMergeOverrides:
    """Test merge_overrides behavior."""

    def test_scalars_replace_and_sources_append(self) -> None:
        data = _minimal(delete_limit=25, logging={"file": "/var/log/strmsync.log"})

        merged = merge_overrides(
            data,
            {"delete_limit": 5, "name": None, "logging": {"level": "DEBUG", "file": None}},
            [{"url": "https://example.com/p.m3u", "format": "m3u"}],
        )

        assert merged["settings"]["delete_limit"] == 5
        assert "name" not in merged["settings"]
        assert merged["settings"]["logging"] == {"file": "/var/log/strmsync.log", "level": "DEBUG"}
        assert [source["format"] for source in merged["sources"]] == ["json", "m3u"]

    def test_original_is_not_mutated(self) -> None:
        data = _minimal(logging={"level": "INFO"})
        merge_overrides(data, {"logging": {"level": "DEBUG"}}, [{"url": "a", "format": "json"}])

        assert data["settings"]["logging"] == {"level": "INFO"}
        assert len(data["sources"]) == 1

    def test_empty_nested_override_is_skipped(self) -> None:
        merged = merge_overrides({}, {"logging": {"file": None, "level": None}, "tv_shows_dir": "/tv"})
        assert merged == {"settings": {"tv_shows_dir": "/tv"}}


def test_sample_config_is_valid(tmp_path: Path) -> None:
    config = build_config(build_sample_config(tmp_path))

    assert config.settings.tv_shows_dir == tmp_path / "vod_tv"
    assert config.settings.movies_dir == tmp_path / "vod_movie"
    assert config.settings.effective_download_dir == tmp_path / "Download"
    assert {source.format for source in config.sources} == {"json", "m3u"}
