from __future__ import annotations

from pathlib import Path

import pytest

from strmsync.utils import (
    dump_yaml_file,
    expand_env,
    load_yaml_file,
    normalize_name,
    sanitize_name,
    validate_url,
)


class TestNormalizeName:
    """Test normalize_name function."""

    def test_periods_become_spaces(self) -> None:
        assert normalize_name("Movie.Title.2020") == "Movie Title 2020"

    def test_trailing_separator_is_trimmed(self) -> None:
        assert normalize_name("Show.Name.") == "Show Name"

    def test_ellipses_are_dropped(self) -> None:
        assert normalize_name("Wait...What") == "WaitWhat"
        assert normalize_name("A..B") == "AB"

    def test_only_dots_normalizes_to_empty(self) -> None:
        assert normalize_name("...") == ""
        assert normalize_name(" . ") == ""

    @pytest.mark.parametrize(
        "raw",
        [
            ".Leading.Dot",
            "Trailing.Dot.",
            "....",
            " . ",
            "a . .. b",
            "\tTabbed. .Name \n",
            "Show.Name...S01E02",
            "",
        ],
    )
    def test_normalize_is_idempotent(self, raw: str) -> None:
        once = normalize_name(raw)
        assert normalize_name(once) == once


class TestSanitizeName:
    """Test sanitize_name function."""

    def test_periods_become_underscores(self) -> None:
        assert sanitize_name("Old.Movie") == "Old_Movie"
        assert sanitize_name("Show.S01E01") == "Show_S01E01"

    def test_forbidden_characters_are_replaced(self) -> None:
        assert sanitize_name("a/b:c") == "a_b_c"
        assert sanitize_name("Title [2020]") == "Title _2020"

    def test_trailing_filler_is_stripped(self) -> None:
        assert sanitize_name("Show.") == "Show"
        assert sanitize_name("Movie: The Sequel?") == "Movie_ The Sequel"
        assert sanitize_name("  Padded  ") == "Padded"

    def test_unusable_names_sanitize_to_empty(self) -> None:
        assert sanitize_name("...") == ""
        assert sanitize_name("???") == ""
        assert sanitize_name("") == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "Old.Movie",
            "Show.Name.S01E02",
            "a\t_",
            "a_ .",
            "Who?.What!.",
            "..Leading.Dots",
            "Mixed: <chars> & {braces} ",
            "Ünïcödé.Tïtle",
        ],
    )
    def test_sanitize_is_idempotent(self, raw: str) -> None:
        once = sanitize_name(raw)
        assert sanitize_name(once) == once


def test_expand_env_expands_nested_values(monkeypatch) -> None:
    monkeypatch.setenv("VOD_ROOT", "/srv/vod")
    data = {"settings": {"tv_shows_dir": "$VOD_ROOT/tv"}, "sources": [{"url": "${VOD_ROOT}/c.json"}], "n": 3}
    assert expand_env(data) == {
        "settings": {"tv_shows_dir": "/srv/vod/tv"},
        "sources": [{"url": "/srv/vod/c.json"}],
        "n": 3,
    }


def test_yaml_round_trip_and_top_level_mapping(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "config.yaml"
    dump_yaml_file(target, {"settings": {"name": "Nightly"}})
    assert load_yaml_file(target) == {"settings": {"name": "Nightly"}}

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_yaml_file(listing)


def test_validate_url() -> None:
    assert validate_url("https://example.com/catalog.json")
    assert validate_url("http://10.0.0.1:8080/get.php?type=m3u")
    assert not validate_url("ftp://example.com/file")
    assert not validate_url("http://")
    assert not validate_url(None)
    assert not validate_url("")
