"""Tests for luafmt.toml loading and option overrides."""

from __future__ import annotations

import pytest

from luafmt.config import (
    FormatOptions,
    InlineOptions,
    find_config,
    load_config,
    options_for,
    with_overrides,
)


class TestFormatOptions:
    def test_defaults(self):
        options = FormatOptions()
        assert options.extra_newlines is True
        assert options.inline == InlineOptions(block=True, table=True)
        assert options.string_style == "auto"

    def test_bad_string_style(self):
        with pytest.raises(ValueError):
            FormatOptions(string_style="fancy")


class TestFindConfig:
    def test_found_in_parent(self, tmp_path):
        (tmp_path / "luafmt.toml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == tmp_path / "luafmt.toml"

    def test_hidden_name(self, tmp_path):
        (tmp_path / ".luafmt.toml").write_text("")
        assert find_config(tmp_path) == tmp_path / ".luafmt.toml"

    def test_start_at_file(self, tmp_path):
        (tmp_path / "luafmt.toml").write_text("")
        lua = tmp_path / "main.lua"
        lua.write_text("")
        assert find_config(lua) == tmp_path / "luafmt.toml"

    def test_missing(self, tmp_path, monkeypatch):
        monkeypatch.setattr("luafmt.config.CONFIG_NAMES", ("luafmt-test-absent.toml",))
        with pytest.raises(FileNotFoundError):
            find_config(tmp_path)


class TestLoadConfig:
    def test_full(self, tmp_path):
        path = tmp_path / "luafmt.toml"
        path.write_text(
            'extra_newlines = false\nstring_style = "single"\n'
            "[inline]\nblock = false\ntable = true\n"
        )
        options = load_config(path)
        assert options.extra_newlines is False
        assert options.string_style == "single"
        assert options.inline == InlineOptions(block=False, table=True)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "luafmt.toml"
        path.write_text("")
        assert load_config(path) == FormatOptions()

    def test_partial_inline_table(self, tmp_path):
        path = tmp_path / "luafmt.toml"
        path.write_text("[inline]\ntable = false\n")
        assert load_config(path).inline == InlineOptions(block=True, table=False)

    def test_bad_style(self, tmp_path):
        path = tmp_path / "luafmt.toml"
        path.write_text('string_style = "backtick"\n')
        with pytest.raises(ValueError):
            load_config(path)

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "luafmt.toml"
        path.write_text("extra_newlines = \n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_options_for_without_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr("luafmt.config.CONFIG_NAMES", ("luafmt-test-absent.toml",))
        assert options_for(tmp_path) == FormatOptions()


class TestOverrides:
    def test_none_keeps_values(self):
        options = FormatOptions(extra_newlines=False)
        assert with_overrides(options) == options

    def test_each_override(self):
        options = with_overrides(
            FormatOptions(),
            extra_newlines=False,
            inline_block=False,
            inline_table=False,
            string_style="double",
        )
        assert options == FormatOptions(
            extra_newlines=False,
            inline=InlineOptions(block=False, table=False),
            string_style="double",
        )
