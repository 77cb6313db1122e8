"""Formatting options and TOML config loading for luafmt.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from luafmt.literals import STRING_STYLES

CONFIG_NAMES = ("luafmt.toml", ".luafmt.toml")


@dataclass(frozen=True)
class InlineOptions:
    block: bool = True
    table: bool = True


@dataclass(frozen=True)
class FormatOptions:
    extra_newlines: bool = True
    inline: InlineOptions = field(default_factory=InlineOptions)
    string_style: str = "auto"

    def __post_init__(self) -> None:
        if self.string_style not in STRING_STYLES:
            raise ValueError(
                f"string_style must be one of {', '.join(STRING_STYLES)}, "
                f"got {self.string_style!r}"
            )


def with_overrides(
    options: FormatOptions,
    *,
    extra_newlines: bool | None = None,
    inline_block: bool | None = None,
    inline_table: bool | None = None,
    string_style: str | None = None,
) -> FormatOptions:
    """Return ``options`` with every non-None override applied."""
    inline = options.inline
    if inline_block is not None:
        inline = replace(inline, block=inline_block)
    if inline_table is not None:
        inline = replace(inline, table=inline_table)
    return replace(
        options,
        extra_newlines=options.extra_newlines if extra_newlines is None else extra_newlines,
        inline=inline,
        string_style=string_style or options.string_style,
    )


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find luafmt.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        for name in CONFIG_NAMES:
            candidate = path / name
            if candidate.exists():
                return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError("No luafmt.toml found in any parent directory")
        path = parent


def load_config(path: Path) -> FormatOptions:
    """Parse a luafmt.toml file into FormatOptions."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    defaults = FormatOptions()
    inline = defaults.inline
    if "inline" in data:
        inl = data["inline"]
        inline = InlineOptions(
            block=inl.get("block", inline.block),
            table=inl.get("table", inline.table),
        )

    return FormatOptions(
        extra_newlines=data.get("extra_newlines", defaults.extra_newlines),
        inline=inline,
        string_style=data.get("string_style", defaults.string_style),
    )


def options_for(path: Path | None) -> FormatOptions:
    """Options from the config nearest ``path``, or the defaults."""
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return FormatOptions()
