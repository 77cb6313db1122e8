"""luafmt: a canonical source formatter for Lua 5.2."""

__version__ = "0.1.0"

from luafmt.config import FormatOptions, InlineOptions  # noqa: E402
from luafmt.formatter import LuaFormatter, format_source  # noqa: E402

__all__ = ["FormatOptions", "InlineOptions", "LuaFormatter", "format_source", "__version__"]
