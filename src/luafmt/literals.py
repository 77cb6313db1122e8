"""Canonical rendering of Lua numeric and string literals.

Numbers are read with Lua 5.2 semantics (every numeral is a double).
Strings are decoded to their byte value and re-quoted; bytes that are not
valid UTF-8 survive as decimal escapes.
"""

from __future__ import annotations

import math

STRING_STYLES = ("auto", "double", "single")

# Shortest integral value that repr() prints in exponent form
_MAX_PLAIN_INTEGER = 1e16

_NAMED_ESCAPES = {
    'a': 7, 'b': 8, 'f': 12, 'n': 10, 'r': 13, 't': 9, 'v': 11,
    '\\': 92, '"': 34, "'": 39,
}
_ESCAPE_NAMES = {
    7: 'a', 8: 'b', 12: 'f', 10: 'n', 13: 'r', 9: 't', 11: 'v',
}


def skip_first_newline(text: str) -> str:
    """Drop the line break that directly follows an opening long bracket."""
    for newline in ("\r\n", "\n\r", "\n", "\r"):
        if text.startswith(newline):
            return text[len(newline):]
    return text


# ── Numbers ──────────────────────────────────────────────────────


def parse_number(text: str) -> float:
    """Read a Lua numeral the way the Lua 5.2 reader does."""
    if text[:2] in ("0x", "0X"):
        return float.fromhex(text)
    return float(text)


def normalize_number(raw: str) -> str:
    """Return the canonical spelling of the numeral ``raw``.

    Hexadecimal numerals keep their digits, uppercased. Decimal numerals
    use whichever of the plain integer or mantissa/exponent forms is
    shorter (``1000`` -> ``1e3``, ``100`` stays ``100``); non-integral
    values use the shortest text that reads back to the same double.
    """
    if raw[:2] in ("0x", "0X"):
        return "0x" + raw[2:].upper()

    value = parse_number(raw)
    if math.isinf(value):
        return "1e999"

    if value.is_integer() and value < _MAX_PLAIN_INTEGER:
        plain = str(int(value))
        mantissa = plain.rstrip("0")
        zeros = len(plain) - len(mantissa)
        if mantissa and zeros:
            scientific = f"{mantissa}e{zeros}"
            if len(scientific) < len(plain):
                return scientific
        return plain

    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        if mantissa.endswith(".0"):
            mantissa = mantissa[:-2]
        text = f"{mantissa}e{int(exponent)}"
    return text


# ── Strings ──────────────────────────────────────────────────────


def decode_string(raw: str) -> bytes:
    """Return the byte value of the string literal ``raw``."""
    if raw.startswith('['):
        level = raw.index('[', 1) - 1
        inner = raw[level + 2:len(raw) - level - 2]
        inner = skip_first_newline(inner)
        inner = inner.replace("\r\n", "\n").replace("\n\r", "\n").replace("\r", "\n")
        return inner.encode("utf-8")

    body = raw[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != '\\':
            out += ch.encode("utf-8")
            i += 1
            continue

        esc = body[i + 1]
        i += 2
        if esc in _NAMED_ESCAPES:
            out.append(_NAMED_ESCAPES[esc])
        elif esc in '\r\n':
            out.append(10)
            if i < len(body) and body[i] in '\r\n' and body[i] != esc:
                i += 1
        elif esc == 'x':
            out.append(int(body[i:i + 2], 16))
            i += 2
        elif esc == 'z':
            while i < len(body) and body[i] in " \t\r\n\f\v":
                i += 1
        elif esc == 'u':
            close = body.index('}', i)
            out += chr(int(body[i + 1:close], 16)).encode("utf-8", "surrogatepass")
            i = close + 1
        else:
            j = i - 1
            while j < len(body) and j < i + 2 and body[j].isdigit():
                j += 1
            out.append(int(body[i - 1:j]))
            i = j
    return bytes(out)


def _choose_quote(text: str, style: str) -> str:
    if style == "double":
        return '"'
    if style == "single":
        return "'"
    if text.count('"') > text.count("'"):
        return "'"
    return '"'


def normalize_string(raw: str, style: str = "auto") -> str:
    """Re-quote the string literal ``raw`` in the given style.

    ``auto`` prefers double quotes unless that needs more escapes than
    single quotes would.
    """
    if style not in STRING_STYLES:
        raise ValueError(f"unknown string style {style!r}")

    # Invalid UTF-8 decodes to lone surrogates, escaped below
    text = decode_string(raw).decode("utf-8", "surrogateescape")
    quote = _choose_quote(text, style)

    parts: list[str] = [quote]
    for i, ch in enumerate(text):
        code = ord(ch)
        if ch == quote or ch == '\\':
            parts.append('\\' + ch)
        elif code in _ESCAPE_NAMES:
            parts.append('\\' + _ESCAPE_NAMES[code])
        elif code < 32 or code == 127 or 0xDC80 <= code <= 0xDCFF:
            byte = code - 0xDC00 if code >= 0xDC80 else code
            following = text[i + 1] if i + 1 < len(text) else ""
            if following.isdigit():
                parts.append(f"\\{byte:03d}")
            else:
                parts.append(f"\\{byte}")
        else:
            parts.append(ch)
    parts.append(quote)
    return "".join(parts)


def long_bracket(content: str) -> str:
    """Wrap ``content`` in the lowest-level long bracket that can hold it."""
    level = 0
    while f"]{'=' * level}]" in content or content.endswith(f"]{'=' * level}"):
        level += 1
    eq = "=" * level
    return f"[{eq}[\n{content}]{eq}]"
