"""JSON encoding with indentation, escaping and precision control."""

from __future__ import annotations

import enum
import math
from typing import IO, Any

ERROR_TEXT_LENGTH = 160
ERROR_SOURCE_LENGTH = 80

_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1

_NAMED_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


class DumpFlags(enum.IntFlag):
    """Flags controlling how values are encoded."""

    MAX_INDENT = 0x1F
    COMPACT = 0x20
    ENSURE_ASCII = 0x40
    SORT_KEYS = 0x80
    PRESERVE_ORDER = 0x100
    ENCODE_ANY = 0x200
    ESCAPE_SLASH = 0x400
    EMBED = 0x10000
    NO_UTF8 = 0x20000
    EOL = 0x40000


def indent_flags(n: int) -> int:
    """Flag bits requesting an indentation of ``n`` spaces (0-31)."""
    return n & 0x1F


def precision_flags(n: int) -> int:
    """Flag bits requesting ``n`` significant digits for reals (0-31)."""
    return (n & 0x1F) << 11


def truncate_source(source: str) -> str:
    """Shorten a source description so it fits the error record."""
    if len(source) < ERROR_SOURCE_LENGTH:
        return source
    extra = len(source) - ERROR_SOURCE_LENGTH + 4
    return "..." + source[extra:]


class JsonError(ValueError):
    """A JSON encoding or decoding failure with its position."""

    def __init__(
        self,
        text: str,
        line: int = -1,
        column: int = -1,
        position: int = 0,
        source: str = "",
        code: Any = None,
    ) -> None:
        self.text = text[: ERROR_TEXT_LENGTH - 2]
        self.line = line
        self.column = column
        self.position = position
        self.source = truncate_source(source)
        self.code = code
        super().__init__(self.text)


class _Encoder:
    def __init__(self, flags: int) -> None:
        self.flags = flags
        self.indent = flags & 0x1F
        self.compact = bool(flags & DumpFlags.COMPACT)
        self.precision = ((flags >> 11) & 0x1F) or 17
        self.separator = ":" if self.compact else ": "
        self.parents: set[int] = set()

    def newline(self, depth: int, space: bool) -> str:
        if self.indent:
            return "\n" + " " * (depth * self.indent)
        if space and not self.compact:
            return " "
        return ""

    def string(self, text: str) -> str:
        if not self.flags & DumpFlags.NO_UTF8:
            try:
                text.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise JsonError("invalid UTF-8 string") from exc
        escape_slash = self.flags & DumpFlags.ESCAPE_SLASH
        ensure_ascii = self.flags & DumpFlags.ENSURE_ASCII
        parts = ['"']
        for ch in text:
            code = ord(ch)
            if ch in _NAMED_ESCAPES:
                parts.append(_NAMED_ESCAPES[ch])
            elif ch == "/" and escape_slash:
                parts.append("\\/")
            elif code < 0x20 or (ensure_ascii and code > 0x7F):
                if code < 0x10000:
                    parts.append(f"\\u{code:04X}")
                else:
                    code -= 0x10000
                    first = 0xD800 | ((code & 0xFFC00) >> 10)
                    last = 0xDC00 | (code & 0x003FF)
                    parts.append(f"\\u{first:04X}\\u{last:04X}")
            else:
                parts.append(ch)
        parts.append('"')
        return "".join(parts)

    def real(self, value: float) -> str:
        if not math.isfinite(value):
            raise JsonError("non-finite real cannot be encoded")
        text = f"{value:.{self.precision}g}"
        if all(c in "0123456789-" for c in text):
            text += ".0"
        if "e" in text:
            mantissa, exponent = text.split("e")
            sign = "-" if exponent.startswith("-") else ""
            digits = exponent.lstrip("+-").lstrip("0")
            text = f"{mantissa}e{sign}{digits}"
        return text

    def encode(self, value: Any, depth: int, out: list[str], embed: bool = False) -> None:
        if value is None:
            out.append("null")
        elif value is True:
            out.append("true")
        elif value is False:
            out.append("false")
        elif isinstance(value, int):
            if not _INT_MIN <= value <= _INT_MAX:
                raise JsonError(f"integer {value} out of range")
            out.append(str(value))
        elif isinstance(value, float):
            out.append(self.real(value))
        elif isinstance(value, str):
            out.append(self.string(value))
        elif isinstance(value, (list, tuple)):
            self.container(value, list(value), depth, out, embed)
        elif isinstance(value, dict):
            self.container(value, value, depth, out, embed)
        else:
            raise TypeError(f"cannot encode {type(value).__name__} as JSON")

    def container(self, value: Any, body: Any, depth: int, out: list[str], embed: bool) -> None:
        is_object = isinstance(body, dict)
        open_mark, close_mark = ("{", "}") if is_object else ("[", "]")
        key = id(value)
        if key in self.parents:
            raise JsonError("circular reference detected")
        self.parents.add(key)
        try:
            if not embed:
                out.append(open_mark)
            if body:
                out.append(self.newline(depth + 1, False))
                if is_object:
                    items = list(body.items())
                    for name, _ in items:
                        if not isinstance(name, str):
                            raise TypeError("object keys must be strings")
                    if self.flags & DumpFlags.SORT_KEYS:
                        items.sort(key=lambda pair: pair[0])
                else:
                    items = body
                for index, item in enumerate(items):
                    if index:
                        out.append(",")
                        out.append(self.newline(depth + 1, True))
                    if is_object:
                        name, item = item
                        out.append(self.string(name))
                        out.append(self.separator)
                    self.encode(item, depth + 1, out)
                out.append(self.newline(depth, False))
            if not embed:
                out.append(close_mark)
        finally:
            self.parents.discard(key)


def _encode(value: Any, flags: int) -> str:
    flags = int(flags)
    if not flags & DumpFlags.ENCODE_ANY and not isinstance(value, (list, tuple, dict)):
        raise JsonError("top-level value must be an array or object")
    out: list[str] = []
    _Encoder(flags).encode(value, 0, out, embed=bool(flags & DumpFlags.EMBED))
    return "".join(out)


def dumps(value: Any, flags: int = 0) -> str:
    """Encode ``value`` to a JSON string."""
    text = _encode(value, flags)
    if int(flags) & DumpFlags.EOL:
        text += "\n"
    return text


def dump(value: Any, stream: IO[str], flags: int = 0) -> None:
    """Encode ``value`` and write it to a text stream."""
    stream.write(_encode(value, flags))


def dump_file(value: Any, path: Any, flags: int = 0) -> None:
    """Encode ``value`` and write it to the file at ``path``."""
    with open(path, "w", encoding="utf-8") as stream:
        stream.write(_encode(value, flags))