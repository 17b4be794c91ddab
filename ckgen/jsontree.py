"""Interactive JSON reader that prints the structure of each line typed."""

from __future__ import annotations

import json
import sys
from typing import Any, Sequence

from ckgen.jsondump import JsonError

PROMPT = "Type some JSON > "
MAX_CHARS = 4096
PROG = "jsontree"

_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def _describe(value: Any, indent: int, lines: list[str]) -> None:
    pad = " " * indent
    if isinstance(value, dict):
        lines.append(f"{pad}JSON Object of {len(value)} pair{_plural(len(value))}:")
        for key, item in value.items():
            lines.append(f'{" " * (indent + 2)}JSON Key: "{key}"')
            _describe(item, indent + 2, lines)
    elif isinstance(value, (list, tuple)):
        lines.append(f"{pad}JSON Array of {len(value)} element{_plural(len(value))}:")
        for item in value:
            _describe(item, indent + 2, lines)
    elif isinstance(value, str):
        lines.append(f'{pad}JSON String: "{value}"')
    elif value is True:
        lines.append(f"{pad}JSON True")
    elif value is False:
        lines.append(f"{pad}JSON False")
    elif value is None:
        lines.append(f"{pad}JSON Null")
    elif isinstance(value, int):
        lines.append(f'{pad}JSON Integer: "{value}"')
    elif isinstance(value, float):
        lines.append(f"{pad}JSON Real: {value:f}")
    else:
        raise TypeError(f"unrecognized JSON type {type(value).__name__}")


def describe(value: Any) -> str:
    """Render an indented, one-line-per-node description of a JSON value."""
    lines: list[str] = []
    _describe(value, 0, lines)
    return "".join(line + "\n" for line in lines)


def _reject_constant(name: str) -> Any:
    raise JsonError(f"invalid token near '{name}'", line=1, source="<string>")


def _checked_int(text: str) -> int:
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise JsonError(f"too big integer near '{text}'", line=1, source="<string>")
    return value


def _load(text: str) -> Any:
    try:
        value = json.loads(text, parse_constant=_reject_constant, parse_int=_checked_int)
    except JsonError:
        raise
    except json.JSONDecodeError as exc:
        raise JsonError(
            exc.msg, line=exc.lineno, column=exc.colno, position=exc.pos, source="<string>"
        ) from exc
    if not isinstance(value, (list, dict)):
        raise JsonError("'[' or '{' expected", line=1, source="<string>")
    return value


def main(argv: Sequence[str] | None = None) -> int:
    """Read JSON lines from stdin and print the structure of each."""
    args = sys.argv[1:] if argv is None else list(argv)
    if args:
        sys.stderr.write(f"Usage: {PROG}\n")
        return 255
    while True:
        sys.stdout.write(PROMPT)
        sys.stdout.flush()
        line = sys.stdin.readline(MAX_CHARS - 1)
        if not line:
            break
        try:
            value = _load(line)
        except JsonError as exc:
            sys.stderr.write(f"json error on line {exc.line}: {exc.text}\n")
            continue
        sys.stdout.write(describe(value))
    return 0


if __name__ == "__main__":
    sys.exit(main())