import io
import sys

import pytest

from ckgen.jsontree import PROMPT, describe, main

EXAMPLE_INPUT = '[true, false, null, 1, 0.0, -0.0, "", {"name": "barney"}]\n'
EXAMPLE_OUTPUT = (
    "JSON Array of 8 elements:\n"
    "  JSON True\n"
    "  JSON False\n"
    "  JSON Null\n"
    '  JSON Integer: "1"\n'
    "  JSON Real: 0.000000\n"
    "  JSON Real: -0.000000\n"
    '  JSON String: ""\n'
    "  JSON Object of 1 pair:\n"
    '    JSON Key: "name"\n'
    '    JSON String: "barney"\n'
)


def _run(monkeypatch, text, argv=()):
    monkeypatch.setattr(sys, "stdin", io.StringIO(text))
    return main(list(argv))


def test_describe_worked_example():
    value = [True, False, None, 1, 0.0, -0.0, "", {"name": "barney"}]
    assert describe(value) == EXAMPLE_OUTPUT


def test_describe_nested_indentation():
    assert describe([[1]]) == (
        "JSON Array of 1 element:\n"
        "  JSON Array of 1 element:\n"
        '    JSON Integer: "1"\n'
    )


def test_describe_one_line_per_node():
    value = {"a": [1, 2], "b": {"c": None}}
    lines = describe(value).splitlines()
    # object, key a, array, 2 ints, key b, object, key c, null
    assert len(lines) == 9
    assert all((len(l) - len(l.lstrip(" "))) % 2 == 0 for l in lines)


def test_describe_rejects_unknown_type():
    with pytest.raises(TypeError):
        describe([object()])


def test_main_worked_example(monkeypatch, capsys):
    assert _run(monkeypatch, EXAMPLE_INPUT) == 0
    out = capsys.readouterr().out
    assert out == PROMPT + EXAMPLE_OUTPUT + PROMPT


def test_main_requires_container(monkeypatch, capsys):
    assert _run(monkeypatch, "42\n") == 0
    assert "json error on line" in capsys.readouterr().err


def test_main_rejects_nan_and_huge_integers(monkeypatch, capsys):
    assert _run(monkeypatch, "[NaN]\n[99999999999999999999]\n") == 0
    captured = capsys.readouterr()
    assert captured.err.count("json error on line") == 2


def test_main_continues_after_error(monkeypatch, capsys):
    assert _run(monkeypatch, "{bad\n[true]\n") == 0
    captured = capsys.readouterr()
    assert captured.err.count("json error") == 1
    assert describe([True]) in captured.out


def test_main_splits_overlong_lines(monkeypatch, capsys):
    line = "[" + "1," * 3000 + "1]\n"
    assert _run(monkeypatch, line) == 0
    captured = capsys.readouterr()
    assert captured.err.count("json error") == 2
    assert "JSON Array" not in captured.out


def test_main_usage_with_arguments(monkeypatch, capsys):
    assert _run(monkeypatch, "", argv=["extra"]) == 255
    assert "Usage" in capsys.readouterr().err