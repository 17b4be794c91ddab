import io
import json

import pytest

from ckgen.jsondump import (
    DumpFlags,
    JsonError,
    dump,
    dump_file,
    dumps,
    indent_flags,
    precision_flags,
    truncate_source,
)


@pytest.mark.parametrize(
    "value",
    [
        [],
        {},
        [1, -2, 3.5, "x", None, True, False],
        {"a": [1, {"b": "c"}], "d": {}},
        ["tab\there", 'quote"', "back\\slash", "line\nbreak"],
        {"unicode": "h\u00e9llo \u20ac \U0001f600"},
    ],
)
def test_round_trip(value):
    assert json.loads(dumps(value)) == value


def test_compact_object_exact():
    assert dumps({"a": 1}, DumpFlags.COMPACT) == '{"a":1}'


def test_default_separators_have_spaces():
    text = dumps({"a": [1, 2]})
    assert ": " in text
    assert ", " in text


def test_compact_has_no_spaces():
    text = dumps({"a": [1, 2], "b": "c"}, DumpFlags.COMPACT)
    assert " " not in text
    assert json.loads(text) == {"a": [1, 2], "b": "c"}


def test_indent_layout():
    value = {"a": [1, [2, 3]], "b": {"c": None}}
    text = dumps(value, indent_flags(2))
    assert "\n" in text
    for line in text.splitlines():
        leading = len(line) - len(line.lstrip(" "))
        assert leading % 2 == 0
    assert json.loads(text) == value


def test_sort_keys():
    value = {"zeta": 1, "alpha": 2, "mid": 3}
    text = dumps(value, DumpFlags.SORT_KEYS)
    keys = [k for k, _ in json.loads(text, object_pairs_hook=list)]
    assert keys == sorted(value)


def test_insertion_order_kept_without_sort():
    value = {"zeta": 1, "alpha": 2, "mid": 3}
    keys = [k for k, _ in json.loads(dumps(value), object_pairs_hook=list)]
    assert keys == list(value)


def test_escape_slash():
    plain = dumps(["a/b"])
    escaped = dumps(["a/b"], DumpFlags.ESCAPE_SLASH)
    assert "\\/" not in plain
    assert "\\/" in escaped
    assert json.loads(escaped) == ["a/b"]


def test_control_character_escaped_uppercase():
    text = dumps(["\x1f"])
    assert "\\u001F" in text
    assert json.loads(text) == ["\x1f"]


def test_ensure_ascii_with_surrogate_pair():
    value = ["caf\u00e9 \U0001f600"]
    text = dumps(value, DumpFlags.ENSURE_ASCII)
    assert text.isascii()
    assert json.loads(text) == value


def test_non_ascii_kept_by_default():
    text = dumps(["\u00e9"])
    assert "\u00e9" in text


def test_lone_surrogate_rejected_unless_no_utf8():
    with pytest.raises(JsonError):
        dumps(["\ud800"])
    text = dumps(["\ud800"], DumpFlags.NO_UTF8)
    assert "\ud800" in text


def test_real_keeps_fraction_marker():
    parsed = json.loads(dumps([1.0, 1e16]))
    assert all(isinstance(x, float) for x in parsed)
    assert parsed == [1.0, 1e16]


def test_real_exponent_has_no_plus_or_padding():
    text = dumps([1e20, 1e-5])
    assert "+" not in text
    assert "e-0" not in text
    assert json.loads(text) == [1e20, 1e-5]


def test_precision():
    assert json.loads(dumps([0.123], precision_flags(1))) == [0.1]
    assert json.loads(dumps([0.1])) == [0.1]


def test_non_finite_real_rejected():
    with pytest.raises(JsonError):
        dumps([float("nan")])
    with pytest.raises(JsonError):
        dumps([float("inf")])


def test_integer_out_of_range():
    with pytest.raises(JsonError):
        dumps([2**63])
    assert json.loads(dumps([2**63 - 1])) == [2**63 - 1]


def test_top_level_scalar_needs_encode_any():
    with pytest.raises(JsonError):
        dumps("text")
    assert json.loads(dumps("text", DumpFlags.ENCODE_ANY)) == "text"
    assert dumps(None, DumpFlags.ENCODE_ANY) == "null"


def test_embed_strips_outer_brackets():
    assert dumps([1, 2], DumpFlags.EMBED) == dumps([1, 2])[1:-1]
    assert dumps({"a": 1}, DumpFlags.EMBED) == dumps({"a": 1})[1:-1]
    assert dumps([], DumpFlags.EMBED) == ""


def test_embed_only_affects_top_level():
    text = dumps([[1]], DumpFlags.EMBED)
    assert json.loads(text) == [1]


def test_eol_only_for_dumps():
    assert dumps([1], DumpFlags.EOL) == dumps([1]) + "\n"
    stream = io.StringIO()
    dump([1], stream, DumpFlags.EOL)
    assert stream.getvalue() == dumps([1])


def test_circular_reference_rejected():
    loop = []
    loop.append(loop)
    with pytest.raises(JsonError):
        dumps(loop)
    obj = {}
    obj["self"] = obj
    with pytest.raises(JsonError):
        dumps(obj)


def test_shared_non_circular_value_allowed():
    shared = [1]
    assert json.loads(dumps([shared, shared])) == [[1], [1]]


def test_unsupported_types():
    with pytest.raises(TypeError):
        dumps([object()])
    with pytest.raises(TypeError):
        dumps({1: "a"})


def test_dump_to_stream_matches_dumps():
    value = {"k": [1, 2, "v"]}
    stream = io.StringIO()
    dump(value, stream, DumpFlags.COMPACT)
    assert stream.getvalue() == dumps(value, DumpFlags.COMPACT)


def test_dump_file(tmp_path):
    path = tmp_path / "out.json"
    value = {"a": [1, 2.5, None]}
    dump_file(value, path, indent_flags(4))
    assert json.loads(path.read_text(encoding="utf-8")) == value


def test_dump_file_error(tmp_path):
    path = tmp_path / "bad.json"
    with pytest.raises(JsonError):
        dump_file(5, path)
    assert path.read_text(encoding="utf-8") == ""


def test_truncate_source_short_unchanged():
    assert truncate_source("<string>") == "<string>"


def test_truncate_source_long():
    source = "s" * 50 + "t" * 100
    result = truncate_source(source)
    assert result.startswith("...")
    assert len(result) < len(source)
    assert len(result) < 80
    assert source.endswith(result[3:])


def test_json_error_fields():
    err = JsonError("bad thing", source="x" * 200)
    assert err.line == -1
    assert err.column == -1
    assert err.position == 0
    assert str(err) == "bad thing"
    assert err.source.startswith("...")
    assert isinstance(err, ValueError)


def test_json_error_text_truncated():
    err = JsonError("e" * 500)
    assert len(err.text) < 160
    assert "e" * 500 != err.text