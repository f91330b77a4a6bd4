from datetime import datetime, timedelta, timezone

import pytest

from demux.config import PathAlias
from demux.formatting import (
    Row,
    age,
    duration,
    mem,
    render,
    shorten_path,
    table,
    text,
    to_json,
)


def test_text_format():
    rows = [Row(("hello", "world")), Row(("foo", "bar"))]
    out = text(["COL1", "COL2"], rows)
    assert out == "COL1: hello\nCOL2: world\n\nCOL1: foo\nCOL2: bar\n"


def test_text_missing_field():
    assert text(["A", "B"], [Row(("1",))]) == "A: 1\nB: \n"


def test_table_format():
    out = table(["COL1", "COL2"], [Row(("hello", "world"))], False)
    lines = out.strip().split("\n")
    assert len(lines) == 2
    assert "COL1" in lines[0]
    assert "hello" in lines[1]
    assert out == "COL1   COL2 \nhello  world"


def test_table_bold_tty():
    out = table(["A", "B"], [Row(("v", "w"))], True)
    assert "\033[1m" in out
    assert out.split("\n")[0] == "\033[1mA\033[0m  \033[1mB\033[0m"


def test_table_missing_field_padded():
    assert table(["AB", "CD"], [Row(("x",))], False) == "AB  CD\nx     "


def test_json_format():
    out = to_json(["col1", "col2"], [Row(("hello", "world"))])
    assert out == '{"col1":"hello","col2":"world"}'
    assert len(out.strip().split("\n")) == 1


def test_json_multiple_rows_and_escaping():
    out = to_json(["k"], [Row(("<a&b>",)), Row(("é",))])
    assert out == '{"k":"\\u003ca\\u0026b\\u003e"}\n{"k":"é"}'


def test_json_short_row_omits_keys():
    assert to_json(["a", "b"], [Row(("1",))]) == '{"a":"1"}'


def test_render_dispatcher():
    rows = [Row(("a", "b"))]
    headers = ["X", "Y"]
    assert render("text", headers, rows, False) == "X: a\nY: b\n"
    assert render("table", headers, rows, False) == "X  Y\na  b"
    assert render("JSON", headers, rows, False) == '{"X":"a","Y":"b"}'
    assert render("unknown", headers, rows, False) == "X: a\nY: b\n"


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=30), "30s ago"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3), "3h ago"),
        (timedelta(hours=49), "2d ago"),
    ],
)
def test_age(delta, expected):
    assert age(datetime.now(timezone.utc) - delta) == expected


def test_age_naive():
    assert age(datetime.now() - timedelta(minutes=5)) == "5m ago"


@pytest.mark.parametrize(
    "num_bytes, expected",
    [(0, "0.0MB"), (1024 * 1024, "1.0MB"), (512 * 1024 * 1024, "512.0MB")],
)
def test_mem(num_bytes, expected):
    assert mem(num_bytes) == expected


@pytest.mark.parametrize(
    "d, expected",
    [
        (timedelta(seconds=45), "45s"),
        (timedelta(minutes=5), "5m"),
        (timedelta(hours=2, minutes=30), "2h30m"),
        (timedelta(hours=50), "2d2h"),
    ],
)
def test_duration(d, expected):
    assert duration(d) == expected


def test_shorten_path_no_aliases():
    assert shorten_path("/home/user/projects/foo", None) == "/home/user/projects/foo"


def test_shorten_path_no_match():
    aliases = [PathAlias(prefix="/other", replace="o")]
    assert shorten_path("/home/user/projects/foo", aliases) == "/home/user/projects/foo"


def test_shorten_path_exact_match():
    aliases = [PathAlias(prefix="/home/user", replace="~")]
    assert shorten_path("/home/user", aliases) == "~"


def test_shorten_path_prefix_match():
    aliases = [PathAlias(prefix="/home/user", replace="~")]
    assert shorten_path("/home/user/projects/foo", aliases) == "~/projects/foo"


def test_shorten_path_longest_prefix_wins():
    aliases = [
        PathAlias(prefix="/home/user/projects", replace="proj"),
        PathAlias(prefix="/home/user", replace="~"),
    ]
    assert shorten_path("/home/user/projects/foo", aliases) == "proj/foo"


def test_shorten_path_first_alias_applied():
    aliases = [
        PathAlias(prefix="/home/user", replace="~"),
        PathAlias(prefix="/home/user/projects", replace="proj"),
    ]
    assert shorten_path("/home/user/projects/foo", aliases) == "~/projects/foo"


def test_shorten_path_no_false_partial_match():
    aliases = [PathAlias(prefix="/home/user", replace="~")]
    assert shorten_path("/home/userdata/foo", aliases) == "/home/userdata/foo"