import io

import pytest

from demux import applog
from demux.applog import Level


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    applog.set_output(io.StringIO(), Level.OFF)


def test_levels():
    buf = io.StringIO()
    applog.set_output(buf, Level.WARN)
    applog.debug("debug msg")
    applog.info("info msg")
    applog.warn("warn msg", key="val")
    applog.error("error msg")
    out = buf.getvalue()
    assert "debug msg" not in out
    assert "info msg" not in out
    assert "warn msg" in out
    assert "error msg" in out
    assert "key=val" in out


def test_off():
    buf = io.StringIO()
    applog.set_output(buf, Level.OFF)
    applog.error("should not appear")
    assert buf.getvalue() == ""


def test_record_fields():
    buf = io.StringIO()
    applog.set_output(buf, Level.DEBUG)
    applog.warn("hello there", note="a b", plain="x")
    line = buf.getvalue()
    assert line.endswith("\n")
    assert "level=WARN" in line
    assert 'msg="hello there"' in line
    assert 'note="a b"' in line
    assert "plain=x" in line


def test_default_path():
    assert applog.default_path().endswith("demux.log")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("off", Level.OFF),
        ("error", Level.ERROR),
        ("warn", Level.WARN),
        ("info", Level.INFO),
        ("debug", Level.DEBUG),
        ("WARN", Level.WARN),
    ],
)
def test_parse_level(text, expected):
    assert applog.parse_level(text) == expected


def test_parse_level_bad():
    with pytest.raises(ValueError, match="bad"):
        applog.parse_level("bad")


def test_open_log_writes_file(tmp_path):
    path = tmp_path / "logs" / "demux.log"
    stream = applog.open_log(path, Level.INFO)
    applog.info("file message")
    applog.debug("hidden message")
    stream.close()
    content = path.read_text(encoding="utf-8")
    assert "file message" in content
    assert "hidden message" not in content
    assert (path.stat().st_mode & 0o777) == 0o600


def test_open_log_off_creates_nothing(tmp_path):
    path = tmp_path / "logs" / "demux.log"
    stream = applog.open_log(path, Level.OFF)
    stream.close()
    assert not path.exists()
    assert not path.parent.exists()