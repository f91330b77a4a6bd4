import pytest

from demux.gitstatus import (
    ConcurrentWork,
    GitError,
    Info,
    fetch,
    fetch_concurrent,
    indicators,
    is_descendant,
    parse_status,
)


def test_parse_status_ahead_behind_dirty():
    info = parse_status("## main...origin/main [ahead 2, behind 1]\n M file.go\n")
    assert info.branch == "main"
    assert info.ahead == 2
    assert info.behind == 1
    assert info.dirty is True


def test_parse_status_clean():
    info = parse_status("## feat/thing...origin/feat/thing\n")
    assert info.dirty is False
    assert (info.ahead, info.behind) == (0, 0)
    assert info.branch == "feat/thing"


def test_parse_status_detached():
    assert parse_status("## HEAD (no branch)\n").branch == "HEAD"


def test_parse_status_no_remote():
    info = parse_status("## localonly\n")
    assert info.branch == "localonly"
    assert (info.ahead, info.behind) == (0, 0)


def test_parse_status_behind_only():
    info = parse_status("## dev...origin/dev [behind 7]\n")
    assert info.ahead == 0
    assert info.behind == 7


@pytest.mark.parametrize(
    "child, parent, expected",
    [
        ("/home/dev/project/ui", "/home/dev/project", True),
        ("/home/dev/other", "/home/dev/project", False),
        ("/home/dev/project", "/home/dev/project", False),
        ("/home/dev/projectx", "/home/dev/project", False),
        ("", "/home/dev/project", False),
        ("/home/dev/project/ui", "", False),
        ("/home/dev/project/ui", "/home/dev/project/", True),
    ],
)
def test_is_descendant(child, parent, expected):
    assert is_descendant(child, parent) is expected


@pytest.mark.parametrize(
    "info, expected",
    [
        (Info(), ""),
        (Info(ahead=2), "↑2"),
        (Info(behind=1), "↓1"),
        (Info(dirty=True), "*"),
        (Info(ahead=1, behind=2, dirty=True), "↑1 ↓2 *"),
    ],
)
def test_indicators(info, expected):
    assert indicators(info) == expected


def test_fetch_concurrent_empty():
    assert fetch_concurrent(None, 200) == {}
    assert fetch_concurrent([], 200) == {}


def test_fetch_concurrent_invalid_path():
    work = [ConcurrentWork(key="a", dir="/nonexistent/path/xyz")]
    assert fetch_concurrent(work, 200) == {}


def test_fetch_invalid_path_raises_with_info():
    with pytest.raises(GitError) as excinfo:
        fetch("/nonexistent/path/xyz", 500)
    assert excinfo.value.info.dir == "/nonexistent/path/xyz"
    assert excinfo.value.info.is_worktree_root is False


def test_fetch_marks_bare_worktree_root(tmp_path):
    (tmp_path / ".bare").mkdir()
    with pytest.raises(GitError) as excinfo:
        fetch(str(tmp_path), 0)
    assert excinfo.value.info.is_worktree_root is True
    assert excinfo.value.info.dir == str(tmp_path)