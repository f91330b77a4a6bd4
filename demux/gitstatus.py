"""Git working-tree status: parsing, fetching with timeouts, and indicators."""

from __future__ import annotations

import re
import subprocess
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

CONCURRENCY_CAP = 8

_AHEAD_RE = re.compile(r"ahead (\d+)")
_BEHIND_RE = re.compile(r"behind (\d+)")


@dataclass
class Info:
    branch: str = ""
    dirty: bool = False
    ahead: int = 0
    behind: int = 0
    dir: str = ""
    is_worktree_root: bool = False
    repo_root: str = ""
    worktree: str = ""
    pr: str = ""
    loading: bool = False


@dataclass(frozen=True)
class ConcurrentWork:
    """One directory to inspect, stored in the result map under key."""

    key: str
    dir: str


class GitError(RuntimeError):
    """Raised when git status cannot be read; carries the partial Info."""

    def __init__(self, message: str, info: Info) -> None:
        super().__init__(message)
        self.info = info


def parse_status(raw: str) -> Info:
    """Parse the output of `git status --porcelain=v1 -b`."""
    info = Info()
    lines = raw.split("\n")

    branch_line = lines[0].removeprefix("## ")
    if branch_line.startswith("HEAD"):
        info.branch = "HEAD"
    else:
        info.branch = branch_line.split("...", 1)[0]

    if m := _AHEAD_RE.search(branch_line):
        info.ahead = int(m.group(1))
    if m := _BEHIND_RE.search(branch_line):
        info.behind = int(m.group(1))

    info.dirty = any(line.strip() for line in lines[1:])
    return info


def _run(args: list[str], deadline: float) -> str:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise subprocess.TimeoutExpired(args, 0)
    result = subprocess.run(
        args, capture_output=True, text=True, timeout=remaining, check=True
    )
    return result.stdout


def _run_quiet(args: list[str], deadline: float) -> str:
    try:
        return _run(args, deadline)
    except (subprocess.SubprocessError, OSError):
        return ""


def fetch(directory: str, timeout_ms: int) -> Info:
    """Read git status for directory within timeout_ms milliseconds.

    Raises GitError, whose info holds the directory and whether it is a
    bare-worktree root, when git cannot report a status.
    """
    deadline = time.monotonic() + timeout_ms / 1000
    try:
        out = _run(["git", "-C", directory, "status", "--porcelain=v1", "-b"], deadline)
    except (subprocess.SubprocessError, OSError) as exc:
        info = Info(dir=directory, is_worktree_root=(Path(directory) / ".bare").is_dir())
        raise GitError(f"git status: {exc}", info) from exc

    info = parse_status(out)
    info.dir = directory
    info.repo_root = _run_quiet(
        ["git", "-C", directory, "rev-parse", "--show-toplevel"], deadline
    ).strip()
    git_dir = _run_quiet(["git", "-C", directory, "rev-parse", "--git-dir"], deadline).strip()
    marker = "/worktrees/"
    idx = git_dir.find(marker)
    if idx >= 0:
        info.worktree = git_dir[idx + len(marker):]
    return info


def fetch_pr(directory: str, branch: str, timeout_ms: int) -> str:
    """Return '#<n> open' for an open pull request on branch, or ''."""
    deadline = time.monotonic() + timeout_ms / 1000
    try:
        out = _run(
            [
                "gh", "pr", "list",
                "--head", branch,
                "--state", "open",
                "--json", "number",
                "--jq", ".[0].number",
            ],
            deadline,
        )
    except (subprocess.SubprocessError, OSError):
        return ""
    number = out.strip()
    return f"#{number} open" if number else ""


def is_descendant(child: str, parent: str) -> bool:
    """True when child lies strictly below parent in the path hierarchy."""
    if not child or not parent:
        return False
    if not parent.endswith("/"):
        parent += "/"
    return child.startswith(parent)


def indicators(info: Info) -> str:
    """Return compact status markers such as '↑1 ↓2 *'."""
    parts = []
    if info.ahead > 0:
        parts.append(f"↑{info.ahead}")
    if info.behind > 0:
        parts.append(f"↓{info.behind}")
    if info.dirty:
        parts.append("*")
    return " ".join(parts)


def fetch_concurrent(work: Iterable[ConcurrentWork] | None, timeout_ms: int) -> dict[str, Info]:
    """Fetch status for each work item in parallel; failures are left out."""
    items = list(work or ())
    results: dict[str, Info] = {}
    if not items:
        return results

    def attempt(item: ConcurrentWork) -> tuple[str, Info | None]:
        try:
            return item.key, fetch(item.dir, timeout_ms)
        except GitError:
            return item.key, None

    with ThreadPoolExecutor(max_workers=min(CONCURRENCY_CAP, len(items))) as pool:
        for key, info in pool.map(attempt, items):
            if info is not None:
                results[key] = info
    return results