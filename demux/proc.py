"""Process snapshots, working directories and listening TCP ports."""

from __future__ import annotations

import os
import re
import subprocess
import sys
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta

import psutil

_VERSION_RE = re.compile(r"^\d+\.\d+")
_INT_RE = re.compile(r"[+-]?\d+")


def _atoi(s: str) -> int | None:
    return int(s) if _INT_RE.fullmatch(s) else None


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


@dataclass
class Process:
    pid: int
    ppid: int = 0
    name: str = ""
    cmdline: str = ""
    cpu: float = 0.0
    mem_rss: int = 0
    uptime: timedelta = timedelta(0)

    def friendly_name(self) -> str:
        """Human-readable name; falls back to argv[0] when the name looks like a version."""
        if self.name and not _VERSION_RE.match(self.name):
            return self.name
        tokens = self.cmdline.split()
        if not tokens:
            return self.name
        base = _base(tokens[0])
        if base in ("", "."):
            return self.name
        return base


@dataclass(frozen=True)
class PortInfo:
    port: int
    pid: int = 0


def _read_process(pid: int) -> Process:
    p = psutil.Process(pid)
    with p.oneshot():

        def attr(getter, default):
            try:
                value = getter()
            except psutil.Error:
                return default
            return default if value is None else value

        name = attr(p.name, "")
        ppid = attr(p.ppid, 0)
        cmdline = " ".join(attr(p.cmdline, []))
        created = attr(p.create_time, 0.0)
        mem_info = attr(p.memory_info, None)
        times = attr(p.cpu_times, None)

    rss = mem_info.rss if mem_info is not None else 0
    now = time.time()
    uptime = timedelta(seconds=now - created) if created > 0 else timedelta(0)
    cpu = 0.0
    if times is not None and created > 0:
        elapsed = now - created
        if elapsed > 0:
            cpu = 100 * (times.user + times.system) / elapsed
    return Process(
        pid=pid, ppid=ppid, name=name, cmdline=cmdline, cpu=cpu, mem_rss=rss, uptime=uptime
    )


def snapshot() -> list[Process]:
    """Return every process that can be inspected right now."""
    procs = []
    for pid in psutil.pids():
        try:
            procs.append(_read_process(pid))
        except psutil.Error:
            continue
    return procs


def build_tree(procs: list[Process]) -> dict[int, list[Process]]:
    """Map each parent PID to its child processes, in input order."""
    tree: dict[int, list[Process]] = defaultdict(list)
    for p in procs:
        tree[p.ppid].append(p)
    return dict(tree)


def _cwd_lsof(pid: int) -> str:
    out = subprocess.run(
        ["lsof", "-p", str(pid), "-d", "cwd", "-Fn"],
        capture_output=True, text=True, check=True,
    ).stdout
    for line in out.split("\n"):
        if line.startswith("n"):
            return line[1:]
    raise OSError("cwd not found in lsof output")


def cwd(pid: int) -> str:
    """Return the working directory of pid; raises OSError when unavailable."""
    try:
        proc = psutil.Process(pid)
    except psutil.Error as exc:
        raise OSError(f"process {pid}: {exc}") from exc
    try:
        directory = proc.cwd()
    except psutil.Error:
        directory = ""
    if directory:
        return directory
    if sys.platform == "darwin":
        try:
            return _cwd_lsof(pid)
        except subprocess.CalledProcessError as exc:
            raise OSError(f"lsof: {exc}") from exc
    raise OSError(f"cwd not available for pid {pid}")


def _parse_lsof_cwds(raw: str) -> dict[int, str]:
    result: dict[int, str] = {}
    current = 0
    for line in raw.split("\n"):
        if line.startswith("p"):
            pid = _atoi(line[1:])
            if pid is not None:
                current = pid
        elif line.startswith("n") and current != 0:
            result[current] = line[1:]
    return result


def _cwd_all_lsof() -> dict[int, str]:
    try:
        out = subprocess.run(
            ["lsof", "-d", "cwd", "-Fpn"], capture_output=True, text=True, check=True
        ).stdout
    except (subprocess.CalledProcessError, FileNotFoundError) as exc:
        raise OSError(f"lsof: {exc}") from exc
    return _parse_lsof_cwds(out)


def _cwd_all_proc() -> dict[int, str]:
    result: dict[int, str] = {}
    for entry in os.listdir("/proc"):
        pid = _atoi(entry)
        if pid is None:
            continue
        try:
            result[pid] = os.readlink(f"/proc/{pid}/cwd")
        except OSError:
            continue
    return result


def _cwd_all_psutil() -> dict[int, str]:
    result: dict[int, str] = {}
    for pid in psutil.pids():
        try:
            directory = psutil.Process(pid).cwd()
        except psutil.Error:
            continue
        if directory:
            result[pid] = directory
    return result


def cwd_all() -> dict[int, str]:
    """Return PID -> working directory for every accessible process."""
    if sys.platform == "darwin":
        return _cwd_all_lsof()
    if sys.platform.startswith("linux"):
        return _cwd_all_proc()
    return _cwd_all_psutil()


def listening_ports() -> list[PortInfo]:
    """List listening TCP ports via lsof on macOS or ss elsewhere."""
    if sys.platform == "darwin":
        args, tool = ["lsof", "-iTCP", "-sTCP:LISTEN", "-n", "-P"], "lsof"
        parser = parse_lsof_ports
    else:
        args, tool = ["ss", "-tlnp"], "ss"
        parser = parse_ss_ports
    try:
        out = subprocess.run(args, capture_output=True, text=True, check=True).stdout
    except (subprocess.CalledProcessError, FileNotFoundError) as exc:
        raise OSError(f"{tool}: {exc}") from exc
    return parser(out)


def _port_after_colon(addr: str) -> int | None:
    idx = addr.rfind(":")
    if idx < 0:
        return None
    return _atoi(addr[idx + 1:])


def parse_lsof_ports(raw: str) -> list[PortInfo]:
    """Parse `lsof -iTCP -sTCP:LISTEN -n -P` output, skipping the header."""
    ports = []
    for i, line in enumerate(raw.strip().split("\n")):
        if i == 0 or not line.strip():
            continue
        fields = line.split()
        if len(fields) < 9:
            continue
        pid = _atoi(fields[1])
        if pid is None:
            continue
        port = _port_after_colon(fields[8])
        if port is None:
            continue
        ports.append(PortInfo(port=port, pid=pid))
    return ports


def parse_ss_ports(raw: str) -> list[PortInfo]:
    """Parse `ss -tlnp` output; PIDs are not extracted and stay 0."""
    ports = []
    for i, line in enumerate(raw.strip().split("\n")):
        if i == 0 or not line.strip():
            continue
        fields = line.split()
        if len(fields) < 4:
            continue
        port = _port_after_colon(fields[3])
        if port is None:
            continue
        ports.append(PortInfo(port=port))
    return ports