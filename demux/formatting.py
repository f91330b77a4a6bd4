"""Rendering of rows as text, aligned tables or JSON lines, plus human-readable values."""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from demux.config import PathAlias

_ANSI_BOLD = "\033[1m"
_ANSI_RESET = "\033[0m"


class _HasFields(Protocol):
    def fields(self) -> list[str]: ...


@dataclass(frozen=True)
class Row:
    """A row of ordered field values."""

    values: tuple[str, ...] = ()

    def fields(self) -> list[str]:
        return list(self.values)


def render(fmt_name: str, headers: Sequence[str], rows: Sequence[_HasFields], is_tty: bool) -> str:
    """Dispatch to the formatter named by fmt_name; unknown names give text."""
    match fmt_name.lower():
        case "table":
            return table(headers, rows, is_tty)
        case "json":
            return to_json(headers, rows)
        case _:
            return text(headers, rows)


def _byte_len(s: str) -> int:
    return len(s.encode("utf-8"))


def table(headers: Sequence[str], rows: Sequence[_HasFields], is_tty: bool) -> str:
    """Render an aligned table with a header line, bold on a terminal."""
    widths = [_byte_len(h) for h in headers]
    all_fields = [row.fields() for row in rows]
    for fields in all_fields:
        for i, value in enumerate(fields[: len(headers)]):
            widths[i] = max(widths[i], _byte_len(value))

    def cell(value: str, width: int) -> str:
        return value.ljust(width)

    header_cells = [
        f"{_ANSI_BOLD}{cell(h, w)}{_ANSI_RESET}" if is_tty else cell(h, w)
        for h, w in zip(headers, widths)
    ]
    lines = ["  ".join(header_cells)]
    for fields in all_fields:
        padded = list(fields[: len(headers)]) + [""] * max(0, len(headers) - len(fields))
        lines.append("  ".join(cell(v, w) for v, w in zip(padded, widths)))
    return "\n".join(lines).rstrip("\n")


_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _json_object(mapping: dict[str, str]) -> str:
    encoded = json.dumps(mapping, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return "".join(_JSON_ESCAPES.get(c, c) for c in encoded)


def to_json(headers: Sequence[str], rows: Sequence[_HasFields]) -> str:
    """Render one JSON object per row, newline-separated, keyed by header."""
    return "\n".join(
        _json_object(dict(zip(headers, row.fields()))) for row in rows
    )


def text(headers: Sequence[str], rows: Sequence[_HasFields]) -> str:
    """Render each row as 'HEADER: value' lines, rows separated by a blank line."""
    blocks = []
    for row in rows:
        fields = row.fields()
        blocks.append(
            "".join(
                f"{h}: {fields[j] if j < len(fields) else ''}\n"
                for j, h in enumerate(headers)
            )
        )
    return "\n".join(blocks)


def age(when: datetime) -> str:
    """Return a relative time such as '5m ago'."""
    now = datetime.now(timezone.utc) if when.tzinfo is not None else datetime.now()
    seconds = (now - when).total_seconds()
    if seconds < 60:
        return f"{int(seconds)}s ago"
    if seconds < 3600:
        return f"{int(seconds / 60)}m ago"
    if seconds < 86400:
        return f"{int(seconds / 3600)}h ago"
    return f"{int(seconds / 3600 / 24)}d ago"


def mem(num_bytes: int) -> str:
    """Format a byte count in megabytes, e.g. '12.3MB'."""
    return f"{num_bytes / 1024 / 1024:.1f}MB"


def _rem(value: int, divisor: int) -> int:
    return int(math.fmod(value, divisor))


def duration(d: timedelta) -> str:
    """Format a duration compactly, e.g. '2h30m', '45s', '2d2h'."""
    total = d.total_seconds()
    hours = int(total / 3600)
    minutes = _rem(int(total / 60), 60)
    seconds = _rem(int(total), 60)
    if hours >= 24:
        return f"{hours // 24}d{hours % 24}h"
    if hours > 0:
        return f"{hours}h{minutes}m"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def shorten_path(path: str, aliases: Sequence[PathAlias] | None) -> str:
    """Replace the first matching alias prefix (aliases sorted longest first)."""
    for alias in aliases or ():
        rest = path.removeprefix(alias.prefix)
        if rest == path:
            continue
        if rest and not rest.startswith("/"):
            continue
        return alias.replace + rest
    return path