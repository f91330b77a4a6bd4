"""Command logic for alerts, pane-focus events, status summaries and listings."""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TextIO

from demux.config import Config
from demux.db import Alert, AlertLevel, Database
from demux.formatting import age
from demux.proc import PortInfo


class CommandError(Exception):
    """Raised when a command cannot do what it was asked to do."""


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


@dataclass(frozen=True)
class AlertRow:
    """One line of the alert listing."""

    target: str
    level: str
    sticky: str
    reason: str
    created: str

    def fields(self) -> list[str]:
        return [self.target, self.level, self.sticky, self.reason, self.created]


def set_alert(
    database: Database,
    target: str,
    reason: str,
    level: str,
    sticky: bool,
    default_reason: str,
) -> str:
    """Create or replace an alert and return the confirmation line.

    A defer alert without a reason takes default_reason; sticky is only
    accepted for defer alerts.
    """
    if sticky and level != AlertLevel.DEFER:
        raise CommandError("--sticky is only valid with --level defer")

    if not reason:
        if level != AlertLevel.DEFER:
            raise CommandError("--reason is required")
        reason = default_reason
        if not reason:
            raise CommandError(
                "--reason is required (alerts.defer_default_reason is not set)"
            )

    database.alert_set(target, reason, level, sticky)
    return f"Alert set for {target}"


def remove_alert(database: Database, target: str, force: bool, stderr: TextIO) -> bool:
    """Remove the alert on target; return False when a sticky alert was kept."""
    if not force:
        existing = database.alert_by_target(target)
        if existing is not None and existing.sticky:
            stderr.write(
                f"warning: alert on {_quote(target)} is sticky; use --force to remove it\n"
            )
            return False
    database.alert_remove(target)
    return True


def alert_rows(alerts: Iterable[Alert]) -> list[AlertRow]:
    """Build listing rows for the given alerts."""
    return [
        AlertRow(
            target=a.target,
            level=a.level,
            sticky="yes" if a.sticky else "",
            reason=a.reason,
            created=age(a.created_at),
        )
        for a in alerts
    ]


def window_target_from_pane(pane_target: str) -> str:
    """Strip the '.pane' suffix from a 'session:window.pane' target."""
    idx = pane_target.rfind(".")
    return pane_target[:idx] if idx != -1 else pane_target


def session_target_from_pane(pane_target: str) -> str:
    """Return the session part of a 'session:window.pane' target."""
    idx = pane_target.find(":")
    return pane_target[:idx] if idx != -1 else pane_target


def apply_pane_focus(database: Database, pane_target: str) -> None:
    """Clear non-sticky alerts on the pane, its window and its session."""
    database.alert_remove_if_not_sticky(pane_target)
    database.alert_remove_if_not_sticky(window_target_from_pane(pane_target))
    database.alert_remove_if_not_sticky(session_target_from_pane(pane_target))


def count_alerts_by_level(alerts: Iterable[Alert]) -> tuple[int, int, int, int]:
    """Return (infos, warns, errors, defers)."""
    counts = {"info": 0, "warn": 0, "error": 0, "defer": 0}
    for a in alerts:
        if a.level in counts:
            counts[a.level] += 1
    return counts["info"], counts["warn"], counts["error"], counts["defer"]


def _tmux_counter(style: str, icon: str, count: int) -> str:
    return f"{style}{icon} {count}"


def tmux_status_parts(infos: int, warns: int, errors: int, defers: int, cfg: Config) -> str:
    """Render counts as a tmux status-line fragment, most severe first."""
    if infos == 0 and warns == 0 and errors == 0 and defers == 0:
        return "#[fg=green]#[default]"
    theme = cfg.theme
    parts = []
    if errors > 0:
        parts.append(_tmux_counter("#[fg=red,bold]", theme.icon_alert_error, errors))
    if warns > 0:
        parts.append(_tmux_counter("#[fg=yellow]", theme.icon_alert_warn, warns))
    if infos > 0:
        parts.append(_tmux_counter("#[fg=cyan]", theme.icon_alert_info, infos))
    if defers > 0:
        parts.append(_tmux_counter("#[fg=#b4befe]", theme.icon_alert_defer, defers))
    return " ".join(parts) + "#[default]"


def format_status_output(
    fmt_name: str, infos: int, warns: int, errors: int, defers: int, cfg: Config
) -> str:
    """Render alert counts as tmux markup, JSON or plain key=value text."""
    match fmt_name:
        case "tmux":
            return tmux_status_parts(infos, warns, errors, defers, cfg)
        case "json":
            # defers is left out on purpose: the JSON schema is kept stable.
            return f'{{"infos":{infos},"warns":{warns},"errors":{errors}}}'
    if infos == 0 and warns == 0 and errors == 0 and defers == 0:
        return "ok"
    pairs = (("errors", errors), ("warns", warns), ("infos", infos), ("defers", defers))
    return " ".join(f"{name}={count}" for name, count in pairs if count > 0)


def resolve_session_status(alerts: Iterable[Alert] | None) -> str:
    """Return 'error', 'warn' or 'ok' from the most severe alert."""
    status = "ok"
    for a in alerts or ():
        if a.level == "error":
            status = "error"
        elif a.level == "warn" and status != "error":
            status = "warn"
    return status


def alerts_by_session(alerts: Iterable[Alert] | None) -> dict[str, list[Alert]]:
    """Group alerts by the session part of their target."""
    grouped: dict[str, list[Alert]] = defaultdict(list)
    for a in alerts or ():
        grouped[a.target.split(":", 1)[0]].append(a)
    return dict(grouped)


def is_ignored(cfg: Config, name: str) -> bool:
    """True when the session name is in the ignore list."""
    return name in cfg.ignored_sessions


def resolve_port_map(ports: Iterable[PortInfo] | None) -> dict[int, int]:
    """Map PID to listening port; later entries win."""
    return {p.pid: p.port for p in ports or ()}