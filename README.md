# demux

A Python library of building blocks for a tmux companion tool. It keeps a
small SQLite store of alerts attached to sessions, windows and panes, loads
and validates a TOML configuration, renders rows as text, tables or JSON
lines, and inspects the processes, listening ports and git state behind a
session.

## Installation

```
pip install .
```

Python 3.11 or later is required. Process information comes from `psutil`.
Git status is read by running `git` (and `gh` for pull-request lookup).
Listening ports are found with `lsof` on macOS and with `ss` elsewhere.

## Modules

- `demux.config` – the `Config` dataclass and its sections, `default_config()`,
  `load(path)`, `default_path()` and `Config.validate()`, which returns a list
  of `ValidationIssue`. A missing file gives the defaults. In `path_aliases`,
  each `prefix` and `replace` may use environment variables; aliases with an
  empty prefix are dropped and the rest are sorted longest prefix first.
  `sidebar.sort` is normalised so that it always holds `priority`,
  `last_seen` and `alphabetical` once each.
- `demux.db` – `open_db(path)` (a file path or `":memory:"`) returns a
  `Database` with `alert_set`, `alert_remove`, `alert_upgrade_to_sticky`,
  `alert_remove_if_not_sticky`, `alert_list` and `alert_by_target`.
  `default_path()` is `~/.local/share/demux/state.db`.
- `demux.formatting` – `render(fmt_name, headers, rows, is_tty)` with
  `text`, `table` and `to_json`; `age`, `mem`, `duration` and `shorten_path`.
- `demux.gitstatus` – `parse_status`, `fetch`, `fetch_concurrent`,
  `fetch_pr`, `indicators` and `is_descendant`.
- `demux.proc` – `snapshot`, `build_tree`, `cwd`, `cwd_all`,
  `listening_ports`, `parse_lsof_ports` and `parse_ss_ports`.
- `demux.applog` – `parse_level`, `set_output`, `open_log` and the
  `debug`/`info`/`warn`/`error` functions. `default_path()` is
  `~/.local/share/demux/demux.log`.
- `demux.commands` – alert and status logic: `set_alert`, `remove_alert`,
  `alert_rows`, `apply_pane_focus`, `count_alerts_by_level`,
  `format_status_output`, `tmux_status_parts`, `resolve_session_status`,
  `alerts_by_session`, `is_ignored` and `resolve_port_map`. Failures raise
  `CommandError`.
- `demux.hooks` – `resolve_agent("tmux")` returns an `AgentDef` whose
  `snippet` holds tmux hook lines; `tmux_pane_target()` asks tmux for the
  current pane as `session:window.pane`.

## Example

```python
from demux import commands, config, db, formatting, gitstatus

cfg = config.load(config.default_path())
for issue in cfg.validate():
    print(issue)

with db.open_db(":memory:") as database:
    print(commands.set_alert(database, "work:1.0", "tests finished", "info",
                             False, cfg.alerts.defer_default_reason))
    for alert in database.alert_list():
        print(alert.target, alert.level, formatting.age(alert.created_at))
    commands.apply_pane_focus(database, "work:1.0")
    counts = commands.count_alerts_by_level(database.alert_list())
    print(commands.format_status_output("plain", *counts, cfg))  # ok

info = gitstatus.parse_status("## main...origin/main [ahead 2, behind 1]\n M a.py\n")
print(info.branch, gitstatus.indicators(info))  # main ↑2 ↓1 *
```

An alert is never replaced by one of lower severity. The order is
`error` > `warn` > `info` > `defer`. Sticky alerts survive
`alert_remove_if_not_sticky` and `apply_pane_focus`; `remove_alert` keeps
them unless `force` is true.

## What this package does not do

It installs no command-line program and has no interactive screen. The
functions above are meant to be called from your own code. The tmux hook
snippet from `demux.hooks` calls an external `demux` command to clear
alerts on focus; this package does not provide that command.

## Running the tests

```
pip install .[test]
pytest
```