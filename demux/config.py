"""Configuration model, defaults, loading from TOML and validation."""

import dataclasses
import json
import os
import re
import tomllib
import typing
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

DEFAULT_REFRESH_INTERVAL_MS = 3000
DEFAULT_GIT_TIMEOUT_MS = 500
DEFAULT_SIDEBAR_WIDTH = 35

MIN_REFRESH_INTERVAL_MS = 100
MIN_SIDEBAR_WIDTH = 10
MIN_GIT_TIMEOUT_WARN_MS = 50

TICK_INTERVAL = timedelta(milliseconds=DEFAULT_REFRESH_INTERVAL_MS)

DEFAULT_SESSION_SORT_ORDER = ("priority", "last_seen", "alphabetical")

DEFAULT_SHELLS = ["zsh", "bash", "sh", "fish", "dash", "nu", "pwsh"]
DEFAULT_IGNORED_PROCESSES = ["zsh", "bash", "fish", "sh", "dash", "nu", "pwsh"]


def normalize_sort_keys(user: list[str]) -> list[str]:
    """Keep valid, unique user keys in order, then append missing default keys."""
    result: list[str] = []
    for key in user:
        if key in DEFAULT_SESSION_SORT_ORDER and key not in result:
            result.append(key)
    result.extend(k for k in DEFAULT_SESSION_SORT_ORDER if k not in result)
    return result


@dataclass
class PathAlias:
    prefix: str = ""
    replace: str = ""


@dataclass
class GitPRConfig:
    enabled: bool = False


@dataclass
class GitConfig:
    enabled: bool = True
    show_spinner: bool = True
    timeout_ms: int = DEFAULT_GIT_TIMEOUT_MS
    on_timeout: str = "cached"
    fallback_display: str = "—"
    error_display: str = "git err"
    pr: GitPRConfig = field(default_factory=GitPRConfig)


@dataclass
class ProcessesConfig:
    """Process names per display category, matched case-insensitively."""

    editors: list[str] = field(
        default_factory=lambda: ["nvim", "vim", "vi", "nano", "emacs", "hx", "micro", "helix"]
    )
    agents: list[str] = field(
        default_factory=lambda: ["claude", "aider", "cursor", "copilot", "continue", "cody"]
    )
    servers: list[str] = field(
        default_factory=lambda: [
            "railway", "rails", "node", "deno", "bun",
            "python", "python3", "uvicorn", "gunicorn", "fastapi", "django", "flask",
            "cargo", "go", "air", "watchexec",
            "vite", "webpack", "next", "nuxt",
            "caddy", "nginx", "httpd",
        ]
    )
    shells: list[str] = field(default_factory=lambda: list(DEFAULT_SHELLS))


@dataclass
class ThemeConfig:
    processes: ProcessesConfig = field(default_factory=ProcessesConfig)

    color_bg: str = "#0d0d14"
    color_surface: str = "#13131a"
    color_raised: str = "#1e1e2e"
    color_selected: str = "#2a2a4a"
    color_border: str = "#313244"

    color_fg_primary: str = "#cdd6f4"
    color_fg_subtext: str = "#a6adc8"
    color_fg_muted: str = "#9399b2"
    color_fg_dim: str = "#6c7086"
    color_fg_ghost: str = "#45475a"

    color_session: str = "#89b4fa"
    color_proc_claude: str = "#cba6f7"
    color_proc_server: str = "#89dceb"
    color_proc_editor: str = "#b4befe"
    color_proc_child: str = "#a6adc8"

    color_git_dirty: str = "#f9e2af"
    color_git_behind: str = "#74c7ec"
    color_git_ahead: str = "#a6e3a1"

    color_alert_info: str = "#89b4fa"
    color_alert_warn: str = "#f9e2af"
    color_alert_error: str = "#f38ba8"
    color_alert_defer: str = "#b4befe"
    color_alert_info_bg: str = "#1a2a4d"
    color_alert_warn_bg: str = "#3d3500"
    color_alert_error_bg: str = "#3d1020"
    color_alert_defer_bg: str = "#1e1e2e"
    color_alert_defer_sticky: str = "#b4befe"
    color_alert_defer_sticky_bg: str = "#1e1e2e"

    icon_alert_info: str = "ℹ️"
    icon_alert_warn: str = "⚠️"
    icon_alert_error: str = "🚨"
    icon_alert_defer: str = "🔖"
    icon_alert_defer_sticky: str = "🔖"

    icon_tmux_session: str = "⊞"
    icon_cfg_session: str = "⚙︎"

    color_port: str = "#a6e3a1"
    color_port_bg: str = "#1a3a2a"
    color_clean: str = "#a6e3a1"
    color_cpu_low: str = "#7f849c"
    color_cpu_med: str = "#f9e2af"
    color_cpu_high: str = "#f38ba8"

    color_fg_search_highlight: str = "#f9e2af"


@dataclass
class SidebarConfig:
    default_filter: str = "t"
    focus_on_open: str = "alert_session"
    focus_search_on_open: bool = False
    search_sort: str = "score"
    show_last_seen: bool = True
    sort: list[str] = field(default_factory=lambda: list(DEFAULT_SESSION_SORT_ORDER))
    switch_focus: str = "severity"
    width: int = DEFAULT_SIDEBAR_WIDTH


@dataclass
class ProcessListConfig:
    path_right_align: bool = False


@dataclass
class StatusBarConfig:
    show: bool = True


@dataclass
class LogConfig:
    level: str = "warn"


@dataclass
class AlertsConfig:
    defer_default_reason: str = "Come back"


@dataclass(frozen=True)
class ValidationIssue:
    """A single configuration problem found by Config.validate."""

    field: str
    level: str
    message: str

    def __str__(self) -> str:
        return f"[{self.level}] {self.field}: {self.message}"


_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

_COLOR_FIELDS = tuple(
    f.name for f in dataclasses.fields(ThemeConfig) if f.name.startswith("color_")
)


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


@dataclass
class Config:
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    ignored_sessions: list[str] = field(default_factory=list)
    ignored_processes: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORED_PROCESSES))
    default_format: str = "text"
    mode: str = "full"
    sidebar: SidebarConfig = field(default_factory=SidebarConfig)
    process_list: ProcessListConfig = field(default_factory=ProcessListConfig)
    status_bar: StatusBarConfig = field(default_factory=StatusBarConfig)
    log: LogConfig = field(default_factory=LogConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    git: GitConfig = field(default_factory=GitConfig)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    path_aliases: list[PathAlias] = field(default_factory=list)

    def validate(self) -> list[ValidationIssue]:
        """Return every problem found; errors break operation, warns degrade it."""
        issues: list[ValidationIssue] = []

        def add(level: str, name: str, message: str) -> None:
            issues.append(ValidationIssue(field=name, level=level, message=message))

        if self.refresh_interval_ms < MIN_REFRESH_INTERVAL_MS:
            add("error", "refresh_interval_ms", f"must be ≥ 100, got {self.refresh_interval_ms}")

        if self.mode and self.mode not in ("full", "compact"):
            add("error", "mode", f'must be "full" or "compact", got {_quote(self.mode)}')

        if self.default_format not in ("text", "table", "json", ""):
            add("error", "default_format",
                f"must be text|table|json, got {_quote(self.default_format)}")

        valid_levels = ("off", "error", "warn", "info", "debug")
        if self.log.level and self.log.level.lower() not in valid_levels:
            add("error", "log.level",
                f"must be off|error|warn|info|debug, got {_quote(self.log.level)}")

        if self.sidebar.width < MIN_SIDEBAR_WIDTH:
            add("error", "sidebar.width", f"must be ≥ 10, got {self.sidebar.width}")

        if 0 < self.git.timeout_ms < MIN_GIT_TIMEOUT_WARN_MS:
            add("warn", "git.timeout_ms",
                f"very low timeout ({self.git.timeout_ms}ms) may cause frequent git errors")

        for name in _COLOR_FIELDS:
            value = getattr(self.theme, name)
            if value and not _HEX_COLOR_RE.match(value):
                add("warn", name, f"expected #rrggbb hex color, got {_quote(value)}")

        return issues


def default_config() -> Config:
    """Return a fresh configuration holding every default value."""
    return Config()


def _check_scalar(value: Any, kind: type, key: str) -> Any:
    if kind is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, kind)
    if not ok:
        raise ValueError(
            f"toml: {key}: cannot decode {type(value).__name__} into {kind.__name__}"
        )
    return value


def _convert(value: Any, hint: Any, current: Any, key: str) -> Any:
    if dataclasses.is_dataclass(hint):
        if not isinstance(value, dict):
            raise ValueError(f"toml: {key}: expected a table")
        return _merge(current, value, key)
    if typing.get_origin(hint) is list:
        (item_hint,) = typing.get_args(hint)
        if not isinstance(value, list):
            raise ValueError(f"toml: {key}: expected an array")
        if dataclasses.is_dataclass(item_hint):
            return [_convert(item, item_hint, item_hint(), key) for item in value]
        return [_check_scalar(item, item_hint, key) for item in value]
    return _check_scalar(value, hint, key)


def _merge(obj: Any, data: dict[str, Any], prefix: str = "") -> Any:
    field_types = {f.name: f.type for f in dataclasses.fields(obj)}
    changes: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        path = f"{prefix}.{key}" if prefix else key
        changes[key] = _convert(value, field_types[key], getattr(obj, key), path)
    return dataclasses.replace(obj, **changes)


_ENV_RE = re.compile(r"\$(?:\{([^}]*)\}|(\{)|([*#$@!?\-0-9])|([A-Za-z0-9_]+))")


def _expand_env(s: str) -> str:
    def replace(m: re.Match[str]) -> str:
        if m.group(2) is not None:
            return ""
        name = m.group(1) if m.group(1) is not None else (m.group(3) or m.group(4))
        return os.environ.get(name, "") if name else ""

    return _ENV_RE.sub(replace, s)


def _clean_alias_value(s: str) -> str:
    return _expand_env(s).replace("\\ ", " ")


def load(path: str | os.PathLike[str]) -> Config:
    """Load a config file over the defaults; a missing file yields the defaults."""
    cfg = default_config()
    try:
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError:
        return cfg
    cfg = _merge(cfg, data)

    aliases = [
        PathAlias(prefix=_clean_alias_value(a.prefix), replace=_clean_alias_value(a.replace))
        for a in cfg.path_aliases
    ]
    aliases = [a for a in aliases if a.prefix]
    cfg.path_aliases = sorted(aliases, key=lambda a: len(a.prefix), reverse=True)
    cfg.sidebar.sort = normalize_sort_keys(cfg.sidebar.sort)
    return cfg


def default_path() -> str:
    """Return ~/.config/demux/demux.toml."""
    return str(Path.home() / ".config" / "demux" / "demux.toml")