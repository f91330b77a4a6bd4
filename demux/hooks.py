"""Hook configuration snippets and tmux pane target detection."""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass

from demux.commands import CommandError

_RULE = "# " + "─" * 78

_FOCUS_ACTION = (
    "run-shell 'demux event pane_focus --target "
    "#{session_name}:#{window_index}.#{pane_index} 2>/dev/null; true'"
)

# Each focus change in tmux fires exactly one of these hooks, so all are needed.
_FOCUS_HOOKS: tuple[tuple[str, str], ...] = (
    ("after-select-pane", "moving between panes of one window"),
    ("after-select-window", "switching to another window"),
    ("client-session-changed", "switching to another session"),
    ("client-focus-in", "returning to the terminal from another application"),
)


def _build_tmux_snippet() -> str:
    lines = [
        "# demux tmux hooks",
        _RULE,
        "# Add these lines to ~/.tmux.conf and reload it with:",
        "#   tmux source ~/.tmux.conf",
        "#",
        "# Every hook below runs when a pane gains focus and clears the",
        "# non-sticky alerts on that pane, its window and its session.",
        _RULE,
    ]
    for hook, situation in _FOCUS_HOOKS:
        lines.append("")
        lines.append(f"# Fires when {situation}.")
        lines.append(f'set-hook -g {hook} "{_FOCUS_ACTION}"')
    lines.append(_RULE)
    return "\n".join(lines) + "\n"


TMUX_HOOKS_SNIPPET = _build_tmux_snippet()


@dataclass(frozen=True)
class AgentDef:
    """Configuration output for one supported tool."""

    snippet: str


AGENT_DEFS: dict[str, AgentDef] = {
    "tmux": AgentDef(snippet=TMUX_HOOKS_SNIPPET),
}


def resolve_agent(name: str) -> AgentDef:
    """Return the definition for a tool name; raise CommandError when unknown."""
    try:
        return AGENT_DEFS[name]
    except KeyError:
        supported = ", ".join(sorted(AGENT_DEFS))
        raise CommandError(
            f"unknown tool {json.dumps(name, ensure_ascii=False)}: supported tools: {supported}"
        ) from None


def tmux_pane_target() -> str:
    """Return the current pane as 'session:windowIndex.paneIndex'.

    $TMUX_PANE is preferred so the result names the pane the caller was
    started in rather than whichever pane is focused.
    """
    args = ["tmux", "display-message", "-p", "#S:#I.#P"]
    pane = os.environ.get("TMUX_PANE", "")
    if pane:
        args = ["tmux", "display-message", "-t", pane, "-p", "#S:#I.#P"]
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=True)
    except (subprocess.SubprocessError, OSError) as exc:
        raise CommandError(f"get tmux pane target: {exc}") from exc
    return result.stdout.strip()