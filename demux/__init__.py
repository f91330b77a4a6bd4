"""Building blocks for monitoring tmux sessions: configuration, alert storage, output formatting, and git and process inspection."""

__version__ = "0.1.0"