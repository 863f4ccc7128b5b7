"""claude-status - Claude Code usage tracking and rate-limit forecasting."""

__version__ = "0.3.0"
