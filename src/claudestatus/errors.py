"""Exception types raised at the I/O boundaries of claude-status.

Every one of these is caught close to where it is raised and turned into a
degraded result (empty aggregate, cache fallback, ``no-credentials``), so
none of them escapes ``UsageManager``'s public API.
"""


class ClaudeStatusError(Exception):
    """Base class for all claude-status errors."""


class CredentialError(ClaudeStatusError):
    """The OAuth credential file is missing, unreadable, or has no token."""


class RemoteError(ClaudeStatusError):
    """The quota check request failed (network error or bad HTTP status)."""


class CacheReadError(ClaudeStatusError):
    """The quota cache file is absent, corrupt, or from another schema version."""


class CacheWriteError(ClaudeStatusError):
    """The quota cache file could not be written."""


class LogParseError(ClaudeStatusError):
    """A single log line is not a usable assistant usage record."""


class DirectoryAccessError(ClaudeStatusError):
    """A log directory or file could not be listed or opened."""
