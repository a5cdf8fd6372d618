"""Exception types raised across codexline.

Only configuration and environment problems are errors. Missing git data or
session logs are represented as absent fields, never as exceptions.
"""


class CodexlineError(Exception):
    """Base class for failures reported to the user with a non-zero exit."""


class ConfigError(CodexlineError):
    """Persisted or effective configuration is invalid or unreadable."""


class ThemeNotFound(ConfigError):
    def __init__(self, name: str):
        super().__init__(f"theme not found: {name}")
        self.name = name


class EnvironmentFailure(CodexlineError):
    """The process environment or filesystem refused a required operation."""
