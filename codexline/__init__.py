"""codexline — a themeable one-line status display for Codex sessions."""

__version__ = "0.3.0"
