"""Shared pytest fixtures."""

import datetime
import json
import os
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import pytest

from codexline.context import (
    GitStatus,
    RateLimitSnapshot,
    SessionMetaSnapshot,
    StatusContext,
    TokenUsageSnapshot,
)

NOW = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def codex_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point CODEX_HOME at an empty temporary directory."""
    home = tmp_path / "codex"
    home.mkdir()
    monkeypatch.setenv("CODEX_HOME", str(home))
    return home


@pytest.fixture
def sessions_dir(codex_home: Path) -> Path:
    path = codex_home / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def now() -> datetime.datetime:
    return NOW


@pytest.fixture
def write_rollout(sessions_dir: Path) -> Callable[..., Path]:
    """Write a rollout file under the sessions dir; *age_minutes* sets its mtime."""

    def _write(name: str, records: Iterable[dict], age_minutes: Optional[float] = 0,
               raw_lines: Iterable[str] = ()) -> Path:
        path = sessions_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(r) for r in records] + list(raw_lines)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        if age_minutes is not None:
            ts = (NOW - datetime.timedelta(minutes=age_minutes)).timestamp()
            os.utime(path, (ts, ts))
        return path

    return _write


@pytest.fixture
def token_count() -> Callable[..., dict]:
    """Build an event_msg/token_count record."""

    def _record(input_tokens: int = 200, output_tokens: int = 10, total_tokens: int = 550,
                window: Optional[int] = 1000, primary: Optional[float] = None,
                secondary: Optional[float] = None) -> dict:
        payload: dict[str, Any] = {
            "type": "token_count",
            "info": {
                "total_token_usage": {
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "total_tokens": total_tokens,
                },
                "model_context_window": window,
            },
        }
        limits = {}
        if primary is not None:
            limits["primary"] = {"used_percent": primary}
        if secondary is not None:
            limits["secondary"] = {"used_percent": secondary}
        if limits:
            payload["rate_limits"] = limits
        return {"type": "event_msg", "payload": payload}

    return _record


@pytest.fixture
def no_git(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every git invocation look like 'not a repository'."""
    monkeypatch.setattr("codexline.git.run_git", lambda cwd, args: None)


@pytest.fixture
def full_context(tmp_path: Path) -> StatusContext:
    return StatusContext(
        now=NOW,
        cwd=tmp_path / "project",
        project_root=tmp_path / "project",
        model="gpt-5-codex",
        git=GitStatus(branch="main", staged=1, ahead=2, behind=0),
        usage=TokenUsageSnapshot.from_totals(1200, 340, 1540, 10000),
        limits=RateLimitSnapshot(primary_used_percent=12.5, secondary_used_percent=40.4),
        session=SessionMetaSnapshot(
            thread_id="0199a1b2-c3d4-7e8f-9a0b-1c2d3e4f5a6b",
            cli_version="0.42.0",
            model_provider="openai",
        ),
    )


@pytest.fixture
def empty_context(tmp_path: Path) -> StatusContext:
    return StatusContext(now=NOW, cwd=tmp_path / "project")
